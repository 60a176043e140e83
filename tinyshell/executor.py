"""Running parsed commands: builtins inside the shell, programs as child processes."""

from __future__ import annotations

import io
import os
import signal
import subprocess
import sys
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TextIO, TypeVar

from . import builtins
from .builtins import ShellState
from .environment import split_assignment
from .parser import Command

_T = TypeVar("_T")

_EXACT_BUILTINS = frozenset({"cd", "unset", "exit", "export"})
_FOLDED_BUILTINS = frozenset({"echo", "pwd", "env"})


class CommandNotFound(Exception):
    """A command name could not be turned into a program to run."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def _executable(path: str) -> bool:
    return bool(path) and os.access(path, os.X_OK)


def resolve_command(name: str, path: str | None) -> str:
    """Find the program to run for ``name`` using the ``PATH`` value ``path``.

    A name that is itself executable is used as it is. Otherwise the
    directories of ``path`` are searched; empty entries are skipped. Raises
    CommandNotFound with status 127 when nothing is found and 126 for a
    name holding ``/`` that is not executable, or for a directory.
    """
    if _executable(name):
        found = name
    elif path is None:
        raise CommandNotFound(f"{name}: No such file or directory", 127)
    elif "/" in name:
        raise CommandNotFound(f"{name}: No such file or directory", 126)
    else:
        candidates = (f"{directory}/{name}" for directory in path.split(":") if directory)
        found = next((c for c in candidates if name and _executable(c)), "")
        if not found:
            raise CommandNotFound(f"{name}: command not found", 127)
    if os.path.isdir(name):
        raise CommandNotFound(f"{name}: is a directory", 126)
    return found


def _ascii_lower(text: str) -> str:
    return "".join(chr(ord(c) + 32) if "A" <= c <= "Z" else c for c in text)


def _builtin_name(args: Sequence[str]) -> str | None:
    name = args[0]
    if name in _EXACT_BUILTINS:
        return name
    folded = _ascii_lower(name)
    return folded if folded in _FOLDED_BUILTINS else None


def _fileno(stream: TextIO) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _retrying(call: Callable[[], _T]) -> _T:
    while True:
        try:
            return call()
        except KeyboardInterrupt:
            continue


def _child_signals() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


@dataclass
class _Stage:
    status: int | None
    output: Any
    process: subprocess.Popen[bytes] | None = None
    capture: bool = False


class Executor:
    """Runs the commands of one line as a pipeline.

    Builtins run in the shell and write to their redirection, to the next
    stage, or to ``stdout``. Output of the last program goes to ``stdout``
    directly when it has a file descriptor and is copied there otherwise.
    """

    def __init__(self, state: ShellState) -> None:
        self.state = state
        self.stdout: TextIO = sys.stdout

    def run(self, commands: Sequence[Command]) -> int:
        """Run a pipeline and return, and record, its exit status."""
        commands = list(commands)
        if not commands:
            return self.state.exit_status
        status = self._pipeline(commands)
        self.state.exit_status = status
        return status

    def _pipeline(self, commands: list[Command]) -> int:
        alone = len(commands) == 1
        stages: list[_Stage] = []
        previous: Any = None
        try:
            for position, command in enumerate(commands):
                last = position == len(commands) - 1
                source = command.stdin if command.stdin is not None else previous
                stage = self._stage(command, source, last, alone)
                if hasattr(previous, "close"):
                    previous.close()
                previous = stage.output
                stages.append(stage)
        except BaseException:
            if hasattr(previous, "close"):
                previous.close()
            for stage in stages:
                if stage.process is not None:
                    stage.process.kill()
                    stage.process.wait()
            raise
        return self._finish(stages)

    def _stage(self, command: Command, source: Any, last: bool, alone: bool) -> _Stage:
        if command.failed:
            return _Stage(1, subprocess.DEVNULL)
        if not command.args:
            return _Stage(1 if alone else 0, subprocess.DEVNULL)
        name = _builtin_name(command.args)
        if name is not None:
            return self._run_builtin(name, command, last, alone)
        return self._spawn(command, source, last)

    def _run_builtin(self, name: str, command: Command, last: bool, alone: bool) -> _Stage:
        output: Any = subprocess.DEVNULL
        if command.stdout is not None:
            out: TextIO = command.stdout
        elif last:
            out = self.stdout
        else:
            out = tempfile.TemporaryFile("w+", encoding="utf-8")
            output = out
        try:
            status = self._call_builtin(name, command.args[1:], out, alone)
        except BaseException:
            if output is out:
                out.close()
            raise
        if output is out:
            out.flush()
            out.seek(0)
        return _Stage(status, output)

    def _call_builtin(self, name: str, args: list[str], out: TextIO, alone: bool) -> int:
        state = self.state
        if name == "cd":
            return builtins.cd(state, args) if alone else 0
        if name == "unset":
            return builtins.unset(state, args, alone)
        if name == "exit":
            return builtins.exit_builtin(state, args, out, alone)
        if name == "export":
            return builtins.export(state, args, out, alone)
        if name == "echo":
            return builtins.echo(state, args, out)
        if name == "pwd":
            return builtins.pwd(state, args, out)
        return builtins.env(state, args, out)

    def _child_environ(self) -> dict[str, str]:
        pairs = (split_assignment(entry) for entry in self.state.env.to_envp())
        return {name: value or "" for name, value in pairs}

    def _spawn(self, command: Command, source: Any, last: bool) -> _Stage:
        try:
            program = resolve_command(command.args[0], self.state.env.get("PATH"))
        except CommandNotFound as exc:
            self.state.error(exc.message)
            return _Stage(exc.status, subprocess.DEVNULL)
        capture = False
        target: Any
        if command.stdout is not None:
            target = command.stdout
        elif last:
            target = _fileno(self.stdout)
            if target is None:
                target = subprocess.PIPE
                capture = True
        else:
            target = subprocess.PIPE
        self.stdout.flush()
        try:
            process = subprocess.Popen(
                command.args,
                executable=program,
                stdin=source,
                stdout=target,
                env=self._child_environ(),
                preexec_fn=_child_signals if os.name == "posix" else None,
            )
        except OSError as exc:
            self.state.error(exc.strerror or str(exc))
            return _Stage(128, subprocess.DEVNULL)
        piped = target is subprocess.PIPE and not last
        output = process.stdout if piped else subprocess.DEVNULL
        return _Stage(None, output, process, capture)

    def _finish(self, stages: list[_Stage]) -> int:
        final = stages[-1]
        for stage in [final, *stages[:-1]]:
            process = stage.process
            if process is None:
                continue
            if stage.capture:
                data, _ = _retrying(process.communicate)
                self.stdout.write((data or b"").decode("utf-8", "replace"))
                self.stdout.flush()
            code = _retrying(process.wait)
            stage.status = 128 - code if code < 0 else code
        if final.process is not None and final.status == 131:
            self.stdout.write("Quit: 3\n")
            self.stdout.flush()
        return final.status if final.status is not None else 0


__all__ = ["CommandNotFound", "Executor", "resolve_command", "io"]