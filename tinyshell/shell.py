"""The interactive loop: read a line, check it, parse it and run it."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Mapping
from typing import TextIO

from .builtins import ExitRequest, ShellState
from .environment import Environment
from .executor import Executor
from .expansion import ExpansionContext
from .heredoc import HereDocInterrupted, LineReader
from .lexer import tokenize
from .parser import mark_quoted_dollars, parse
from .syntax import HereDocLimitError, ShellSyntaxError, check_syntax

PROMPT = "minishell : "


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def _getcwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        return ""


class Shell:
    """A shell session over a pair of streams.

    Lines come from ``stdin``; when that is the terminal they are read with
    a prompt. SHLVL is raised by one when the session starts.
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout
        env = Environment.from_environ(os.environ if environ is None else environ)
        env.change_shlvl(1)
        cwd = _getcwd()
        self.state = ShellState(env=env, cd_path=cwd, last_path=cwd, old_path=cwd)
        self.executor = Executor(self.state)
        self.executor.stdout = self.stdout
        self.reader = LineReader(self.stdin)
        self.interactive = self.stdin is sys.stdin and _isatty(self.stdin)

    def run_line(self, line: str) -> int:
        """Check, parse and run one line; return the new exit status.

        ExitRequest and HereDocLimitError propagate to the caller.
        """
        tokens = tokenize(line)
        mark_quoted_dollars(tokens)
        try:
            check_syntax(tokens)
        except ShellSyntaxError as exc:
            self.state.error(str(exc))
            self.state.exit_status = exc.status
            return exc.status
        context = ExpansionContext(self.state.env, self.state.exit_status)
        with parse(tokens, context, self.reader) as result:
            for message in result.errors:
                self.stdout.write(message + "\n")
            self.stdout.flush()
            if result.interrupted:
                self.state.exit_status = HereDocInterrupted.status
                return self.state.exit_status
            return self.executor.run(result.commands)

    def _read_line(self) -> str | None:
        if self.interactive:
            while True:
                try:
                    return input(PROMPT)
                except EOFError:
                    return None
                except KeyboardInterrupt:
                    self.stdout.write("\n")
                    self.stdout.flush()
        line = self.reader.next_line()
        if line is None:
            return None
        return line[:-1] if line.endswith("\n") else line

    def loop(self) -> int:
        """Run lines until end of input or ``exit``; return the final status."""
        while True:
            line = self._read_line()
            if line is None:
                self.state.env.change_shlvl(-1)
                self.stdout.write("exit\n")
                self.stdout.flush()
                return 0
            try:
                self.run_line(line)
            except ExitRequest as exc:
                return exc.status
            except HereDocLimitError as exc:
                self.state.error(f"Error: {exc}")
                return exc.status
            except KeyboardInterrupt:
                self.stdout.write("\n")
                self.stdout.flush()


def main(argv: list[str] | None = None) -> int:
    """Start an interactive session on the process's own streams."""
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    try:
        import readline  # noqa: F401
    except ImportError:
        pass
    return Shell().loop()