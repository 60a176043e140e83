"""Commands the shell runs itself: echo, env, pwd, cd, export, unset and exit."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TextIO

from .environment import Environment, _atoi, split_assignment

_PARENT_ERROR = "error retrieving current directory: getcwd: "
_MIN_LLONG = "-9223372036854775808"


class ExitRequest(Exception):
    """Raised by ``exit``: the shell should stop with ``status``."""

    def __init__(self, status: int) -> None:
        super().__init__(f"exit {status}")
        self.status = status


@dataclass
class ShellState:
    """State shared by the builtins.

    ``cd_path`` is the directory ``cd`` left, ``last_path`` the directory the
    shell believes it is in, and ``old_path`` the path ``cd`` falls back to
    when the current directory has gone away.
    """

    env: Environment = field(default_factory=Environment)
    exit_status: int = 0
    cd_path: str = ""
    last_path: str = ""
    old_path: str = ""
    pos_path: int = 0
    err: TextIO = field(default_factory=lambda: sys.stderr)

    def error(self, message: str) -> None:
        """Write one line to the error stream."""
        self.err.write(message + "\n")
        self.err.flush()


def atoi(text: str) -> int:
    """Leading integer of ``text`` as a C int.

    Values beyond the 64-bit range give -1 (positive) or 0 (negative).
    """
    return _atoi(text)


def is_n_flag(arg: str | None) -> bool:
    """True for ``-n``, ``-nn``, ... as understood by echo."""
    if not arg or not arg.startswith("-n"):
        return False
    return all(c == "n" for c in arg[1:])


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or ("0" <= c <= "9")


def is_valid_identifier(name: str) -> bool:
    """True for a variable name, optionally followed by one ``+``."""
    if not name:
        return False
    if not _is_alpha(name[0]) and name[0] != "_":
        return False
    body = name[:-1] if name.endswith("+") else name
    return all(_is_alnum(c) or c == "_" for c in body)


def _getcwd() -> str | None:
    try:
        return os.getcwd()
    except OSError:
        return None


def _change_path(state: ShellState, name: str, value: str) -> None:
    if state.env.get(name) is not None:
        state.env.set(name, value)


def _decrement_path(state: ShellState) -> None:
    state.old_path = state.old_path.rpartition("/")[0]


def echo(state: ShellState, args: Sequence[str], out: TextIO) -> int:
    """Print the arguments separated by spaces; leading ``-n`` flags drop the newline."""
    args = list(args)
    newline = True
    start = 0
    while start < len(args) and is_n_flag(args[start]):
        newline = False
        start += 1
    out.write(" ".join(args[start:]))
    if newline:
        out.write("\n")
    out.flush()
    state.exit_status = 0
    return 0


def env(state: ShellState, args: Sequence[str], out: TextIO) -> int:
    """Print the environment; any argument is an error."""
    if args:
        state.error(f"env : {args[0]}: No such file or directory")
        state.exit_status = 1
        return 1
    for line in state.env.env_lines():
        out.write(line + "\n")
    out.flush()
    state.exit_status = 0
    return 0


def pwd(state: ShellState, args: Sequence[str], out: TextIO) -> int:
    """Print the current directory, or the remembered one if it is gone."""
    cwd = _getcwd()
    if cwd is not None:
        state.cd_path = cwd
        state.pos_path = 0
        _change_path(state, "PWD", cwd)
        out.write(cwd + "\n")
    else:
        state.pos_path += 1
        out.write(state.last_path + "\n")
    out.flush()
    state.exit_status = 0
    return 0


def _cd_error(state: ShellState, subject: str, prefix: str = "") -> int:
    state.error(f"cd: {prefix}{subject} : No such file or directory")
    return 1


def _record_path(state: ShellState) -> None:
    state.pos_path = 0
    _change_path(state, "OLDPWD", state.cd_path)
    cwd = _getcwd() or ""
    state.last_path = cwd
    state.old_path = cwd
    _change_path(state, "PWD", cwd)


def _parent_dir(state: ShellState, target: str) -> int:
    _change_path(state, "OLDPWD", state.last_path)
    state.last_path = f"{state.last_path}/{target}"
    _decrement_path(state)
    _change_path(state, "PWD", state.last_path)
    try:
        os.chdir(state.old_path)
    except OSError:
        if state.pos_path == 0:
            state.pos_path += 1
            return _cd_error(state, target)
        return _cd_error(state, "cannot access parent directories", _PARENT_ERROR)
    state.old_path = _getcwd() or state.old_path
    return 0


def _cd(state: ShellState, target: str | None) -> int:
    home = state.env.get("HOME")
    cwd = _getcwd()
    if cwd is not None:
        state.cd_path = cwd
    if target is None or target == "~":
        if home is None:
            state.error("cd: HOME not set")
            return 1
        try:
            os.chdir(home)
        except OSError:
            return _cd_error(state, home)
        _record_path(state)
        return 0
    if cwd is not None:
        try:
            os.chdir(target)
        except OSError:
            return _cd_error(state, target)
        _record_path(state)
        return 0
    try:
        os.chdir(state.old_path)
    except OSError:
        return _parent_dir(state, target)
    _change_path(state, "OLDPWD", state.last_path)
    state.last_path = _getcwd() or ""
    return 0


def cd(state: ShellState, args: Sequence[str]) -> int:
    """Change directory to the first argument, or to HOME without one."""
    status = _cd(state, args[0] if args else None)
    state.exit_status = status
    return status


def _export_one(state: ShellState, arg: str) -> bool:
    name, value = split_assignment(arg)
    if not is_valid_identifier(name):
        state.error(f"bash: export: {arg}: not a valid identifier")
        return False
    if value is None:
        state.env.declare(name)
    elif name.endswith("+"):
        state.env.append(name.rstrip("+"), value)
    else:
        state.env.set(name, value)
    return True


def export(state: ShellState, args: Sequence[str], out: TextIO, alone: bool) -> int:
    """List exported names, or set ``NAME``, ``NAME=value`` and ``NAME+=value``.

    Variables are changed only when the command runs ``alone``.
    """
    if not args:
        for line in state.env.export_lines():
            out.write(line + "\n")
        out.flush()
    if alone:
        for arg in args:
            if not _export_one(state, arg):
                state.exit_status = 1
    return state.exit_status


def unset(state: ShellState, args: Sequence[str], alone: bool) -> int:
    """Remove variables; only when the command runs ``alone``."""
    if alone:
        for arg in args:
            if not is_valid_identifier(arg):
                state.error(f"bash: unset: {arg}: not a valid identifier")
                state.exit_status = 1
            else:
                state.env.unset(arg)
    return state.exit_status


def _exit_error(state: ShellState, message: str, arg: str = "") -> None:
    prefix = f"{arg}: " if arg else ""
    state.error(f"exit: {prefix}{message}")
    state.exit_status = 1


def _numeric_argument(text: str) -> bool:
    number = atoi(text)
    if len(text) > 2 and number in (-1, 0):
        return False
    digits = text[1:] if text[:1] in ("-", "+") else text
    return all("0" <= c <= "9" for c in digits)


def exit_builtin(state: ShellState, args: Sequence[str], out: TextIO, alone: bool) -> int:
    """Leave the shell by raising ExitRequest, when run ``alone``.

    A numeric argument gives the status modulo 256; a non-numeric one gives
    255. Several arguments are an error and the shell keeps running.
    """
    if not alone:
        return state.exit_status
    out.write("exit\n")
    out.flush()
    if not args:
        raise ExitRequest(state.exit_status)
    arg = args[0]
    if not _numeric_argument(arg):
        _exit_error(state, "numeric argument required", arg)
        _decrement_path(state)
        raise ExitRequest(255)
    if len(args) > 1:
        _exit_error(state, "too many arguments")
        return state.exit_status
    _decrement_path(state)
    if arg == _MIN_LLONG:
        raise ExitRequest(0)
    raise ExitRequest(atoi(arg) % 256)