"""Exported and environment variables kept by the shell."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

_LLONG_MAX = 9223372036854775807
_BLANKS = "\t\n\v\f\r "


def split_assignment(text: str) -> tuple[str, str | None]:
    """Split ``NAME=value`` at the first ``=``; the value is None without one."""
    name, sep, value = text.partition("=")
    return name, (value if sep else None)


def _to_c_int(number: int) -> int:
    number &= 0xFFFFFFFF
    return number - 0x100000000 if number & 0x80000000 else number


def _atoi(text: str) -> int:
    text = text.lstrip(_BLANKS)
    sign = 1
    if text[:1] in ("-", "+"):
        if text[0] == "-":
            sign = -1
        text = text[1:]
    result = 0
    for c in text:
        if not "0" <= c <= "9":
            break
        result = result * 10 + int(c)
        if result > _LLONG_MAX:
            return -1 if sign == 1 else 0
    return _to_c_int(result * sign)


class Environment:
    """Two ordered tables: variables passed to programs and exported names.

    Every variable with a value sits in both tables; a name declared with
    ``export NAME`` and no value sits only in the exported table.
    """

    def __init__(self) -> None:
        self._env: dict[str, str] = {}
        self._export: dict[str, str | None] = {}

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | Iterable[str]) -> Environment:
        """Build from a mapping or from ``NAME=value`` strings."""
        result = cls()
        if isinstance(environ, Mapping):
            pairs: Iterable[tuple[str, str | None]] = environ.items()
        else:
            pairs = (split_assignment(entry) for entry in environ)
        for name, value in pairs:
            value = "" if value is None else value
            result._env[name] = value
            result._export[name] = value
        return result

    def get(self, name: str) -> str | None:
        """Value of a variable passed to programs, or None."""
        return self._env.get(name)

    def set(self, name: str, value: str) -> None:
        """Give ``name`` a value, keeping its place if it already exists."""
        self._export[name] = value
        self._env[name] = value

    def append(self, name: str, value: str) -> None:
        """Append to an exported variable's value (``NAME+=value``)."""
        if name not in self._export:
            self.set(name, value)
            return
        old = self._export[name]
        self.set(name, value if old is None else old + value)

    def declare(self, name: str) -> None:
        """Export ``name`` without a value unless it is already exported."""
        self._export.setdefault(name, None)

    def unset(self, name: str) -> None:
        """Remove ``name`` from both tables."""
        self._export.pop(name, None)
        self._env.pop(name, None)

    def to_envp(self) -> list[str]:
        """The ``NAME=value`` list handed to programs."""
        return [f"{name}={value}" for name, value in self._env.items()]

    def env_lines(self) -> Iterator[str]:
        """Lines printed by the ``env`` builtin."""
        for name, value in self._env.items():
            yield f"{name}={value}"

    def export_lines(self) -> Iterator[str]:
        """Lines printed by ``export`` without arguments."""
        for name, value in self._export.items():
            if value is None:
                yield f"declare -x {name}"
            else:
                yield f'declare -x {name}="{value}"'

    def change_shlvl(self, delta: int) -> str | None:
        """Add ``delta`` to SHLVL if it is exported; return the new value."""
        if "SHLVL" not in self._export:
            return None
        current = self._export["SHLVL"] or ""
        new = str(_to_c_int(_atoi(current) + delta))
        self._export["SHLVL"] = new
        if "SHLVL" in self._env:
            self._env["SHLVL"] = new
        return new