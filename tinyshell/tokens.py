"""Token kinds, lexer states and character classes shared by the lexer and parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

_SPACES = "\t\n\v\f\r "
_SPECIALS = "\"'><&|$\\"


class TokenType(Enum):
    """Kinds of lexical elements produced by the lexer."""

    WORD = auto()
    WHITE_SPACE = auto()
    NEW_LINE = auto()
    QUOTE = auto()
    DQUOTE = auto()
    ESCAPE = auto()
    ENV = auto()
    EXIT_STATUS = auto()
    PIPE_LINE = auto()
    REDIR_IN = auto()
    REDIR_OUT = auto()
    HERE_DOC = auto()
    DREDIR_OUT = auto()
    OR = auto()
    AND = auto()


class State(Enum):
    """Quoting context a token was read in."""

    IN_DQUOTE = auto()
    IN_QUOTE = auto()
    GENERAL = auto()


_REDIRECTIONS = frozenset(
    {TokenType.REDIR_IN, TokenType.REDIR_OUT, TokenType.HERE_DOC, TokenType.DREDIR_OUT}
)
_SPACE_KINDS = frozenset({TokenType.WHITE_SPACE, TokenType.NEW_LINE})
_QUOTE_KINDS = frozenset({TokenType.QUOTE, TokenType.DQUOTE})


@dataclass
class Token:
    """One lexical element: its text, its kind and its quoting state."""

    content: str
    kind: TokenType
    state: State = State.GENERAL


def is_redirection(kind: TokenType) -> bool:
    """True for the four redirection operators."""
    return kind in _REDIRECTIONS


def is_whitespace(c: str | TokenType) -> bool:
    """True for a blank character, or for a token kind that stands for one."""
    if isinstance(c, TokenType):
        return c in _SPACE_KINDS
    return len(c) == 1 and c in _SPACES


def is_quote(c: str | TokenType) -> bool:
    """True for a single or double quote character or token kind."""
    if isinstance(c, TokenType):
        return c in _QUOTE_KINDS
    return len(c) == 1 and c in "\"'"


def is_special(c: str) -> bool:
    """True for characters that end a plain word."""
    return len(c) == 1 and c in _SPECIALS


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or ("0" <= c <= "9")


def scan_word(text: str, variable: bool = False) -> str:
    """Return the leading word of ``text``.

    With ``variable`` set, the result is a variable name: a run of letters,
    digits and underscores, or a single character when the first one cannot
    start a name (and is not special). Otherwise it is the run of characters
    up to the first special or blank one.
    """
    if variable:
        first = text[:1]
        if not is_special(first) and not _is_alpha(first) and first != "_":
            return first
        end = 0
        while end < len(text) and (_is_alnum(text[end]) or text[end] == "_"):
            end += 1
        return text[:end]
    end = 0
    while end < len(text) and not is_special(text[end]) and not is_whitespace(text[end]):
        end += 1
    return text[:end]