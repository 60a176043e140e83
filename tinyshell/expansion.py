"""Turning tokens into argument text: quotes and variable expansion."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .environment import Environment
from .tokens import Token, TokenType

_VARIABLE_KINDS = (TokenType.ENV, TokenType.EXIT_STATUS)


@dataclass
class ExpansionContext:
    """What expansion needs: the variables, the last status, and a flag
    recording that some variable was expanded."""

    env: Environment = field(default_factory=Environment)
    exit_status: int = 0
    expanded: bool = False


def skip_spaces(tokens: Sequence[Token], index: int) -> int:
    """Index of the first token at or after ``index`` that is not a blank."""
    while index < len(tokens) and tokens[index].kind is TokenType.WHITE_SPACE:
        index += 1
    return index


def expand_variable(context: ExpansionContext, token: Token) -> str:
    """Value of a ``$NAME`` or ``$?`` token; unknown names give ``""``."""
    context.expanded = True
    if token.kind is TokenType.EXIT_STATUS:
        return str(context.exit_status)
    value = context.env.get(token.content[1:])
    return "" if value is None else value


def _scan_quoted(
    tokens: Sequence[Token], index: int, piece: Callable[[Token], str]
) -> tuple[str | None, int]:
    kind = tokens[index].kind
    pos = index + 1
    parts: list[str] | None = None
    while pos < len(tokens):
        if parts is None:
            parts = []
        tok = tokens[pos]
        if tok.kind is kind:
            if pos + 1 < len(tokens) and tokens[pos + 1].kind is kind:
                pos += 2
                continue
            return "".join(parts), pos + 1
        parts.append(piece(tok))
        pos += 1
    return (None if parts is None else "".join(parts)), pos


def parse_quoted(
    context: ExpansionContext, tokens: Sequence[Token], index: int
) -> tuple[str | None, int]:
    """Read the quoted span opened at ``index``.

    Adjacent spans of the same quote are joined. Variables inside are
    expanded (the lexer has already made single-quoted ones plain words).
    Returns the text, or None when nothing follows the quote, and the index
    just past the span.
    """

    def piece(tok: Token) -> str:
        if tok.kind in _VARIABLE_KINDS:
            return expand_variable(context, tok)
        return tok.content

    return _scan_quoted(tokens, index, piece)


def parse_argument(
    context: ExpansionContext, tokens: Sequence[Token], index: int
) -> tuple[str | None, int]:
    """Text of the word, quoted span or variable at ``index`` and the index
    past it; None for tokens that carry no argument text."""
    if index >= len(tokens):
        return None, index
    tok = tokens[index]
    if tok.kind in (TokenType.WORD, TokenType.ESCAPE):
        return tok.content, index + 1
    if tok.kind in (TokenType.DQUOTE, TokenType.QUOTE):
        return parse_quoted(context, tokens, index)
    if tok.kind in _VARIABLE_KINDS:
        return expand_variable(context, tok), index + 1
    return None, index + 1