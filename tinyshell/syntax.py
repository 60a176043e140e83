"""Syntax checks run on a token list before it is parsed."""

from __future__ import annotations

from collections.abc import Iterable

from .tokens import State, Token, TokenType, is_quote, is_redirection

MAX_HEREDOCS = 16


class ShellSyntaxError(Exception):
    """The command line is malformed; it is not run."""

    status = 258


class HereDocLimitError(Exception):
    """Too many here-documents on one line; the shell stops."""

    status = 2

    def __init__(self, message: str = "maximum here-document count exceeded") -> None:
        super().__init__(message)


def _unexpected(content: str) -> ShellSyntaxError:
    return ShellSyntaxError(f"syntax error near unexpected token `{content}'")


def _skip_spaces(tokens: list[Token], index: int) -> int:
    while index < len(tokens) and tokens[index].kind is TokenType.WHITE_SPACE:
        index += 1
    return index


def _first_check(tokens: list[Token]) -> tuple[int, ShellSyntaxError | None]:
    count = 0
    error = None
    for tok in tokens:
        if tok.state is State.GENERAL:
            if tok.kind is TokenType.AND:
                error = _unexpected(tok.content)
            elif tok.kind is TokenType.HERE_DOC:
                count += 1
        if error is not None:
            break
    if count > MAX_HEREDOCS:
        raise HereDocLimitError()
    return count, error


def _check_operator(tokens: list[Token], index: int) -> int:
    kind = tokens[index].kind
    if kind is TokenType.OR:
        raise _unexpected("||")
    index = _skip_spaces(tokens, index + 1)
    if index >= len(tokens):
        raise _unexpected("newline")
    following = tokens[index]
    pipe_like = following.kind in (TokenType.PIPE_LINE, TokenType.OR)
    if is_redirection(kind) and (pipe_like or is_redirection(following.kind)):
        raise _unexpected(following.content)
    if kind is TokenType.PIPE_LINE and pipe_like:
        raise _unexpected(following.content)
    return index


def _check_quotes(tokens: list[Token], index: int) -> None:
    singles = doubles = 0
    for tok in tokens[index:]:
        if tok.state is not State.GENERAL:
            continue
        if tok.kind is TokenType.QUOTE:
            singles += 1
        elif tok.kind is TokenType.DQUOTE:
            doubles += 1
    if singles % 2 or doubles % 2:
        raise ShellSyntaxError("Missing closing quote!!")


def check_syntax(tokens: Iterable[Token]) -> int:
    """Validate a token list and return how many here-documents it holds.

    Raises ShellSyntaxError for misplaced operators or unbalanced quotes and
    HereDocLimitError when more than sixteen here-documents are requested.
    """
    tokens = list(tokens)
    if not tokens:
        return 0
    count, error = _first_check(tokens)
    if error is not None:
        raise error
    index = _skip_spaces(tokens, 0)
    if index < len(tokens) and tokens[index].kind is TokenType.PIPE_LINE:
        raise _unexpected("|")
    while index < len(tokens):
        tok = tokens[index]
        if tok.state is State.GENERAL:
            if is_redirection(tok.kind) or tok.kind in (TokenType.PIPE_LINE, TokenType.OR):
                index = _check_operator(tokens, index)
            if index < len(tokens) and is_quote(tokens[index].kind):
                _check_quotes(tokens, index)
                break
        index += 1
    return count