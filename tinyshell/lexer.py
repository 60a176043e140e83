"""Split an input line into tokens, tracking quoting state."""

from __future__ import annotations

from .tokens import State, Token, TokenType, is_special, is_quote, is_whitespace, scan_word

_SINGLE_CHARS = {
    "'": TokenType.QUOTE,
    '"': TokenType.DQUOTE,
    "\\": TokenType.ESCAPE,
    "\n": TokenType.NEW_LINE,
}


def _dollar(text: str, pos: int) -> tuple[str, TokenType]:
    advance = text[pos + 1 : pos + 2]
    if (
        not advance
        or is_whitespace(advance)
        or advance == "$"
        or (is_special(advance) and not is_quote(advance))
    ):
        return ("$$" if advance == "$" else "$"), TokenType.WORD
    if advance == "?":
        return "$?", TokenType.EXIT_STATUS
    return "$" + scan_word(text[pos + 1 :], True), TokenType.ENV


def _next_token(text: str, pos: int) -> tuple[str, TokenType]:
    c = text[pos]
    following = text[pos + 1 : pos + 2]
    if not is_special(c) and not is_whitespace(c):
        return scan_word(text[pos:], False), TokenType.WORD
    if c in _SINGLE_CHARS:
        return c, _SINGLE_CHARS[c]
    if is_whitespace(c):
        return c, TokenType.WHITE_SPACE
    if c == "|":
        return ("||", TokenType.OR) if following == "|" else ("|", TokenType.PIPE_LINE)
    if c == "&":
        return ("&&" if following == "&" else "&"), TokenType.AND
    if c == "$":
        return _dollar(text, pos)
    if c == "<":
        return ("<<", TokenType.HERE_DOC) if following == "<" else ("<", TokenType.REDIR_IN)
    return (">>", TokenType.DREDIR_OUT) if following == ">" else (">", TokenType.REDIR_OUT)


def _change_state(state: State, kind: TokenType) -> State:
    if state is State.GENERAL:
        if kind is TokenType.QUOTE:
            return State.IN_QUOTE
        if kind is TokenType.DQUOTE:
            return State.IN_DQUOTE
    elif state is State.IN_QUOTE and kind is TokenType.QUOTE:
        return State.GENERAL
    elif state is State.IN_DQUOTE and kind is TokenType.DQUOTE:
        return State.GENERAL
    return state


def tokenize(text: str) -> list[Token]:
    """Turn a command line into a list of tokens.

    The concatenated contents of the tokens reproduce the line (up to any
    NUL character, which ends the input). Quote tokens that open or close a
    quoted span are in the general state; variables inside single quotes
    become plain words.
    """
    text = text.split("\0", 1)[0]
    tokens: list[Token] = []
    state = State.GENERAL
    pos = 0
    while pos < len(text):
        content, kind = _next_token(text, pos)
        pos += len(content)
        state = _change_state(state, kind)
        if state is State.IN_QUOTE and kind in (TokenType.ENV, TokenType.EXIT_STATUS):
            kind = TokenType.WORD
        opening = (state is State.IN_QUOTE and kind is TokenType.QUOTE) or (
            state is State.IN_DQUOTE and kind is TokenType.DQUOTE
        )
        tokens.append(Token(content, kind, State.GENERAL if opening else state))
    return tokens