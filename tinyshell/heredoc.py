"""Here-documents: reading the delimiter and collecting the body."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TextIO

from .expansion import ExpansionContext, _scan_quoted, expand_variable
from .lexer import tokenize
from .tokens import Token, TokenType, is_quote, is_redirection, is_whitespace

PROMPT = "> "


class HereDocInterrupted(Exception):
    """Reading a here-document was interrupted; the line is not run."""

    status = 1


class LineReader:
    """Reads a stream one line at a time, keeping the newline."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def next_line(self) -> str | None:
        """The next line, the last unterminated piece, or None at the end."""
        try:
            line = self.stream.readline()
        except OSError:
            return None
        return line or None

    def __iter__(self) -> Iterator[str]:
        while (line := self.next_line()) is not None:
            yield line


def expand_line(context: ExpansionContext, line: str) -> str:
    """Expand every ``$`` word of a here-document line and add a newline."""
    parts = []
    for tok in tokenize(line):
        kind = tok.kind
        if kind is TokenType.WORD and tok.content.startswith("$"):
            kind = TokenType.ENV
        if tok.content == "$?":
            kind = TokenType.EXIT_STATUS
        if kind in (TokenType.ENV, TokenType.EXIT_STATUS):
            parts.append(expand_variable(context, Token(tok.content, kind, tok.state)))
        else:
            parts.append(tok.content)
    return "".join(parts) + "\n"


def quoted_delimiter(tokens: Sequence[Token], index: int) -> tuple[str | None, int]:
    """Text of the quoted span opened at ``index``, unexpanded, and the index
    past it."""
    return _scan_quoted(tokens, index, lambda tok: tok.content)


def read_delimiter(tokens: Sequence[Token], index: int) -> tuple[str, bool, int]:
    """Read the delimiter word starting at ``index`` (after ``<<``).

    Returns the delimiter, whether any part of it was quoted (which turns
    off expansion of the body), and the index of the first token not used.
    """
    index = len(tokens) if index > len(tokens) else index
    while index < len(tokens) and tokens[index].kind is TokenType.WHITE_SPACE:
        index += 1
    parts: list[str] = []
    quoted = False
    while (
        index < len(tokens)
        and not is_whitespace(tokens[index].kind)
        and tokens[index].kind is not TokenType.PIPE_LINE
    ):
        tok = tokens[index]
        following = tokens[index + 1] if index + 1 < len(tokens) else None
        if is_quote(tok.kind):
            text, index = quoted_delimiter(tokens, index)
            parts.append(text or "")
            quoted = True
        else:
            if not (
                tok.kind is TokenType.ENV
                and following is not None
                and is_quote(following.kind)
            ):
                parts.append(tok.content)
            index += 1
        if index < len(tokens) and is_redirection(tokens[index].kind):
            break
    return "".join(parts), quoted, index


def collect_heredoc(
    delimiter: str,
    expand: bool,
    context: ExpansionContext,
    reader: LineReader,
    prompt: TextIO | None = None,
) -> str:
    """Read lines up to ``delimiter`` or the end of input and return the body.

    When ``prompt`` is given, ``"> "`` is written to it before each line.
    Lines holding ``$`` are expanded when ``expand`` is set. An interrupt
    while reading raises HereDocInterrupted.
    """
    parts: list[str] = []
    try:
        while True:
            if prompt is not None:
                prompt.write(PROMPT)
                prompt.flush()
            line = reader.next_line()
            if line is None:
                break
            trimmed = line.strip("\n")
            if trimmed == delimiter:
                break
            if expand and "$" in trimmed:
                parts.append(expand_line(context, trimmed))
            else:
                parts.append(line)
    except KeyboardInterrupt as exc:
        raise HereDocInterrupted() from exc
    return "".join(parts)