"""Build the command list of a line: arguments, redirections and here-documents."""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Iterable, MutableSequence
from dataclasses import dataclass, field
from typing import IO

from .expansion import ExpansionContext, parse_argument, skip_spaces
from .heredoc import HereDocInterrupted, LineReader, collect_heredoc, read_delimiter
from .tokens import State, Token, TokenType, is_quote, is_redirection, is_whitespace

_OPEN_MODES = {
    TokenType.REDIR_IN: (os.O_RDONLY, "r"),
    TokenType.REDIR_OUT: (os.O_CREAT | os.O_RDWR | os.O_TRUNC, "w"),
    TokenType.DREDIR_OUT: (os.O_CREAT | os.O_APPEND | os.O_RDWR, "a"),
}


@dataclass
class Command:
    """One simple command of a pipeline.

    ``stdin`` and ``stdout`` are files opened by redirections, or None for
    the default streams. ``bad_input``/``bad_output`` record a redirection
    that could not be set up; such a command is not run.
    """

    args: list[str] = field(default_factory=list)
    stdin: IO[str] | None = None
    stdout: IO[str] | None = None
    bad_input: bool = False
    bad_output: bool = False

    @property
    def failed(self) -> bool:
        """True when a redirection of this command failed."""
        return self.bad_input or self.bad_output

    def close(self) -> None:
        """Close the files opened for this command."""
        for handle in (self.stdin, self.stdout):
            if handle is not None and not handle.closed:
                handle.close()


@dataclass
class ParseResult:
    """The commands of a line, the redirection errors met while building
    them, and whether a here-document was interrupted."""

    commands: list[Command] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    interrupted: bool = False

    def close(self) -> None:
        """Close every file opened for the commands."""
        for command in self.commands:
            command.close()

    def __enter__(self) -> ParseResult:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def mark_quoted_dollars(tokens: MutableSequence[Token]) -> None:
    """Make a lone ``$`` inside quotes and right before a quote a plain word."""
    for tok, following in zip(tokens, tokens[1:]):
        if tok.state is not State.GENERAL and tok.content == "$" and is_quote(following.kind):
            tok.kind = TokenType.WORD


def _open_redirect(path: str, kind: TokenType) -> IO[str]:
    flags, mode = _OPEN_MODES[kind]
    fd = os.open(path, flags, 0o644)
    try:
        return os.fdopen(fd, mode, encoding="utf-8")
    except BaseException:
        os.close(fd)
        raise


class _Parser:
    def __init__(
        self, tokens: list[Token], context: ExpansionContext, reader: LineReader
    ) -> None:
        self.tokens = tokens
        self.context = context
        self.reader = reader
        self.commands: list[Command] = []
        self.errors: list[str] = []
        self.interrupted = False
        self.expnd: str | None = None
        self._reset()

    def _reset(self) -> None:
        self.words: list[str] = []
        self.stdin: IO[str] | None = None
        self.stdout: IO[str] | None = None
        self.bad_input = False
        self.bad_output = False
        self.file_error = False

    def _pending_handles(self) -> list[IO[str]]:
        return [h for h in (self.stdin, self.stdout) if h is not None]

    def run(self) -> ParseResult:
        tokens = self.tokens
        try:
            index = skip_spaces(tokens, 0)
            while index < len(tokens):
                index = self._simple_command(index)
                self._finish_command()
                if index < len(tokens):
                    index += 1
        except BaseException:
            for handle in self._pending_handles():
                handle.close()
            for command in self.commands:
                command.close()
            raise
        return ParseResult(self.commands, self.errors, self.interrupted)

    def _finish_command(self) -> None:
        self.commands.append(
            Command(self.words, self.stdin, self.stdout, self.bad_input, self.bad_output)
        )
        self._reset()

    def _simple_command(self, index: int) -> int:
        tokens = self.tokens
        count = len(tokens)
        text: str | None = None
        while index < count and not (
            tokens[index].kind is TokenType.PIPE_LINE and tokens[index].state is State.GENERAL
        ):
            tok = tokens[index]
            if is_redirection(tok.kind):
                if text is not None:
                    self.words.append(text)
                    text = None
                index = self._redirect(index)
                continue
            if text is None and not is_whitespace(tok.kind):
                text = ""
            if is_whitespace(tok.kind) and tok.state is State.GENERAL:
                index += 1
                continue
            text, index = self._collect(index, text, None)
            at_end = index >= count
            if at_end or is_whitespace(tokens[index].kind) or tokens[index].kind is TokenType.PIPE_LINE:
                if text is not None:
                    self.words.append(text)
                text = None
            if at_end or tokens[index].kind is TokenType.PIPE_LINE:
                break
            if is_whitespace(tokens[index].kind):
                index += 1
        if text is not None:
            self.words.append(text)
        return index

    def _collect(
        self, index: int, text: str | None, redirect: TokenType | None
    ) -> tuple[str | None, int]:
        tokens = self.tokens
        index = skip_spaces(tokens, index)
        while (
            index < len(tokens)
            and not is_whitespace(tokens[index].kind)
            and tokens[index].kind is not TokenType.PIPE_LINE
        ):
            tok = tokens[index]
            if redirect is not None and tok.kind is TokenType.ENV:
                self.expnd = tok.content
            piece, index = parse_argument(self.context, tokens, index)
            text = None if text is None or piece is None else text + piece
            if text is not None and index < len(tokens) and is_redirection(tokens[index].kind):
                break
        return text, index

    def _redirect(self, index: int) -> int:
        kind = self.tokens[index].kind
        index += 1
        if kind is TokenType.HERE_DOC and not self.interrupted:
            return self._heredoc(index)
        text, index = self._collect(index, "", kind)
        if not self.file_error and kind in _OPEN_MODES:
            self._open(kind, text or "")
        return index

    def _heredoc(self, index: int) -> int:
        delimiter, quoted, index = read_delimiter(self.tokens, index)
        try:
            body = collect_heredoc(delimiter, not quoted, self.context, self.reader)
        except HereDocInterrupted:
            self.interrupted = True
            return index
        if self.bad_input:
            return index
        handle = tempfile.TemporaryFile("w+", encoding="utf-8")
        handle.write(body)
        handle.seek(0)
        if self.stdin is not None:
            self.stdin.close()
        self.stdin = handle
        return index

    def _save_empty_target(self) -> None:
        if self.context.expanded:
            self.errors.append(f"{self.expnd or ''}: ambiguous redirect")
            self.context.expanded = False
        else:
            self.errors.append(": No such file or directory")
        self.file_error = True

    def _open(self, kind: TokenType, target: str) -> None:
        is_input = kind is TokenType.REDIR_IN
        if (self.bad_input if is_input else self.bad_output):
            return
        current = self.stdin if is_input else self.stdout
        if current is not None:
            current.close()
        handle: IO[str] | None = None
        if not target:
            self._save_empty_target()
        else:
            try:
                handle = _open_redirect(target, kind)
            except OSError as exc:
                self.errors.append(f"{target} : {exc.strerror or exc}")
                self.file_error = True
        if is_input:
            self.stdin = handle
            self.bad_input = handle is None
        else:
            self.stdout = handle
            self.bad_output = handle is None


def parse(
    tokens: Iterable[Token],
    context: ExpansionContext | None = None,
    reader: LineReader | None = None,
) -> ParseResult:
    """Build the commands of a syntax-checked token list.

    Redirection targets are opened as they are met; here-document bodies are
    read from ``reader`` (standard input by default). Errors from opening
    files are collected, one line each, in the result. The caller owns the
    opened files and should close the result.
    """
    if context is None:
        context = ExpansionContext()
    if reader is None:
        reader = LineReader(sys.stdin)
    return _Parser(list(tokens), context, reader).run()