import io

import pytest

from tinyshell.environment import Environment
from tinyshell.expansion import ExpansionContext
from tinyshell.heredoc import (
    HereDocInterrupted,
    LineReader,
    collect_heredoc,
    expand_line,
    quoted_delimiter,
    read_delimiter,
)
from tinyshell.lexer import tokenize
from tinyshell.tokens import TokenType


def make_context(**variables):
    return ExpansionContext(Environment.from_environ(variables))


class _InterruptingStream:
    def readline(self):
        raise KeyboardInterrupt


def test_line_reader_lines_and_end():
    reader = LineReader(io.StringIO("a\nb"))
    assert reader.next_line() == "a\n"
    assert reader.next_line() == "b"
    assert reader.next_line() is None


def test_line_reader_iterates():
    assert list(LineReader(io.StringIO("x\ny\n"))) == ["x\n", "y\n"]


def test_expand_line_variables():
    assert expand_line(make_context(A="1"), "x=$A!") == "x=1!\n"


def test_expand_line_keeps_quotes():
    assert expand_line(make_context(A="1"), "'$A'") == "'1'\n"


def test_expand_line_exit_status():
    context = make_context()
    context.exit_status = 7
    assert expand_line(context, "$?") == str(7) + "\n"


def test_read_delimiter_plain():
    tokens = tokenize("<< EOF")
    assert read_delimiter(tokens, 1) == ("EOF", False, len(tokens))


def test_read_delimiter_quoted():
    tokens = tokenize('<< "E O"F')
    assert read_delimiter(tokens, 1) == ("E OF", True, len(tokens))


def test_read_delimiter_dollar_before_quote_dropped():
    tokens = tokenize("<< $'x'")
    text, quoted, _ = read_delimiter(tokens, 1)
    assert (text, quoted) == ("x", True)


def test_read_delimiter_stops_before_redirection():
    tokens = tokenize("<<EOF>out")
    text, quoted, index = read_delimiter(tokens, 1)
    assert text == "EOF"
    assert quoted is False
    assert tokens[index].kind is TokenType.REDIR_OUT


def test_quoted_delimiter_does_not_expand():
    tokens = tokenize('"$HOME"')
    assert quoted_delimiter(tokens, 0) == ("$HOME", len(tokens))


def test_collect_expands_until_delimiter():
    reader = LineReader(io.StringIO("hello $USER\nplain\nEOF\nafter\n"))
    body = collect_heredoc("EOF", True, make_context(USER="bob"), reader)
    assert body == "hello bob\nplain\n"
    assert reader.next_line() == "after\n"


def test_collect_without_expansion_keeps_lines():
    reader = LineReader(io.StringIO("hello $USER\nEOF\n"))
    body = collect_heredoc("EOF", False, make_context(USER="bob"), reader)
    assert body == "hello $USER\n"


def test_collect_stops_at_end_of_input():
    reader = LineReader(io.StringIO("a\nb\n"))
    assert collect_heredoc("EOF", True, make_context(), reader) == "a\nb\n"


def test_collect_writes_prompt_per_line():
    out = io.StringIO()
    reader = LineReader(io.StringIO("a\nEOF\n"))
    collect_heredoc("EOF", True, make_context(), reader, out)
    assert out.getvalue() == "> > "


def test_collect_interrupted():
    reader = LineReader(_InterruptingStream())
    with pytest.raises(HereDocInterrupted):
        collect_heredoc("EOF", True, make_context(), reader)