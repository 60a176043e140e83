import re

import pytest

from tinyshell.lexer import tokenize
from tinyshell.syntax import HereDocLimitError, ShellSyntaxError, check_syntax


def unexpected(content):
    return re.escape(f"syntax error near unexpected token `{content}'")


@pytest.mark.parametrize(
    "line, token",
    [
        ("| ls", "|"),
        ("   | ls", "|"),
        ("ls |", "newline"),
        ("ls || wc", "||"),
        ("ls && wc", "&&"),
        ("ls & wc", "&"),
        ("cat <", "newline"),
        ("cat < | wc", "|"),
        ("cat > > f", ">"),
        ("cat >> << f", "<<"),
        ("ls | | wc", "|"),
        ("ls | || wc", "||"),
    ],
)
def test_unexpected_token(line, token):
    with pytest.raises(ShellSyntaxError, match=unexpected(token)) as excinfo:
        check_syntax(tokenize(line))
    assert excinfo.value.status == 258


@pytest.mark.parametrize("line", ["echo 'abc", 'echo "abc', "echo 'a' \"b"])
def test_missing_quote(line):
    with pytest.raises(ShellSyntaxError, match=re.escape("Missing closing quote!!")):
        check_syntax(tokenize(line))


def test_empty_line_has_no_heredocs():
    assert check_syntax(tokenize("")) == 0


def test_valid_pipeline():
    assert check_syntax(tokenize("cat < in | grep x > out")) == 0


def test_quoted_operators_are_accepted():
    assert check_syntax(tokenize("echo '&&' \"||\" '|'")) == 0


def test_nested_quote_is_balanced():
    assert check_syntax(tokenize("echo \"a'b\"")) == 0


def test_heredoc_count():
    assert check_syntax(tokenize("cat << a << b")) == 2


def test_quoted_heredoc_not_counted():
    assert check_syntax(tokenize("echo '<<' x")) == 0


def test_sixteen_heredocs_allowed():
    line = "cat" + " << a" * 16
    assert check_syntax(tokenize(line)) == 16


def test_too_many_heredocs():
    line = "cat" + " << a" * 17
    with pytest.raises(HereDocLimitError) as excinfo:
        check_syntax(tokenize(line))
    assert excinfo.value.status == 2
    assert "maximum here-document count exceeded" in str(excinfo.value)


def test_and_before_heredocs_stops_counting():
    line = "ls & cat" + " << a" * 17
    with pytest.raises(ShellSyntaxError, match=unexpected("&")):
        check_syntax(tokenize(line))


def test_heredoc_limit_wins_over_later_and():
    line = "cat" + " << a" * 17 + " & ls"
    with pytest.raises(HereDocLimitError):
        check_syntax(tokenize(line))


def test_accepts_any_iterable():
    assert check_syntax(iter(tokenize("cat << a"))) == 1