# tinyshell

A small interactive command shell. It reads a line and splits it into
tokens. It checks the syntax, expands variables and runs the commands.
Commands in a pipeline are connected by pipes.

## Features

- Pipelines: `ls -l | grep py | wc -l`
- Redirections: `<`, `>`, `>>` and here-documents with `<<`. A line may
  hold at most sixteen here-documents. With more, the shell stops with
  status 2.
- Single and double quotes. `$NAME` and `$?` are expanded outside single
  quotes. A here-document body is expanded unless its delimiter is quoted.
- Builtins: `echo` (with `-n`), `cd`, `pwd`, `env`, `export`, `unset` and
  `exit`. `cd`, `export`, `unset` and `exit` change the shell only when
  they are the only command on the line.
- Programs are looked up in the directories of `PATH`.
  - A command that cannot be found gives status 127.
  - A directory, or a non-executable name that contains `/`, gives 126.
- `SHLVL` goes up by one when the shell starts. It goes down by one when
  the shell leaves at the end of input.
- Misplaced operators and unbalanced quotes are reported as syntax errors,
  for example `syntax error near unexpected token`. They set the exit
  status to 258.

## Installation

```
pip install .
```

## Usage

Start the interactive shell:

```
tinyshell
```

The prompt is `minishell : `. Type commands as you would in a POSIX shell.
Press Ctrl-D on an empty line to leave; the shell prints `exit`.

The lines of a here-document are read without a prompt. In the session
below, the lines `value is $GREETING` and `EOF` are typed as input:

```
minishell : export GREETING=hello
minishell : echo "$GREETING world" | tr a-z A-Z > out.txt
minishell : cat << EOF
value is $GREETING
EOF
value is hello
minishell : exit 3
exit
```

## Using it from Python

`Shell` runs a session over any pair of text streams.

- `run_line` runs one line and returns its exit status.
- `loop` runs lines until the end of input or `exit`, and returns the
  final status.

```python
import io
from tinyshell.shell import Shell

out = io.StringIO()
shell = Shell({"PATH": "/usr/bin:/bin"}, io.StringIO(""), out)
shell.run_line("echo hello")
print(out.getvalue())  # "hello\n"
```

The stages can also be used on their own:

```python
from tinyshell.lexer import tokenize
from tinyshell.syntax import check_syntax, ShellSyntaxError
from tinyshell.parser import parse

tokens = tokenize("cat < in.txt | wc -l")
check_syntax(tokens)          # returns the number of here-documents
with parse(tokens) as result:  # opens redirection targets
    for command in result.commands:
        print(command.args)
```

Other entry points:

- `tinyshell.environment.Environment` holds the exported and environment
  variables.
- `tinyshell.executor.resolve_command` finds a program in a `PATH` value.
- `tinyshell.executor.Executor` runs a list of parsed commands.

## What it does not do

The shell is deliberately small.

- `&&`, `||` and `&` are rejected as syntax errors.
- There is no `;` command separator.
- It has no job control, no globbing or tilde expansion outside `cd ~`,
  no subshells and no scripting constructs such as `if` or loops.
- It does not keep a history file.

## Running the tests

```
pip install ".[test]"
pytest
```