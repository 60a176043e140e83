import io
import os
import signal

import pytest

from tinyshell.builtins import ExitRequest, ShellState
from tinyshell.environment import Environment
from tinyshell.executor import CommandNotFound, Executor, resolve_command
from tinyshell.parser import Command

SYSTEM_PATH = os.environ.get("PATH", "/usr/bin:/bin")


@pytest.fixture
def state():
    env = Environment.from_environ({"PATH": SYSTEM_PATH, "HOME": "/"})
    return ShellState(env=env, err=io.StringIO())


@pytest.fixture
def executor(state):
    ex = Executor(state)
    ex.stdout = io.StringIO()
    return ex


def _script(directory, name):
    directory.mkdir(exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\necho ran\n")
    path.chmod(0o755)
    return path


def test_resolve_searches_path(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    _script(bin_dir, "greet")
    monkeypatch.chdir(tmp_path)
    assert resolve_command("greet", f"/nonexistent:{bin_dir}") == f"{bin_dir}/greet"


def test_resolve_skips_empty_path_entries(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    _script(bin_dir, "greet")
    monkeypatch.chdir(tmp_path)
    assert resolve_command("greet", f"::{bin_dir}::") == f"{bin_dir}/greet"


def test_resolve_executable_name_used_directly(tmp_path):
    script = _script(tmp_path / "bin", "tool")
    assert resolve_command(str(script), None) == str(script)


def test_resolve_not_found(tmp_path):
    with pytest.raises(CommandNotFound) as info:
        resolve_command("nothing-here-zz", str(tmp_path))
    assert info.value.status == 127
    assert info.value.message == "nothing-here-zz: command not found"


def test_resolve_without_path():
    with pytest.raises(CommandNotFound) as info:
        resolve_command("nothing-here-zz", None)
    assert info.value.status == 127
    assert info.value.message == "nothing-here-zz: No such file or directory"


def test_resolve_slash_name_missing():
    with pytest.raises(CommandNotFound) as info:
        resolve_command("/no/such/program", SYSTEM_PATH)
    assert info.value.status == 126


def test_resolve_directory(tmp_path):
    with pytest.raises(CommandNotFound) as info:
        resolve_command(str(tmp_path), SYSTEM_PATH)
    assert info.value.status == 126
    assert info.value.message.endswith(": is a directory")


def test_resolve_empty_name():
    with pytest.raises(CommandNotFound) as info:
        resolve_command("", SYSTEM_PATH)
    assert info.value.status == 127


def test_echo_builtin(executor, state):
    status = executor.run([Command(["echo", "hello", "world"])])
    assert status == 0
    assert executor.stdout.getvalue() == "hello world\n"
    assert state.exit_status == 0


def test_uppercase_echo_is_builtin(executor):
    executor.run([Command(["ECHO", "loud"])])
    assert executor.stdout.getvalue() == "loud\n"


def test_external_output_captured(executor):
    status = executor.run([Command(["printf", "%s", "plain"])])
    assert status == 0
    assert executor.stdout.getvalue() == "plain"


def test_pipeline_builtin_into_program(executor):
    executor.run([Command(["echo", "hello"]), Command(["tr", "a-z", "A-Z"])])
    assert executor.stdout.getvalue() == "hello".upper() + "\n"


def test_pipeline_programs(executor):
    executor.run([Command(["printf", "%s", "piped"]), Command(["cat"])])
    assert executor.stdout.getvalue() == "piped"


def test_exit_status_of_program(executor, state):
    status = executor.run([Command(["sh", "-c", "exit 3"])])
    assert status == 3
    assert state.exit_status == 3


def test_signal_status(executor):
    status = executor.run([Command(["sh", "-c", "kill -TERM $$"])])
    assert status == 128 + int(signal.SIGTERM)


def test_command_not_found_status(executor, state):
    status = executor.run([Command(["nothing-here-zz"])])
    assert status == 127
    assert "nothing-here-zz: command not found" in state.err.getvalue()


def test_failed_redirection_not_run(executor):
    status = executor.run([Command(["echo", "skipped"], bad_input=True)])
    assert status == 1
    assert executor.stdout.getvalue() == ""


def test_empty_command_alone(executor):
    assert executor.run([Command([])]) == 1


def test_builtin_output_to_file(executor, tmp_path):
    target = tmp_path / "out.txt"
    handle = open(target, "w", encoding="utf-8")
    executor.run([Command(["echo", "saved"], stdout=handle)])
    handle.close()
    assert target.read_text() == "saved\n"
    assert executor.stdout.getvalue() == ""


def test_program_output_to_file(executor, tmp_path):
    target = tmp_path / "out.txt"
    handle = open(target, "w", encoding="utf-8")
    status = executor.run([Command(["printf", "%s", "direct"], stdout=handle)])
    handle.close()
    assert status == 0
    assert target.read_text() == "direct"
    assert executor.stdout.getvalue() == ""


def test_program_input_from_file(executor, tmp_path):
    source = tmp_path / "in.txt"
    source.write_text("first\nsecond\n")
    handle = open(source, "r", encoding="utf-8")
    executor.run([Command(["cat"], stdin=handle)])
    handle.close()
    assert executor.stdout.getvalue() == "first\nsecond\n"


def test_exit_alone_raises(executor):
    with pytest.raises(ExitRequest) as info:
        executor.run([Command(["exit", "5"])])
    assert info.value.status == 5


def test_exit_in_pipeline_keeps_running(executor):
    status = executor.run([Command(["exit", "5"]), Command(["echo", "still"])])
    assert status == 0
    assert executor.stdout.getvalue() == "still\n"


def test_cd_in_pipeline_does_nothing(executor, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    status = executor.run([Command(["cd", "/"]), Command(["cat"])])
    assert status == 0
    assert executor.stdout.getvalue() == ""
    assert os.path.realpath(os.getcwd()) == os.path.realpath(tmp_path)


def test_export_reaches_child(executor):
    executor.run([Command(["export", "GREETING=hey"])])
    executor.run([Command(["sh", "-c", 'printf %s "$GREETING"'])])
    assert executor.stdout.getvalue() == "hey"