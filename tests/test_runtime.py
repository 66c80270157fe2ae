"""Tests for the runtime: path lookup, command construction, run()."""

import pytest

from procsim import (
    DeadlineExceeded,
    ExecutableNotFound,
    FuncExec,
    Mux,
    NoSuchPath,
    Pattern,
)


@pytest.mark.parametrize(
    "bins,file,want",
    [
        (["test"], "test", "test"),
        (["/path/to/test"], "test", "/path/to/test"),
        (["/path/to/test"], "/path/to/test", "/path/to/test"),
        (["/usr/bin/git"], "git", "/usr/bin/git"),
        (["/opt/git", "/usr/bin/git"], "git", "/opt/git"),
        (["*"], "anything", "anything"),
        (["*"], "/any/path", "/any/path"),
        (["/usr/bin/git", "*"], "git", "/usr/bin/git"),
    ],
)
def test_look_path_found(bins, file, want):
    assert FuncExec(bins=bins).look_path(file) == want


def test_look_path_missing_path():
    runtime = FuncExec(bins=["/usr/bin/git"])
    with pytest.raises(NoSuchPath) as exc_info:
        runtime.look_path("/usr/bin/missing")
    assert exc_info.value.name == "/usr/bin/missing"
    assert "no such file or directory" in str(exc_info.value)


def test_look_path_path_must_match_exactly():
    runtime = FuncExec(bins=["/fail/path/to/test"])
    with pytest.raises(NoSuchPath):
        runtime.look_path("/path/to/test")


def test_look_path_missing_name():
    runtime = FuncExec(bins=["/bin/missing"])
    with pytest.raises(ExecutableNotFound) as exc_info:
        runtime.look_path("test")
    assert not isinstance(exc_info.value, NoSuchPath)
    assert exc_info.value.name == "test"
    assert str(exc_info.value) == 'exec: "test": executable file not found in $PATH'


def test_bins_derived_from_routes():
    mux = Mux()
    mux.handle(Pattern.new("/usr/bin/git", "status"), lambda cmd: 0)
    runtime = FuncExec(mux)

    assert runtime.bins == ("/usr/bin/git",)
    assert runtime.look_path("git") == "/usr/bin/git"
    with pytest.raises(ExecutableNotFound):
        runtime.look_path("hg")


def test_bins_derived_from_wildcard_route():
    runtime = FuncExec(funcs={"*": lambda cmd: 0, "git": lambda cmd: 0})
    assert runtime.bins == ("git", "*")
    assert runtime.look_path("anything") == "anything"


def test_mux_and_funcs_are_exclusive():
    with pytest.raises(ValueError):
        FuncExec(Mux(), funcs={})


def test_command_fields():
    runtime = FuncExec(funcs={"/path/to/test": lambda cmd: 0})
    cmd = runtime.command("test", "arg1", "arg2")

    assert cmd.path == "/path/to/test"
    assert cmd.args == ["test", "arg1", "arg2"]
    assert cmd.err is None
    assert cmd.context is None


def test_command_lookup_failure():
    runtime = FuncExec(bins=["missing"])
    cmd = runtime.command("test", "arg1", "arg2")

    assert cmd.path == "test"
    assert cmd.args == ["test", "arg1", "arg2"]
    assert str(cmd.err) == 'exec: "test": executable file not found in $PATH'


def test_command_with_unregistered_path():
    runtime = FuncExec(bins=["/usr/bin/git"])
    cmd = runtime.command("/usr/bin/missing")

    assert cmd.path == "/usr/bin/missing"
    assert isinstance(cmd.err, NoSuchPath)


def test_command_context_keeps_context():
    from procsim import background

    runtime = FuncExec(funcs={"test": lambda cmd: 0})
    ctx = background()
    cmd = runtime.command_context(ctx, "test")
    assert cmd.context is ctx


def test_run_captures_output():
    def greet(cmd):
        name = cmd.read_stdin().decode() or cmd.getenv("USER", "nobody")
        cmd.write_stdout(f"hello {name}")
        cmd.write_stderr(f"cwd={cmd.dir}")
        return 0 if name != "nobody" else 2

    runtime = FuncExec(funcs={"greet": greet}, env={"USER": "tester"})

    completed = runtime.run(["greet"], cwd="/work")
    assert completed.returncode == 0
    assert completed.stdout == b"hello tester"
    assert completed.stderr == b"cwd=/work"

    assert runtime.run(["greet"], input=b"alice").stdout == b"hello alice"
    assert runtime.run(["greet"], env={"USER": "bob"}).stdout == b"hello bob"


def test_run_reports_nonzero_status():
    runtime = FuncExec(funcs={"fail": lambda cmd: 7})
    assert runtime.run(["fail"]).returncode == 7


def test_run_timeout():
    def slow(cmd):
        cmd.context.wait(5)
        return 0

    runtime = FuncExec(funcs={"slow": slow})
    with pytest.raises(DeadlineExceeded):
        runtime.run(["slow"], timeout=0.05)


def test_run_requires_argv():
    with pytest.raises(ValueError):
        FuncExec().run([])


def test_run_unresolved():
    with pytest.raises(ExecutableNotFound):
        FuncExec(bins=["git"]).run(["hg"])
