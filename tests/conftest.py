"""Pytest configuration and shared fixtures."""

import textwrap

import pytest
from click.testing import CliRunner

from procsim import FuncExec, Mux
from procsim.cli import cli
from procsim.config import FIXTURE_ENV


def echo(cmd):
    cmd.write_stdout(" ".join(cmd.args[1:]))
    return 0


def cat(cmd):
    cmd.write_stdout(cmd.read_stdin())
    return 0


def out_err(cmd):
    cmd.write_stdout("out")
    cmd.write_stderr("err")
    return 0


def fail(cmd):
    cmd.write_stdout("partial")
    cmd.write_stderr("boom")
    return 3


@pytest.fixture(autouse=True)
def clear_fixture_env(monkeypatch):
    """Keep a developer's $PROCSIM_FIXTURE out of the tests."""
    monkeypatch.delenv(FIXTURE_ENV, raising=False)


@pytest.fixture
def mux():
    """Router with a handful of well-behaved handlers."""
    m = Mux()
    m.handle("echo", echo)
    m.handle("cat", cat)
    m.handle("out-err", out_err)
    m.handle("fail", fail)
    return m


@pytest.fixture
def runtime(mux):
    """Runtime whose allow-list resolves any bare name."""
    return FuncExec(mux, bins=["/bin/echo", "/bin/cat", "*"], env={"HOME": "/home/tester"})


@pytest.fixture
def cli_runner():
    """Provide Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner):
    """Invoke the CLI with args and optional stdin.

    Usage:
        result = invoke(["--fixture", path, "run", "git", "status"])
    """

    def _invoke(args, input_data=None):
        return cli_runner.invoke(cli, args, input=input_data)

    return _invoke


@pytest.fixture
def fixture_file(tmp_path):
    """Write a fixture TOML file and return its path."""
    path = tmp_path / "fixture.toml"
    path.write_text(
        textwrap.dedent(
            """
            bins = ["/usr/bin/git", "/bin/cat", "/bin/slow"]

            [env]
            HOME = "/home/tester"

            [[commands]]
            match = "git status"
            stdout = "On branch main\\n"

            [[commands]]
            match = "git"
            stderr = "git: unknown command\\n"
            exit_code = 1

            [[commands]]
            match = "cat"
            echo_stdin = true

            [[commands]]
            match = "slow"
            stdout = "too late"
            delay = 5.0
            """
        )
    )
    return path
