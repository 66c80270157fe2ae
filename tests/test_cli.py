"""Tests for the procsim CLI."""

from procsim.cli import EXIT_NOT_FOUND, EXIT_TIMEOUT
from procsim.config import FIXTURE_ENV, FIXTURE_NAME


def test_which(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "which", "git"])
    assert result.exit_code == 0
    assert result.output.strip() == "/usr/bin/git"


def test_which_missing(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "which", "hg"])
    assert result.exit_code == 1
    assert 'exec: "hg": executable file not found in $PATH' in result.output


def test_which_unregistered_path(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "which", "/opt/git"])
    assert result.exit_code == 1
    assert "no such file or directory" in result.output


def test_run(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "run", "git", "status"])
    assert result.exit_code == 0
    assert result.output == "On branch main\n"


def test_run_exit_status(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "run", "git", "log", "--oneline"])
    assert result.exit_code == 1
    assert "git: unknown command" in result.output


def test_run_forwards_stdin(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "run", "cat"], input_data="hello\n")
    assert result.exit_code == 0
    assert result.output == "hello\n"


def test_run_timeout(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "run", "--timeout", "0.05", "slow"])
    assert result.exit_code == EXIT_TIMEOUT
    assert "context deadline exceeded" in result.output
    assert "too late" not in result.output


def test_run_not_found(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "run", "hg", "status"])
    assert result.exit_code == EXIT_NOT_FOUND
    assert 'exec: "hg"' in result.output


def test_routes(invoke, fixture_file):
    result = invoke(["--fixture", str(fixture_file), "routes"])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "1. git status",
        "2. git",
        "3. cat",
        "4. slow",
    ]


def test_routes_empty(invoke, tmp_path):
    path = tmp_path / "empty.toml"
    path.write_text("")
    result = invoke(["--fixture", str(path), "routes"])
    assert result.exit_code == 0
    assert "No routes registered" in result.output


def test_fixture_from_env(invoke, fixture_file, monkeypatch):
    monkeypatch.setenv(FIXTURE_ENV, str(fixture_file))
    result = invoke(["which", "cat"])
    assert result.exit_code == 0
    assert result.output.strip() == "/bin/cat"


def test_fixture_from_project(invoke, fixture_file, tmp_path, monkeypatch):
    project = tmp_path / "project"
    nested = project / "src"
    nested.mkdir(parents=True)
    (project / FIXTURE_NAME).write_text(fixture_file.read_text())
    monkeypatch.chdir(nested)

    result = invoke(["run", "git", "status"])
    assert result.exit_code == 0
    assert result.output == "On branch main\n"


def test_no_fixture(invoke, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = invoke(["which", "git"])
    assert result.exit_code == 1
    assert "No fixture found" in result.output


def test_bad_fixture(invoke, tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("commands = [")
    result = invoke(["--fixture", str(path), "run", "git"])
    assert result.exit_code == 1
    assert "Invalid TOML" in result.output
