"""Declarative fixtures: canned command handlers loaded from TOML.

Example ``.procsim.toml``:

```toml
bins = ["/usr/bin/git"]

[env]
HOME = "/home/tester"

[[commands]]
match = "git status"
stdout = "On branch main\\n"

[[commands]]
match = "git"
stderr = "git: unknown command\\n"
exit_code = 1
```

Commands are routed in file order, so list specific matches first.
"""

from __future__ import annotations

import os
import time
import tomllib
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .command import FuncCmd
from .errors import ProcsimError
from .mux import CmdFunc, Mux
from .pattern import Pattern
from .runtime import FuncExec

FIXTURE_ENV = "PROCSIM_FIXTURE"
FIXTURE_NAME = ".procsim.toml"


class FixtureError(ProcsimError):
    """Fixture file is missing or invalid."""

    pass


class CannedCommand(BaseModel):
    """A handler that writes fixed output and returns a fixed status."""

    match: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    delay: float = Field(default=0.0, ge=0)
    echo_stdin: bool = False

    @field_validator("match")
    @classmethod
    def match_parses(cls, v: str) -> str:
        Pattern.parse(v)
        return v

    @property
    def pattern(self) -> Pattern:
        return Pattern.parse(self.match)

    def handler(self) -> CmdFunc:
        def canned(cmd: FuncCmd) -> int:
            if self.delay:
                ctx = cmd.context
                if ctx is not None:
                    ctx.wait(self.delay)
                else:
                    time.sleep(self.delay)
            if self.echo_stdin:
                cmd.write_stdout(cmd.read_stdin())
            if self.stdout:
                cmd.write_stdout(self.stdout)
            if self.stderr:
                cmd.write_stderr(self.stderr)
            return self.exit_code

        return canned


class Fixture(BaseModel):
    """Root fixture model."""

    bins: Optional[List[str]] = None
    env: Dict[str, str] = Field(default_factory=dict)
    commands: List[CannedCommand] = Field(default_factory=list)
    path: Path | None = Field(default=None, exclude=True)

    def build_mux(self) -> Mux:
        mux = Mux()
        for command in self.commands:
            mux.handle(command.pattern, command.handler())
        return mux

    def build_exec(self) -> FuncExec:
        return FuncExec(self.build_mux(), bins=self.bins, env=self.env)


def _find_project_fixture(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start_dir`` (default: CWD) looking for ``.procsim.toml``."""
    current = (start_dir or Path.cwd()).resolve()
    while True:
        candidate = current / FIXTURE_NAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def resolve_fixture_path(
    cli_path: Optional[Path | str] = None,
    start_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Resolve the fixture file.

    Resolution order:
    1. explicit path (``--fixture``)
    2. ``$PROCSIM_FIXTURE``
    3. ``.procsim.toml`` in the CWD or any parent
    """
    if cli_path:
        return Path(cli_path)

    env_path = os.environ.get(FIXTURE_ENV)
    if env_path:
        return Path(env_path).expanduser()

    return _find_project_fixture(start_dir)


def load_fixture(path: Path | str) -> Fixture:
    """Load and validate a fixture file.

    Raises:
        FixtureError: The file is missing, is not TOML, or fails validation.
    """
    path = Path(path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise FixtureError(f"Fixture not found: {path}")
    except tomllib.TOMLDecodeError as e:
        raise FixtureError(f"Invalid TOML in {path}: {e}")

    try:
        fixture = Fixture.model_validate(data)
    except ValidationError as e:
        raise FixtureError(f"Invalid fixture {path}: {e}")

    fixture.path = path
    return fixture


__all__ = [
    "CannedCommand",
    "FIXTURE_ENV",
    "FIXTURE_NAME",
    "Fixture",
    "FixtureError",
    "load_fixture",
    "resolve_fixture_path",
]
