"""Exception types raised by the simulated process runtime."""

from __future__ import annotations

from typing import Optional


class ProcsimError(Exception):
    """Base class for all procsim errors."""

    pass


class ExecutableNotFound(ProcsimError):
    """Requested executable is not in the runtime's allow-list."""

    def __init__(self, name: str, reason: Optional[str] = None):
        self.name = name
        self.reason = reason or "executable file not found in $PATH"
        super().__init__(f'exec: "{name}": {self.reason}')


class NoSuchPath(ExecutableNotFound):
    """A separator-qualified name did not match any registered binary."""

    def __init__(self, name: str):
        super().__init__(name, f"stat {name}: no such file or directory")


class CommandMisuse(ProcsimError):
    """The command was used out of order (double start, wait before start, ...)."""

    pass


class ExitError(ProcsimError):
    """The handler returned a nonzero status.

    ``output`` and ``stderr`` hold whatever was captured by ``output()`` or
    ``combined_output()`` before the error was raised.
    """

    def __init__(self, returncode: int, stderr: bytes = b"", output: bytes = b""):
        self.returncode = returncode
        self.stderr = stderr
        self.output = output
        super().__init__(f"exit status {returncode}")

    def __str__(self) -> str:
        return f"exit status {self.returncode}"


class Canceled(ProcsimError):
    """The command's context was canceled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)
        # filled in by output() and combined_output()
        self.output = b""
        self.stderr = b""


class DeadlineExceeded(Canceled):
    """The command's context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


__all__ = [
    "Canceled",
    "CommandMisuse",
    "DeadlineExceeded",
    "ExecutableNotFound",
    "ExitError",
    "NoSuchPath",
    "ProcsimError",
]
