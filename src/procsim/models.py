"""Process handle and result models."""

from __future__ import annotations

from pydantic import BaseModel


class Process(BaseModel):
    """Stand-in for an OS process handle, assigned by ``start()``."""

    pid: int


class ProcessState(BaseModel):
    """Outcome recorded by ``wait()``."""

    pid: int
    exit_code: int | None = None
    canceled: bool = False

    @property
    def exited(self) -> bool:
        return self.exit_code is not None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.canceled

    def __str__(self) -> str:
        if self.canceled:
            return "canceled"
        if self.exit_code is None:
            return "running"
        return f"exit status {self.exit_code}"


class Completed(BaseModel):
    """Captured result of a finished simulated command."""

    returncode: int
    stdout: bytes
    stderr: bytes


__all__ = ["Completed", "Process", "ProcessState"]
