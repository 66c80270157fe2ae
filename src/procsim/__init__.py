"""procsim - in-process fake processes for testing code that runs commands."""

from .channel import ByteBuffer, LockableChannel
from .command import PID_MAX, FuncCmd
from .deadline import Context, background, with_cancel, with_deadline, with_timeout
from .errors import (
    Canceled,
    CommandMisuse,
    DeadlineExceeded,
    ExecutableNotFound,
    ExitError,
    NoSuchPath,
    ProcsimError,
)
from .models import Completed, Process, ProcessState
from .mux import CmdFunc, Mux, Route
from .pattern import Pattern, PatternKind
from .runtime import Exec, FuncExec

__version__ = "0.1.0"

__all__ = [
    "ByteBuffer",
    "Canceled",
    "CmdFunc",
    "CommandMisuse",
    "Completed",
    "Context",
    "DeadlineExceeded",
    "Exec",
    "ExecutableNotFound",
    "ExitError",
    "FuncCmd",
    "FuncExec",
    "LockableChannel",
    "Mux",
    "NoSuchPath",
    "PID_MAX",
    "Pattern",
    "PatternKind",
    "Process",
    "ProcessState",
    "ProcsimError",
    "Route",
    "background",
    "with_cancel",
    "with_deadline",
    "with_timeout",
]
