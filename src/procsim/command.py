"""Simulated command: the in-process stand-in for an OS process.

A :class:`FuncCmd` is built by :class:`procsim.runtime.FuncExec` and follows
the lifecycle of a real process:

    unstarted --start()--> running --wait()--> completed
                               \\--deadline--> canceled

``start()`` runs the routed handler on a daemon thread. The handler's status
and, when the command has a context, the watcher's cancellation verdict are
handed to ``wait()`` through single-slot futures. The watcher locks every
channel before it publishes a cancellation, so once ``wait()`` raises, nothing
the still-running handler writes can reach the caller's buffers.
"""

from __future__ import annotations

import copy
import logging
import random
import threading
from concurrent import futures
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from .channel import Data, LockableChannel, _to_bytes
from .deadline import Context
from .env import format_env, parse_env
from .errors import Canceled, CommandMisuse, ExitError
from .models import Process, ProcessState

if TYPE_CHECKING:
    from .mux import CmdFunc
    from .runtime import FuncExec

logger = logging.getLogger(__name__)

# Upper bound (exclusive) for simulated pids. Pids are random, so two commands
# can share one; nothing in procsim relies on them being unique.
PID_MAX = 32768


def _new_pid() -> int:
    return random.randrange(1, PID_MAX)


def _handler_status(status: Any) -> int:
    if status is None:
        return 0
    if not isinstance(status, int):
        raise TypeError(f"handler returned {status!r}, expected an int exit status")
    return int(status)


def _exit_status(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


def _with_output(exc: Canceled, output: bytes, stderr: bytes = b"") -> Canceled:
    # copy: the context hands the same error to every command it cancels
    err = copy.copy(exc)
    err.output = output
    err.stderr = stderr
    return err


class FuncCmd:
    """A command whose "process" is a registered Python handler."""

    def __init__(
        self,
        name: str,
        args: Sequence[str] = (),
        *,
        runtime: Optional["FuncExec"] = None,
        path: Optional[str] = None,
        err: Optional[Exception] = None,
        ctx: Optional[Context] = None,
    ):
        self._path = name if path is None else path
        self._args: List[str] = [name, *args]
        self._env: Optional[Dict[str, str]] = None
        self._dir = ""

        self._stdin: Optional[LockableChannel] = None
        self._stdout: Optional[LockableChannel] = None
        self._stderr: Optional[LockableChannel] = None

        self._process: Optional[Process] = None
        self._process_state: Optional[ProcessState] = None
        self._err = err
        self._start_err: Optional[ExitError] = None

        self._ctx = ctx
        self._runtime = runtime
        self._exit_code: futures.Future = futures.Future()
        self._interrupt: Optional[futures.Future] = None

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> None:
        """Start the handler and return immediately.

        Raises:
            CommandMisuse: No command, or already started.
            ExecutableNotFound: The name did not resolve when the command was built.
            Canceled: The command's context was already done.
        """
        if not self._path and self._err is None:
            self._err = CommandMisuse("exec: no command")
        if self._err is not None:
            raise self._err
        if self._process is not None:
            raise CommandMisuse("exec: already started")
        if self._ctx is not None and self._ctx.done():
            raise self._ctx.err()

        self._process = Process(pid=_new_pid())

        handler = self._find_handler()
        if handler is None:
            logger.debug("No handler for %s, failing with exit status 1", self)
            self._start_err = ExitError(1)
            return

        logger.debug("Starting %s as pid %d", self, self._process.pid)
        if self._ctx is not None:
            self._interrupt = futures.Future()

        threading.Thread(
            target=self._run_handler,
            args=(handler,),
            name=f"procsim-{self._process.pid}",
            daemon=True,
        ).start()

        if self._ctx is not None:
            threading.Thread(
                target=self._watch,
                name=f"procsim-{self._process.pid}-watch",
                daemon=True,
            ).start()

    def wait(self) -> None:
        """Block until the handler finishes or the context is canceled.

        Raises:
            ExitError: The handler returned a nonzero status, or no handler matched.
            CommandMisuse: Not started, or wait was already called.
            Canceled: The context was canceled first (raised as the context's error).
        """
        if self._start_err is not None:
            raise self._start_err
        if self._process is None:
            raise CommandMisuse("exec: not started")
        if self._process_state is not None:
            raise CommandMisuse("exec: Wait was already called")

        state = ProcessState(pid=self._process.pid)
        self._process_state = state

        if self._interrupt is not None:
            interrupt = self._interrupt.result()
            if interrupt is not None:
                state.canceled = True
                logger.debug("%s canceled: %s", self, interrupt)
                raise interrupt

        status = self._exit_code.result()
        state.exit_code = status
        logger.debug("%s finished with status %d", self, status)
        if status != 0:
            raise ExitError(status)

    def run(self) -> None:
        """Start the command and wait for it to complete."""
        self.start()
        self.wait()

    def combined_output(self) -> bytes:
        """Run the command and return stdout and stderr interleaved.

        Output captured before a failure is attached as ``.output`` to the
        raised :class:`ExitError` or :class:`Canceled`.
        """
        if self._stdout is not None:
            raise CommandMisuse("exec: Stdout already set")
        if self._stderr is not None:
            raise CommandMisuse("exec: Stderr already set")

        channel = LockableChannel.buffer()
        self._stdout = channel
        self._stderr = channel
        try:
            self.run()
        except ExitError as exc:
            exc.output = channel.getvalue()
            raise
        except Canceled as exc:
            raise _with_output(exc, channel.getvalue()) from exc
        return channel.getvalue()

    def output(self) -> bytes:
        """Run the command and return its stdout.

        When the caller did not attach stderr, it is captured and attached to
        the :class:`ExitError` raised for a nonzero status. A canceled run
        raises a copy of the context error carrying the same ``.output`` and
        ``.stderr``.
        """
        if self._stdout is not None:
            raise CommandMisuse("exec: Stdout already set")

        stdout = LockableChannel.buffer()
        self._stdout = stdout

        capture_err = self._stderr is None
        if capture_err:
            self._stderr = LockableChannel.buffer()

        try:
            self.run()
        except ExitError as exc:
            exc.output = stdout.getvalue()
            if capture_err:
                exc.stderr = self._stderr.getvalue()
            raise
        except Canceled as exc:
            stderr = self._stderr.getvalue() if capture_err else b""
            raise _with_output(exc, stdout.getvalue(), stderr) from exc
        return stdout.getvalue()

    # ------------------------------------------------------------------
    # Pipes

    def stdin_pipe(self) -> LockableChannel:
        """Return a channel the caller writes and the handler reads."""
        if self._stdin is not None:
            raise CommandMisuse("exec: Stdin already set")
        if self._process is not None:
            raise CommandMisuse("exec: StdinPipe after process started")
        self._stdin = LockableChannel.buffer()
        return self._stdin

    def stdout_pipe(self) -> LockableChannel:
        """Return a channel the handler writes and the caller reads."""
        if self._stdout is not None:
            raise CommandMisuse("exec: Stdout already set")
        if self._process is not None:
            raise CommandMisuse("exec: StdoutPipe after process started")
        self._stdout = LockableChannel.buffer()
        return self._stdout

    def stderr_pipe(self) -> LockableChannel:
        if self._stderr is not None:
            raise CommandMisuse("exec: Stderr already set")
        if self._process is not None:
            raise CommandMisuse("exec: StderrPipe after process started")
        self._stderr = LockableChannel.buffer()
        return self._stderr

    # ------------------------------------------------------------------
    # Handler-facing I/O

    def read_stdin(self, size: int = -1) -> bytes:
        if self._stdin is None:
            return b""
        return self._stdin.read(size)

    def write_stdout(self, data: Data) -> int:
        if self._stdout is None:
            return len(_to_bytes(data))
        return self._stdout.write(data)

    def write_stderr(self, data: Data) -> int:
        if self._stderr is None:
            return len(_to_bytes(data))
        return self._stderr.write(data)

    def getenv(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Look up ``name`` in the command env, then the runtime env."""
        if self._env is not None and name in self._env:
            return self._env[name]
        if self._runtime is not None:
            return self._runtime.env.get(name, default)
        return default

    def environ(self) -> List[str]:
        """The environment the handler sees, as sorted ``NAME=VALUE`` strings."""
        merged: Dict[str, str] = {}
        if self._runtime is not None:
            merged.update(self._runtime.env)
        if self._env is not None:
            merged.update(self._env)
        return format_env(merged)

    # ------------------------------------------------------------------
    # Accessors

    @property
    def path(self) -> str:
        return self._path

    @path.setter
    def path(self, path: str) -> None:
        self._path = path

    @property
    def args(self) -> List[str]:
        return self._args

    @args.setter
    def args(self, args: Sequence[str]) -> None:
        self._args = list(args)

    @property
    def env(self) -> List[str]:
        """Command-level overrides as sorted ``NAME=VALUE`` strings."""
        return format_env(self._env)

    @env.setter
    def env(self, entries: Optional[Sequence[str]]) -> None:
        self._env = None if entries is None else parse_env(entries)

    @property
    def dir(self) -> str:
        return self._dir

    @dir.setter
    def dir(self, directory: str) -> None:
        self._dir = directory

    @property
    def stdin(self) -> Any:
        return None if self._stdin is None else self._stdin.target

    @stdin.setter
    def stdin(self, reader: Any) -> None:
        self._stdin = None if reader is None else LockableChannel.for_reader(reader)

    @property
    def stdout(self) -> Any:
        return None if self._stdout is None else self._stdout.target

    @stdout.setter
    def stdout(self, writer: Any) -> None:
        self._stdout = None if writer is None else LockableChannel.for_writer(writer)

    @property
    def stderr(self) -> Any:
        return None if self._stderr is None else self._stderr.target

    @stderr.setter
    def stderr(self, writer: Any) -> None:
        self._stderr = None if writer is None else LockableChannel.for_writer(writer)

    @property
    def process(self) -> Optional[Process]:
        return self._process

    @property
    def process_state(self) -> Optional[ProcessState]:
        return self._process_state

    @property
    def err(self) -> Optional[Exception]:
        """The error recorded while resolving the command's path, if any."""
        return self._err

    @property
    def context(self) -> Optional[Context]:
        """The cancellation context; handlers may poll it to stop early."""
        return self._ctx

    def __str__(self) -> str:
        if self._err is not None:
            # unresolved: report what was asked for
            return " ".join(self._args)
        return " ".join([self._path, *self._args[1:]])

    def __repr__(self) -> str:
        pid = self._process.pid if self._process is not None else None
        return f"<FuncCmd {str(self)!r} pid={pid}>"

    # ------------------------------------------------------------------
    # Internals

    def _find_handler(self) -> Optional["CmdFunc"]:
        if self._runtime is None:
            return None
        return self._runtime.mux.find_handler(self)

    def _run_handler(self, handler: "CmdFunc") -> None:
        try:
            status = _handler_status(handler(self))
        except SystemExit as exc:
            self._exit_code.set_result(_exit_status(exc))
        except BaseException as exc:
            logger.debug("Handler for %s raised %r", self, exc)
            self._exit_code.set_exception(exc)
        else:
            self._exit_code.set_result(status)

    def _watch(self) -> None:
        done, _ = futures.wait(
            [self._exit_code, self._ctx.future()],
            return_when=futures.FIRST_COMPLETED,
        )
        if self._ctx.future() not in done:
            self._interrupt.set_result(None)
            return

        # lock before publishing so wait() never sees a cancel with live channels
        self._lock_channels()
        self._interrupt.set_result(self._ctx.err())

    def _lock_channels(self) -> None:
        if self._stdin is not None:
            self._stdin.lock_read()
        if self._stdout is not None:
            self._stdout.lock_write()
        if self._stderr is not None:
            self._stderr.lock_write()


__all__ = ["FuncCmd", "PID_MAX"]
