"""Runtime that builds simulated commands and resolves executable names."""

from __future__ import annotations

import io
import logging
import posixpath
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from .command import FuncCmd
from .deadline import Context, background, with_timeout
from .errors import ExecutableNotFound, ExitError, NoSuchPath
from .models import Completed
from .mux import CmdFunc, Mux
from .pattern import WILDCARD

logger = logging.getLogger(__name__)


class Exec(Protocol):
    """The surface production code should depend on to launch commands."""

    def look_path(self, file: str) -> str: ...

    def command(self, name: str, *args: str) -> FuncCmd: ...

    def command_context(self, ctx: Context, name: str, *args: str) -> FuncCmd: ...


class FuncExec:
    """Builds :class:`FuncCmd` objects served by in-process handlers.

    Handlers come from ``mux`` or, for the common case of one handler per
    command name, from a ``funcs`` mapping. ``bins`` is the allow-list the
    resolver consults; without one it is derived from the routes, so every
    routed name resolves and a wildcard route makes every name resolve.

    Example:
        runtime = FuncExec(funcs={"/usr/bin/git": git_handler})
        runtime.look_path("git")        # "/usr/bin/git"
        runtime.command("git", "status").output()
    """

    def __init__(
        self,
        mux: Optional[Mux] = None,
        *,
        funcs: Optional[Mapping[str, CmdFunc]] = None,
        bins: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        if mux is not None and funcs is not None:
            raise ValueError("Pass either mux or funcs, not both")
        if funcs is not None:
            mux = Mux.from_mapping(funcs)

        self.mux = mux if mux is not None else Mux()
        self.env: Dict[str, str] = dict(env or {})
        if bins is None:
            bins = self._bins_from_mux(self.mux)
        self.bins: Tuple[str, ...] = tuple(bins)

    @staticmethod
    def _bins_from_mux(mux: Mux) -> List[str]:
        bins = mux.names()
        if mux.has_wildcard():
            bins.append(WILDCARD)
        return bins

    def look_path(self, file: str) -> str:
        """Resolve ``file`` against the allow-list.

        Raises:
            NoSuchPath: ``file`` contains a separator and is not registered.
            ExecutableNotFound: A bare ``file`` matched no registered basename.
        """
        wildcard = WILDCARD in self.bins

        if "/" in file:
            if wildcard or file in self.bins:
                return file
            raise NoSuchPath(file)

        for binary in self.bins:
            if binary != WILDCARD and posixpath.basename(binary) == file:
                return binary

        if wildcard:
            return file
        raise ExecutableNotFound(file)

    def command(self, name: str, *args: str) -> FuncCmd:
        """Build a command; resolution errors surface when it is started."""
        return self._build(name, args, None)

    def command_context(self, ctx: Context, name: str, *args: str) -> FuncCmd:
        """Like :meth:`command`, but canceled when ``ctx`` is done."""
        if ctx is None:
            raise TypeError("nil Context")
        return self._build(name, args, ctx)

    def run(
        self,
        argv: Sequence[str],
        *,
        input: Optional[bytes] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Completed:
        """Run ``argv`` to completion and capture its output.

        Mirrors ``subprocess.run(capture_output=True, check=False)``: a nonzero
        status is reported in ``returncode`` rather than raised.

        Args:
            argv: Command and arguments
            input: Bytes fed to the handler's stdin
            env: Per-command overrides (merged over the runtime env)
            cwd: Working directory recorded on the command
            timeout: Cancel the command after N seconds

        Returns:
            Completed with returncode, stdout, stderr

        Raises:
            ExecutableNotFound: ``argv[0]`` did not resolve.
            DeadlineExceeded: ``timeout`` expired first.
        """
        if not argv:
            raise ValueError("Command must include at least one argument")

        cancel = None
        if timeout is not None:
            ctx, cancel = with_timeout(background(), timeout)
            cmd = self.command_context(ctx, argv[0], *argv[1:])
        else:
            cmd = self.command(argv[0], *argv[1:])

        if env is not None:
            cmd.env = [f"{k}={v}" for k, v in env.items()]
        if cwd is not None:
            cmd.dir = cwd
        if input is not None:
            cmd.stdin = io.BytesIO(input)
        stdout = io.BytesIO()
        stderr = io.BytesIO()
        cmd.stdout = stdout
        cmd.stderr = stderr

        returncode = 0
        try:
            cmd.run()
        except ExitError as e:
            returncode = e.returncode
        finally:
            if cancel is not None:
                cancel()

        return Completed(
            returncode=returncode,
            stdout=stdout.getvalue(),
            stderr=stderr.getvalue(),
        )

    def _build(self, name: str, args: Sequence[str], ctx: Optional[Context]) -> FuncCmd:
        path = name
        err: Optional[Exception] = None
        try:
            path = self.look_path(name)
        except ExecutableNotFound as exc:
            logger.debug("Could not resolve %r: %s", name, exc)
            err = exc
        return FuncCmd(name, args, runtime=self, path=path, err=err, ctx=ctx)


__all__ = ["Exec", "FuncExec"]
