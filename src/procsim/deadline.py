"""Cancellation contexts for simulated commands.

A context is either never done (``background()``) or becomes done exactly once,
carrying the exception that explains why (``Canceled`` or
``DeadlineExceeded``). Derived contexts are canceled along with their parent.

Example:
    ctx, cancel = with_timeout(background(), 0.5)
    try:
        runtime.command_context(ctx, "slow").run()
    finally:
        cancel()
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from typing import Callable, List, Optional, Tuple

from .errors import Canceled, DeadlineExceeded

CancelFunc = Callable[[], None]


class Context:
    """A cancellation signal shared between a caller and a running command."""

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None):
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._future: Future = Future()
        self._err: Optional[BaseException] = None
        self._callbacks: List[Callable[[BaseException], None]] = []
        self._deadline = deadline
        if parent is not None:
            parent_deadline = parent.deadline()
            if parent_deadline is not None and (deadline is None or parent_deadline < deadline):
                self._deadline = parent_deadline
            parent._on_done(self._cancel)

    def done(self) -> bool:
        """Return True once the context has been canceled."""
        return self._done.is_set()

    def err(self) -> Optional[BaseException]:
        """Return the cancellation error, or None while the context is live."""
        with self._lock:
            return self._err

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is done or ``timeout`` elapses."""
        return self._done.wait(timeout)

    def deadline(self) -> Optional[float]:
        """Return the ``time.monotonic()`` deadline, if any."""
        return self._deadline

    def future(self) -> Future:
        """Return a future resolved with the cancellation error."""
        return self._future

    def _on_done(self, callback: Callable[[BaseException], None]) -> None:
        with self._lock:
            err = self._err
            if err is None:
                self._callbacks.append(callback)
                return
        callback(err)

    def _cancel(self, err: BaseException) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            callbacks, self._callbacks = self._callbacks, []
        # resolve the future first: watchers racing it against a handler that
        # polls done() must see the cancellation no later than the handler does
        self._future.set_result(err)
        self._done.set()
        for callback in callbacks:
            callback(err)


class _Background(Context):
    """Root context that is never canceled."""

    def _on_done(self, callback: Callable[[BaseException], None]) -> None:
        pass


_BACKGROUND = _Background()


def background() -> Context:
    """Return the shared, never-canceled root context."""
    return _BACKGROUND


def with_cancel(parent: Context) -> Tuple[Context, CancelFunc]:
    """Derive a context that is canceled when ``cancel()`` is called."""
    ctx = Context(parent)

    def cancel() -> None:
        ctx._cancel(Canceled())

    return ctx, cancel


def with_deadline(parent: Context, when: float) -> Tuple[Context, CancelFunc]:
    """Derive a context that expires at ``when`` (a ``time.monotonic()`` value)."""
    ctx = Context(parent, deadline=when)
    delay = ctx.deadline() - time.monotonic()
    if delay <= 0:
        ctx._cancel(DeadlineExceeded())
        return ctx, lambda: None

    timer = threading.Timer(delay, lambda: ctx._cancel(DeadlineExceeded()))
    timer.daemon = True
    timer.start()

    def cancel() -> None:
        timer.cancel()
        ctx._cancel(Canceled())

    return ctx, cancel


def with_timeout(parent: Context, seconds: float) -> Tuple[Context, CancelFunc]:
    """Derive a context that expires ``seconds`` from now."""
    return with_deadline(parent, time.monotonic() + seconds)


__all__ = [
    "CancelFunc",
    "Context",
    "background",
    "with_cancel",
    "with_deadline",
    "with_timeout",
]
