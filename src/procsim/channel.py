"""Byte buffers and lockable I/O channels.

A :class:`LockableChannel` sits between a simulated command and the objects the
caller attached to it. When a command is canceled its channels are locked so a
handler that keeps running can no longer change output the caller has already
started inspecting, and can no longer consume input.
"""

from __future__ import annotations

import threading
from typing import Any, Optional, Union

Data = Union[bytes, bytearray, memoryview, str]


def _to_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class ByteBuffer:
    """Thread-safe FIFO byte buffer.

    Reads consume from the front and return ``b""`` when the buffer is empty
    instead of blocking.
    """

    def __init__(self, initial: Data = b""):
        self._lock = threading.Lock()
        self._data = bytearray(_to_bytes(initial))

    def write(self, data: Data) -> int:
        chunk = _to_bytes(data)
        with self._lock:
            self._data.extend(chunk)
        return len(chunk)

    def read(self, size: int = -1) -> bytes:
        with self._lock:
            if size is None or size < 0 or size >= len(self._data):
                chunk = bytes(self._data)
                self._data.clear()
            else:
                chunk = bytes(self._data[:size])
                del self._data[:size]
        return chunk

    def getvalue(self) -> bytes:
        """Return unread bytes without consuming them."""
        with self._lock:
            return bytes(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class LockableChannel:
    """Read/write passthrough whose sides can be switched off permanently.

    Locking only flips a flag, so it never waits on a handler blocked inside
    the wrapped object. A call that passed the flag check before the lock
    may still complete.
    """

    def __init__(self, reader: Any = None, writer: Any = None):
        self._reader = reader
        self._writer = writer
        # _lock guards the flags, _io_lock serializes calls into the wrapped objects
        self._lock = threading.Lock()
        self._io_lock = threading.Lock()
        self._read_locked = False
        self._write_locked = False

    @classmethod
    def buffer(cls) -> "LockableChannel":
        """Channel over a fresh :class:`ByteBuffer`, readable and writable."""
        buf = ByteBuffer()
        return cls(reader=buf, writer=buf)

    @classmethod
    def for_reader(cls, reader: Any) -> "LockableChannel":
        channel = cls(reader=reader)
        channel._write_locked = True
        return channel

    @classmethod
    def for_writer(cls, writer: Any) -> "LockableChannel":
        channel = cls(writer=writer)
        channel._read_locked = True
        return channel

    @property
    def target(self) -> Any:
        """The object this channel wraps, as supplied by the caller."""
        return self._writer if self._writer is not None else self._reader

    @property
    def read_locked(self) -> bool:
        return self._read_locked

    @property
    def write_locked(self) -> bool:
        return self._write_locked

    def write(self, data: Data) -> int:
        """Write to the sink, or report success without writing once locked."""
        chunk = _to_bytes(data)
        with self._io_lock:
            if self._write_locked or self._writer is None:
                return len(chunk)
            written = self._writer.write(chunk)
        return len(chunk) if written is None else written

    def read(self, size: int = -1) -> bytes:
        """Read from the source, or return ``b""`` once locked."""
        with self._io_lock:
            if self._read_locked or self._reader is None:
                return b""
            chunk = self._reader.read(size)
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return chunk or b""


    def read_all(self) -> bytes:
        """Drain whatever the source still holds, ignoring the read lock."""
        if self._reader is None:
            return b""
        chunk = self._reader.read()
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return chunk or b""

    def lock_read(self) -> None:
        with self._lock:
            self._read_locked = True

    def lock_write(self) -> None:
        with self._lock:
            self._write_locked = True

    def lock(self) -> None:
        with self._lock:
            self._read_locked = True
            self._write_locked = True

    def close(self) -> None:
        """Close the wrapped objects that support it."""
        for obj in (self._reader, self._writer):
            close = getattr(obj, "close", None)
            if close is not None:
                close()
                return

    def getvalue(self) -> bytes:
        """Peek at a wrapped :class:`ByteBuffer` (or ``BytesIO``) without consuming."""
        getvalue = getattr(self.target, "getvalue", None)
        if getvalue is None:
            return b""
        value = getvalue()
        return value.encode("utf-8") if isinstance(value, str) else value

    def __enter__(self) -> "LockableChannel":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["ByteBuffer", "LockableChannel"]
