"""Buffered atomic writer shared by every store.

Object stores have no append or partial-write primitive, so a write session
accumulates everything it is given and hands the complete payload to a
backend ``commit`` callable exactly once, when the session is closed. Until
then nothing is visible at the target path.

Backends choose the accumulator: flat and memory stores use a spooled
temporary file, the local store hands in a hidden temporary file next to the
target so that ``commit`` is a rename.

Example:

    >>> with store.create("/reports/today.csv") as writer:
    ...     writer.write(b"id,total\\n")
    ...     writer.write(b"1,42\\n")
    >>> store.stat("/reports/today.csv").size
    14

"""

from __future__ import annotations

import logging
import tempfile
import weakref
from typing import TYPE_CHECKING, Any, BinaryIO

from .interfaces import InvalidOperationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_SPOOL_SIZE = 8 * 1024 * 1024


def spooled_buffer(max_size: int = DEFAULT_SPOOL_SIZE) -> BinaryIO:
    """Return an accumulator that moves to disk once it grows past max_size."""
    return tempfile.SpooledTemporaryFile(max_size=max_size, mode="w+b")


def _abandon(buffer: BinaryIO, on_discard: Callable[[], Any] | None) -> None:
    buffer.close()
    if on_discard is not None:
        on_discard()


class AtomicWriter:
    """Write session whose content is committed as one object on close.

    A writer that is discarded, left through an exception in a ``with``
    block, or garbage collected without being closed never commits.
    """

    def __init__(
        self,
        path: str,
        commit: Callable[[BinaryIO], Any],
        *,
        buffer: BinaryIO | None = None,
        on_discard: Callable[[], Any] | None = None,
    ) -> None:
        """Initialise the writer.

        Args:
            path: Store path the content is committed to.
            commit: Callable receiving the rewound accumulator at close.
            buffer: Accumulator to write into; a spooled temp file by default.
            on_discard: Cleanup run when the content is dropped uncommitted.

        """
        self.name = path
        self._commit = commit
        self._buffer = buffer if buffer is not None else spooled_buffer()
        self._on_discard = on_discard
        self._size = 0
        self._closed = False
        self._finalizer = weakref.finalize(self, _abandon, self._buffer, on_discard)

    @property
    def closed(self) -> bool:
        """True once the writer has been committed or discarded."""
        return self._closed

    @property
    def size(self) -> int:
        """Number of bytes accumulated so far."""
        return self._size

    def writable(self) -> bool:
        """Return True while the writer accepts data."""
        return not self._closed

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Append ``data`` to the pending content and return its length."""
        if self._closed:
            raise InvalidOperationError.handle_closed(self.name)
        written = self._buffer.write(data)
        self._size += written
        return written

    def tell(self) -> int:
        """Return the number of bytes written."""
        return self._size

    def flush(self) -> None:
        """No-op; content is only published by ``close``."""

    def close(self) -> None:
        """Commit the accumulated content; a second call does nothing."""
        if self._closed:
            return
        self._closed = True
        self._finalizer.detach()
        try:
            self._buffer.seek(0)
            self._commit(self._buffer)
        except BaseException:
            logger.debug("Commit of %s failed, discarding %d bytes", self.name, self._size)
            _abandon(self._buffer, self._on_discard)
            raise
        else:
            self._buffer.close()
        logger.debug("Committed %d bytes to %s", self._size, self.name)

    def discard(self) -> None:
        """Drop the accumulated content without committing it."""
        if self._closed:
            return
        self._closed = True
        self._finalizer()
        logger.debug("Discarded %d uncommitted bytes for %s", self._size, self.name)

    def __enter__(self) -> AtomicWriter:
        """Return the writer for use in a ``with`` block."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Commit on normal exit, discard when an exception escapes."""
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def __repr__(self) -> str:
        """Return a short description of the writer."""
        state = "closed" if self._closed else "open"
        return f"AtomicWriter(name={self.name!r}, size={self._size}, {state})"
