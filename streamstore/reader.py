"""Position-independent reader over a byte-range fetch primitive.

Remote stores can only hand out byte ranges of an object, and local file
descriptors are read with ``os.pread``. ``RangeReader`` turns such a
``fetch_range(offset, length)`` callable into a seekable binary stream that
also offers explicit-offset reads which never disturb the stream cursor.

End-of-data follows the standard io convention: a sequential read at or past
the end returns ``b""`` (``readinto`` returns ``0``) and keeps doing so on
every further call until the cursor is moved, while ``read_at`` returns a
short (possibly empty) result when the requested range crosses the end.

Example:

    >>> reader = RangeReader(lambda offset, length: data[offset:offset + length],
    ...                      size=len(data))
    >>> reader.read(4)
    b'abcd'
    >>> reader.read_at(2, 10)
    b'kl'
    >>> reader.read(4)
    b'efgh'

"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .interfaces import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable

    FetchRange = Callable[[int, int], bytes]


@dataclass
class ReadCursor:
    """Cursor state of one read session.

    ``size`` is captured once when the session starts; growth of the
    underlying object afterwards is not observed.
    """

    size: int
    position: int = 0
    eof_signaled: bool = False

    def plan(self, length: int) -> int:
        """Return how many bytes a sequential read of ``length`` may fetch."""
        return max(0, min(length, self.size - self.position))

    def advance(self, count: int) -> None:
        """Move past ``count`` bytes that were just delivered."""
        if count == 0:
            self.eof_signaled = True
            return
        self.position += count
        self.eof_signaled = False

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Reposition the cursor and return the new absolute position."""
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self.position + offset
        elif whence == io.SEEK_END:
            target = self.size + offset
        else:
            message = f"invalid whence ({whence}, should be 0, 1 or 2)"
            raise ValueError(message)
        if target < 0:
            message = f"negative seek position {target}"
            raise ValueError(message)
        self.position = target
        self.eof_signaled = False
        return target


def span(size: int, offset: int, length: int) -> int:
    """Return how many bytes of ``[offset, offset + length)`` lie in the object."""
    if offset < 0:
        message = f"negative read offset {offset}"
        raise ValueError(message)
    return max(0, min(length, size - offset))


class RangeReader(io.RawIOBase):
    """Seekable binary reader backed by a ``fetch_range`` callable."""

    def __init__(
        self,
        fetch_range: FetchRange,
        size: int,
        *,
        name: str | None = None,
        on_close: Callable[[], Any] | None = None,
    ) -> None:
        """Initialise the reader.

        Args:
            fetch_range: Callable returning ``length`` bytes from ``offset``;
                it is only ever asked for ranges inside ``[0, size)``.
            size: Total object size, captured once.
            name: Store path used in ``repr`` and error messages.
            on_close: Optional callback releasing backend resources.

        """
        super().__init__()
        self._fetch_range = fetch_range
        self._cursor = ReadCursor(size=size)
        self._on_close = on_close
        self.name = name

    @property
    def size(self) -> int:
        """Total object size captured when the reader was opened."""
        return self._cursor.size

    @property
    def eof(self) -> bool:
        """True once a sequential read signalled end-of-data at the cursor."""
        return self._cursor.eof_signaled

    def readable(self) -> bool:
        """Readers are always readable."""
        return True

    def seekable(self) -> bool:
        """Readers are always seekable."""
        return True

    def readinto(self, buffer: Any) -> int:
        """Fill ``buffer`` from the cursor and advance it."""
        self._check_open()
        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0
        count = self._cursor.plan(len(view))
        data = self._fetch_range(self._cursor.position, count) if count else b""
        view[: len(data)] = data
        self._cursor.advance(len(data))
        return len(data)

    def readall(self) -> bytes:
        """Read from the cursor to the end of the object."""
        chunks = []
        while True:
            chunk = self.read(DEFAULT_CHUNK_SIZE * 8)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def read_at(self, length: int, offset: int) -> bytes:
        """Read up to ``length`` bytes at ``offset`` leaving the cursor alone.

        A result shorter than ``length`` means the end of the object was
        reached. Safe to call concurrently on one reader.
        """
        self._check_open()
        count = span(self._cursor.size, offset, length)
        if count == 0:
            return b""
        return self._fetch_range(offset, count)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the cursor; positions past the end are allowed."""
        self._check_open()
        return self._cursor.seek(offset, whence)

    def tell(self) -> int:
        """Return the cursor position."""
        self._check_open()
        return self._cursor.position

    def close(self) -> None:
        """Release backend resources; further reads raise ``ValueError``."""
        if self.closed:
            return
        try:
            if self._on_close is not None:
                self._on_close()
        finally:
            super().close()

    def _check_open(self) -> None:
        if self.closed:
            message = "I/O operation on closed reader"
            raise ValueError(message)

    def __repr__(self) -> str:
        """Return a short description of the reader."""
        return f"RangeReader(name={self.name!r}, size={self.size})"
