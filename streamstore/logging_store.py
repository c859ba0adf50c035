"""StreamStore decorator that logs every call made through it.

Each operation emits a DEBUG record before delegating and another once the
wrapped store returns. Failures are logged with the exception type and then
re-raised unchanged.

Example:
    >>> import logging
    >>> logging.basicConfig(level=logging.DEBUG)
    >>> store = LoggingStreamStore(MemoryStreamStore())
    >>> store.mkdir("/data")
    DEBUG:streamstore.logging_store:before mkdir ('/data', 493)
    DEBUG:streamstore.logging_store:after mkdir ('/data', 493)

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .interfaces import DEFAULT_DIRECTORY_MODE, FileInfo, StreamStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from .reader import RangeReader
    from .writer import AtomicWriter

module_logger = logging.getLogger(__name__)


class LoggingStreamStore(StreamStore):
    """Wrap a store and log before and after each operation."""

    def __init__(
        self,
        store: StreamStore,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the wrapper around ``store``."""
        self._store = store
        self._logger = logger or module_logger

    @property
    def wrapped(self) -> StreamStore:
        """The decorated store."""
        return self._store

    def stat(self, path: str) -> FileInfo:
        """Log and delegate ``stat``."""
        return self._call("stat", self._store.stat, path)

    def lstat(self, path: str) -> FileInfo:
        """Log and delegate ``lstat``."""
        return self._call("lstat", self._store.lstat, path)

    def mkdir(self, path: str, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Log and delegate ``mkdir``."""
        self._call("mkdir", self._store.mkdir, path, mode)

    def readdir(self, path: str) -> list[FileInfo]:
        """Log and delegate ``readdir``."""
        return self._call("readdir", self._store.readdir, path)

    def remove(self, path: str) -> None:
        """Log and delegate ``remove``."""
        self._call("remove", self._store.remove, path)

    def create(self, path: str) -> AtomicWriter:
        """Log and delegate ``create``."""
        return self._call("create", self._store.create, path)

    def open(self, path: str) -> RangeReader:
        """Log and delegate ``open``."""
        return self._call("open", self._store.open, path)

    def close(self) -> None:
        """Log and delegate ``close``."""
        self._call("close", self._store.close)

    def _call(self, name: str, method: Callable[..., Any], *args: Any) -> Any:
        self._logger.debug("before %s %r", name, args)
        try:
            result = method(*args)
        except Exception as exc:
            self._logger.debug("failed %s %r: %s", name, args, type(exc).__name__)
            raise
        self._logger.debug("after %s %r", name, args)
        return result

    def __repr__(self) -> str:
        """Return a short description of the wrapper."""
        return f"LoggingStreamStore({self._store!r})"
