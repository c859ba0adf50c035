"""Exception translation between OSError and the store error taxonomy.

Two directions are covered:

- Inbound: backends built on OS-style APIs (the local disk, SFTP) raise
  ``OSError`` subclasses. ``os_errors_translated`` converts them into
  ``streamstore`` errors at the adapter boundary.
- Outbound: callers that prefer builtin exceptions can wrap a store in
  ``CompatibleStreamStore`` (or use ``translate_exceptions``) to receive
  ``FileNotFoundError``, ``FileExistsError`` and friends instead.
"""

from __future__ import annotations

import errno
import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

from streamstore.interfaces import (
    AlreadyExistsError,
    ConnectionFailedError,
    DirectoryNotEmptyError,
    FileBackendError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
    PermissionDeniedError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from streamstore.interfaces import StreamStore

T = TypeVar("T")


def translate_os_error(exc: OSError, path: str) -> Exception:
    """Convert an OSError raised for ``path`` into a store error.

    Errors without a counterpart in the taxonomy are returned unchanged so
    that they surface as-is.
    """
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(path)
    if isinstance(exc, FileExistsError):
        return AlreadyExistsError(path)
    if isinstance(exc, IsADirectoryError):
        return IsDirectoryError(path)
    if isinstance(exc, NotADirectoryError):
        return NotDirectoryError(path)
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(path, reason=exc.strerror)
    if exc.errno == errno.ENOTEMPTY:
        return DirectoryNotEmptyError(path)
    if isinstance(exc, ConnectionError):
        return ConnectionFailedError(str(exc), path=path)
    return exc


@contextmanager
def os_errors_translated(path: str) -> Iterator[None]:
    """Context manager converting OSError into store errors for ``path``.

    Example:
        ```python
        with os_errors_translated("/data/file.txt"):
            os.remove(target)  # FileNotFoundError -> NotFoundError
        ```

    """
    try:
        yield
    except OSError as exc:
        translated = translate_os_error(exc, path)
        if translated is exc:
            raise
        raise translated from exc


def translate_backend_exception(exc: FileBackendError) -> OSError:
    """Convert a FileBackendError to a standard Python OSError.

    Maps:
    - NotFoundError → FileNotFoundError
    - AlreadyExistsError → FileExistsError
    - IsDirectoryError → IsADirectoryError
    - NotDirectoryError → NotADirectoryError
    - DirectoryNotEmptyError → OSError(ENOTEMPTY)
    - PermissionDeniedError → PermissionError
    - ConnectionFailedError → ConnectionError
    - FileBackendError → OSError

    """
    message = str(exc)

    if isinstance(exc, NotFoundError):
        return FileNotFoundError(errno.ENOENT, message)
    if isinstance(exc, AlreadyExistsError):
        return FileExistsError(errno.EEXIST, message)
    if isinstance(exc, IsDirectoryError):
        return IsADirectoryError(errno.EISDIR, message)
    if isinstance(exc, NotDirectoryError):
        return NotADirectoryError(errno.ENOTDIR, message)
    if isinstance(exc, DirectoryNotEmptyError):
        return OSError(errno.ENOTEMPTY, message)
    if isinstance(exc, PermissionDeniedError):
        return PermissionError(errno.EACCES, message)
    if isinstance(exc, ConnectionFailedError):
        return ConnectionError(message)
    return OSError(message)


@contextmanager
def translate_exceptions() -> Iterator[None]:
    """Context manager translating store errors into OSError subclasses.

    Example:
        ```python
        with translate_exceptions():
            store.open("/nonexistent.txt")  # Raises FileNotFoundError
        ```

    """
    try:
        yield
    except FileBackendError as exc:
        raise translate_backend_exception(exc) from exc


def translate_method(method: Callable[..., T]) -> Callable[..., T]:
    """Decorator for translating exceptions raised by a store method."""

    @functools.wraps(method)
    def wrapper(*args: object, **kwargs: object) -> T:
        with translate_exceptions():
            return method(*args, **kwargs)

    return wrapper


class CompatibleStreamStore:
    """Wrapper store that raises standard Python OSError subclasses.

    Example:
        ```python
        store = CompatibleStreamStore(MemoryStreamStore())
        try:
            store.stat("/missing")
        except FileNotFoundError:
            print("File not found!")
        ```

    """

    def __init__(self, store: StreamStore) -> None:
        """Initialize the compatible wrapper around ``store``."""
        self._store = store

    def __getattr__(self, name: str) -> object:
        """Delegate attribute access, wrapping callables with translation."""
        attr = getattr(self._store, name)
        if callable(attr):
            return translate_method(attr)
        return attr

    def __enter__(self) -> CompatibleStreamStore:
        """Return the wrapper for use in a ``with`` block."""
        return self

    def __exit__(self, *exc_info: object) -> None:
        """Close the wrapped store."""
        self._store.close()

    def __repr__(self) -> str:
        """Return string representation of the wrapper."""
        return f"CompatibleStreamStore({self._store!r})"
