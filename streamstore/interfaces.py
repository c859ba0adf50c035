"""Core interfaces and data structures for stream store implementations."""

from __future__ import annotations

import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from .reader import RangeReader
    from .writer import AtomicWriter

DEFAULT_CHUNK_SIZE = 8192
DIRECTORY_SIZE = 4096
DEFAULT_DIRECTORY_MODE = 0o755
DEFAULT_FILE_MODE = 0o644


class FileBackendError(RuntimeError):
    """Base exception for store operations."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
    ) -> None:
        """Initialise the base error with an optional store path context."""
        detail = message if path is None else ": ".join((message, str(path)))
        super().__init__(detail)
        self.message = message
        self.path = path


class NotFoundError(FileBackendError):
    """Raised when an expected file or directory is missing."""

    def __init__(self, path: str) -> None:
        """Create a not-found error for the provided path."""
        super().__init__("Path not found", path=path)


class AlreadyExistsError(FileBackendError):
    """Raised when attempting to create a resource that already exists."""

    def __init__(self, path: str, *, reason: str | None = None) -> None:
        """Create an already-exists error with an optional reason."""
        super().__init__(reason or "Path already exists", path=path)


class InvalidOperationError(FileBackendError):
    """Raised when an operation is not allowed for the given path."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        """Initialise an invalid operation error scoped to a path."""
        super().__init__(message, path=path)

    @classmethod
    def path_outside_root(cls, path: str) -> InvalidOperationError:
        """Return an error showing the path escapes the store root."""
        return cls("Path escapes store root", path=path)

    @classmethod
    def empty_path_not_allowed(cls, path: Any) -> InvalidOperationError:
        """Return an error when an operation targets an empty path."""
        return cls("Path cannot be empty", path=str(path))

    @classmethod
    def root_path_not_allowed(cls, path: str) -> InvalidOperationError:
        """Return an error when the store root is targeted explicitly."""
        return cls("Path cannot refer to store root", path=path)

    @classmethod
    def handle_closed(cls, path: str | None = None) -> InvalidOperationError:
        """Return an error for I/O against an already-closed handle."""
        return cls("I/O operation on closed handle", path=path)


class IsDirectoryError(InvalidOperationError):
    """Raised when a file operation targets a directory."""

    def __init__(self, path: str) -> None:
        """Create an is-a-directory error for the provided path."""
        super().__init__("Is a directory", path=path)


class NotDirectoryError(InvalidOperationError):
    """Raised when a directory operation (or a parent segment) is a file."""

    def __init__(self, path: str) -> None:
        """Create a not-a-directory error for the provided path."""
        super().__init__("Not a directory", path=path)


class DirectoryNotEmptyError(InvalidOperationError):
    """Raised when removing a directory that still has children."""

    def __init__(self, path: str) -> None:
        """Create a directory-not-empty error for the provided path."""
        super().__init__("Directory not empty", path=path)


class ConnectionFailedError(FileBackendError):
    """Raised when a remote backend cannot be reached or handshaken."""


class PermissionDeniedError(FileBackendError):
    """Raised when the backend refuses access to a path or credentials."""

    def __init__(self, path: str | None = None, *, reason: str | None = None) -> None:
        """Create a permission error with an optional reason."""
        super().__init__(reason or "Permission denied", path=path)


class UnsupportedError(FileBackendError):
    """Raised for unrecognised schemes or connection-string options."""

    @classmethod
    def unknown_scheme(cls, scheme: str, supported: list[str]) -> UnsupportedError:
        """Return an error naming the unrecognised scheme."""
        return cls(
            f"Unsupported URI scheme: '{scheme}'. "
            f"Supported schemes: {', '.join(supported)}",
        )

    @classmethod
    def unknown_options(cls, scheme: str, options: list[str]) -> UnsupportedError:
        """Return an error naming options the scheme does not declare."""
        return cls(f"Unsupported options for '{scheme}': {', '.join(options)}")


@dataclass(frozen=True)
class FileInfo:
    """Snapshot of metadata for a store entry."""

    path: str
    is_dir: bool
    size: int
    mode: int
    modified_at: datetime | None

    @property
    def name(self) -> str:
        """Final path segment, or ``/`` for the root."""
        return self.path.rsplit("/", 1)[-1] or "/"

    @property
    def permissions(self) -> int:
        """Permission bits without the file type."""
        return stat.S_IMODE(self.mode)

    def as_dict(self) -> dict:
        """Return a JSON-serialisable representation."""
        return {
            "path": self.path,
            "name": self.name,
            "is_dir": self.is_dir,
            "size": self.size,
            "mode": self.mode,
            "modified_at": self.modified_at.isoformat()
            if self.modified_at
            else None,
        }

    @classmethod
    def directory(
        cls,
        path: str,
        *,
        mode: int = DEFAULT_DIRECTORY_MODE,
        modified_at: datetime | None = None,
    ) -> FileInfo:
        """Build metadata for a directory with the synthetic directory size."""
        return cls(
            path=path,
            is_dir=True,
            size=DIRECTORY_SIZE,
            mode=stat.S_IFDIR | stat.S_IMODE(mode),
            modified_at=modified_at,
        )

    @classmethod
    def file(
        cls,
        path: str,
        size: int,
        *,
        mode: int = DEFAULT_FILE_MODE,
        modified_at: datetime | None = None,
    ) -> FileInfo:
        """Build metadata for a regular file."""
        return cls(
            path=path,
            is_dir=False,
            size=size,
            mode=stat.S_IFREG | stat.S_IMODE(mode),
            modified_at=modified_at,
        )


class StreamStore(ABC):
    """Standardised hierarchical interface over a storage backend.

    Paths are absolute, slash-separated strings interpreted relative to the
    store's mount root. Every operation may be called concurrently from
    several threads sharing one store; the readers and writers it hands out
    are single-caller objects.
    """

    @abstractmethod
    def stat(self, path: str) -> FileInfo:
        """Return metadata for a file or directory.

        Raises:
            NotFoundError: If nothing exists at ``path``.

        """

    def lstat(self, path: str) -> FileInfo:
        """Return metadata without following links (stores have none)."""
        return self.stat(path)

    @abstractmethod
    def mkdir(self, path: str, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create a single directory.

        Raises:
            NotFoundError: If the parent directory does not exist.
            NotDirectoryError: If the parent is a file.
            AlreadyExistsError: If ``path`` already exists.

        """

    @abstractmethod
    def readdir(self, path: str) -> list[FileInfo]:
        """List the immediate children of a directory.

        Raises:
            NotFoundError: If ``path`` does not exist.
            NotDirectoryError: If ``path`` is a file.

        """

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file or an empty directory.

        Raises:
            NotFoundError: If ``path`` does not exist.
            DirectoryNotEmptyError: If ``path`` is a directory with children.

        """

    @abstractmethod
    def create(self, path: str) -> AtomicWriter:
        """Open a write session; content becomes visible when it is closed.

        Raises:
            NotFoundError: If the parent directory does not exist.
            NotDirectoryError: If the parent is a file.
            IsDirectoryError: If ``path`` is a directory.

        """

    @abstractmethod
    def open(self, path: str) -> RangeReader:
        """Open a read session over an existing file.

        Raises:
            NotFoundError: If ``path`` does not exist.
            IsDirectoryError: If ``path`` is a directory.

        """

    @abstractmethod
    def close(self) -> None:
        """Release connections and other resources held by the store."""

    def __enter__(self) -> StreamStore:
        """Return the store itself for use in a ``with`` block."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the store when leaving the ``with`` block."""
        self.close()
