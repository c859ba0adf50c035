"""Validation helpers for store operations.

This module provides reusable validation functions that work with entries
(files/directories) from every backend implementation. The PathEntry
protocol keeps the checks backend-agnostic: a ``FileInfo`` satisfies it, and
so does any lightweight record exposing ``is_dir``.

Example:
    >>> entry = store_lookup("/data/file.txt")  # FileInfo or None
    >>> validate_entry_exists(entry, "/data/file.txt")  # Raises if missing
    >>> validate_is_file(entry, "/data/file.txt")  # Raises if a directory

"""

from __future__ import annotations

from typing import Any, Protocol

from .interfaces import (
    AlreadyExistsError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
)


class PathEntry(Protocol):
    """Protocol for path entry objects used in validation."""

    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory."""
        ...


def validate_entry_exists(
    entry: PathEntry | None,
    path: Any,
) -> PathEntry:
    """Validate that an entry exists.

    Args:
        entry: Entry to validate (None if doesn't exist)
        path: Path representation for error messages

    Returns:
        The entry if it exists.

    Raises:
        NotFoundError: If entry is None.

    """
    if entry is None:
        raise NotFoundError(path)
    return entry


def validate_entry_not_exists(
    entry: PathEntry | None,
    path: Any,
) -> None:
    """Validate that an entry does not exist.

    Raises:
        AlreadyExistsError: If entry exists.

    """
    if entry is not None:
        raise AlreadyExistsError(path)


def validate_is_file(entry: PathEntry, path: Any) -> None:
    """Validate that an entry is a file, not a directory.

    Raises:
        IsDirectoryError: If entry is a directory.

    """
    if entry.is_dir:
        raise IsDirectoryError(path)


def validate_is_directory(entry: PathEntry, path: Any) -> None:
    """Validate that an entry is a directory, not a file.

    Raises:
        NotDirectoryError: If entry is a file.

    """
    if not entry.is_dir:
        raise NotDirectoryError(path)


def validate_parent_directory(
    entry: PathEntry | None,
    path: Any,
) -> None:
    """Validate that a parent entry exists and is a directory.

    Args:
        entry: The parent's entry (None if doesn't exist)
        path: Parent path representation for error messages

    Raises:
        NotFoundError: If the parent is missing.
        NotDirectoryError: If the parent is a file.

    """
    validate_is_directory(validate_entry_exists(entry, path), path)


def validate_not_overwriting_directory_with_file(
    entry: PathEntry | None,
    path: Any,
) -> None:
    """Validate that a file write does not target an existing directory.

    Raises:
        IsDirectoryError: If entry exists and is a directory.

    """
    if entry is not None and entry.is_dir:
        raise IsDirectoryError(path)
