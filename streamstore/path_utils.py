"""Path validation and normalization utilities.

Every store addresses entries with absolute, slash-separated paths. These
helpers turn caller input into that canonical form and split it into parent
and child segments.

Key utilities:
- Empty/whitespace path validation
- Windows path normalization
- Canonical absolute path normalization
- Parent/child splitting and ancestor enumeration
"""

from __future__ import annotations

import posixpath
from typing import Any

from .interfaces import InvalidOperationError

ROOT = "/"
SEPARATOR = "/"


def validate_not_empty(path: Any) -> None:
    """Validate that path is not empty or whitespace-only.

    Args:
        path: Path to validate

    Raises:
        InvalidOperationError: If path is empty or whitespace.

    """
    path_str = str(path)
    if not path_str or path_str.strip() == "":
        raise InvalidOperationError.empty_path_not_allowed(path)


def normalize_windows_path(path_str: str) -> str:
    """Normalize Windows backslashes to forward slashes.

    Example:

        >>> normalize_windows_path("dir\\subdir\\file.txt")
        'dir/subdir/file.txt'

    """
    return path_str.replace("\\", "/")


def normalize_path(path: Any) -> str:
    """Return the canonical absolute form of a store path.

    Relative input is rooted at ``/``, ``.`` and ``..`` segments collapse
    without ever climbing above the root, and trailing slashes are dropped.

    Example:

        >>> normalize_path("a/b/")
        '/a/b'
        >>> normalize_path("/../a//b/./c")
        '/a/b/c'
        >>> normalize_path("/")
        '/'

    Raises:
        InvalidOperationError: If path is empty or whitespace.

    """
    validate_not_empty(path)
    path_str = normalize_windows_path(str(path))
    # posixpath keeps a doubled leading slash, so strip them all first
    return posixpath.normpath(ROOT + path_str.lstrip(SEPARATOR))


def is_root(path: str) -> bool:
    """Return True when the normalized path is the store root."""
    return path == ROOT


def split_path(path: str) -> tuple[str, str]:
    """Split a normalized path into ``(parent, name)`` at the rightmost slash.

    Example:

        >>> split_path("/a/b/c")
        ('/a/b', 'c')
        >>> split_path("/a")
        ('/', 'a')

    """
    parent, _, name = path.rpartition(SEPARATOR)
    return parent or ROOT, name


def join_path(parent: str, name: str) -> str:
    """Join a normalized directory path and a child name."""
    if is_root(parent):
        return ROOT + name
    return parent + SEPARATOR + name


def ancestors(path: str) -> list[str]:
    """Return every proper ancestor below the root, outermost first.

    Example:

        >>> ancestors("/a/b/c")
        ['/a', '/a/b']

    """
    result: list[str] = []
    parent, _ = split_path(path)
    while not is_root(parent):
        result.append(parent)
        parent, _ = split_path(parent)
    result.reverse()
    return result
