"""Convenience helpers layered on the StreamStore contract.

These functions only use the public store operations, so they behave the same
on every backend.

Example:
    >>> mkdir_all(store, "/reports/2024/q1")
    >>> write_file(store, "/reports/2024/q1/summary.txt", "done")
    >>> read_file(store, "/reports/2024/q1/summary.txt")
    b'done'

"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

from .interfaces import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DIRECTORY_MODE,
    AlreadyExistsError,
    NotDirectoryError,
)
from .path_utils import ancestors, is_root, normalize_path

if TYPE_CHECKING:
    from .interfaces import StreamStore


def coerce_to_bytes(data: bytes | bytearray | str) -> bytes:
    """Coerce bytes-like or text input to raw bytes (text is UTF-8 encoded).

    Raises:
        TypeError: If data type is not supported.

    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, bytearray):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    message = f"Unsupported data type: {type(data).__name__}"
    raise TypeError(message)


def mkdir_all(
    store: StreamStore,
    path: str,
    mode: int = DEFAULT_DIRECTORY_MODE,
) -> None:
    """Create ``path`` and any missing ancestors; existing directories are kept.

    Raises:
        NotDirectoryError: If ``path`` or one of its ancestors is a file.

    """
    target = normalize_path(path)
    if is_root(target):
        return
    for directory in [*ancestors(target), target]:
        try:
            store.mkdir(directory, mode)
        except AlreadyExistsError:
            if not store.stat(directory).is_dir:
                raise NotDirectoryError(directory) from None


def write_file(
    store: StreamStore,
    path: str,
    data: bytes | bytearray | str | BinaryIO,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Write ``data`` to ``path`` in one atomic session and return its size.

    File-like objects are copied in ``chunk_size`` pieces.
    """
    with store.create(path) as writer:
        if hasattr(data, "read"):
            while True:
                chunk = data.read(chunk_size)
                if not chunk:
                    break
                writer.write(coerce_to_bytes(chunk))
        else:
            writer.write(coerce_to_bytes(data))
        return writer.size


def read_file(store: StreamStore, path: str) -> bytes:
    """Return the whole content of the file at ``path``."""
    with store.open(path) as reader:
        return reader.read()
