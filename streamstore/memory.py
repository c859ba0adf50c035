"""In-process reference implementation of StreamStore.

``MemoryStreamStore`` keeps a directory tree in memory and implements the
hierarchical contract directly. It is the conformance oracle the other
backends are compared against and the fastest store for tests.

Each ``mem://`` connection string resolves to a fresh, empty store.

Example:

    >>> store = MemoryStreamStore()
    >>> store.mkdir("/data")
    >>> with store.create("/data/hello.txt") as writer:
    ...     writer.write(b"hello")
    >>> store.open("/data/hello.txt").read()
    b'hello'

"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, BinaryIO

from .interfaces import (
    DEFAULT_DIRECTORY_MODE,
    DEFAULT_FILE_MODE,
    AlreadyExistsError,
    DirectoryNotEmptyError,
    FileInfo,
    InvalidOperationError,
    StreamStore,
)
from .path_utils import SEPARATOR, is_root, join_path, normalize_path, split_path
from .reader import RangeReader
from .validation import (
    validate_entry_exists,
    validate_entry_not_exists,
    validate_is_directory,
    validate_is_file,
    validate_not_overwriting_directory_with_file,
    validate_parent_directory,
)
from .writer import AtomicWriter

if TYPE_CHECKING:
    from .connection import ConnectionString
    from .registry import BackendRegistry


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class _MemoryNode:
    """A file or directory in the in-memory tree."""

    is_dir: bool
    mode: int
    modified_at: datetime = field(default_factory=_now)
    data: bytes = b""
    children: dict[str, _MemoryNode] = field(default_factory=dict)


class MemoryStreamStore(StreamStore):
    """StreamStore holding its whole tree in process memory."""

    def __init__(self) -> None:
        """Initialise an empty tree containing only the root directory."""
        self._root = _MemoryNode(is_dir=True, mode=DEFAULT_DIRECTORY_MODE)
        self._lock = threading.RLock()

    def stat(self, path: str) -> FileInfo:
        """Return metadata for a file or directory."""
        target = normalize_path(path)
        with self._lock:
            node = validate_entry_exists(self._find(target), target)
            return self._to_info(target, node)

    def mkdir(self, path: str, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create one directory beneath an existing parent."""
        target = normalize_path(path)
        if is_root(target):
            raise AlreadyExistsError(target)
        parent_path, name = split_path(target)
        with self._lock:
            parent = self._find(parent_path)
            validate_parent_directory(parent, parent_path)
            validate_entry_not_exists(parent.children.get(name), target)
            parent.children[name] = _MemoryNode(is_dir=True, mode=mode)
            parent.modified_at = _now()

    def readdir(self, path: str) -> list[FileInfo]:
        """Return immediate children sorted by name."""
        target = normalize_path(path)
        with self._lock:
            node = validate_entry_exists(self._find(target), target)
            validate_is_directory(node, target)
            return [
                self._to_info(join_path(target, name), child)
                for name, child in sorted(node.children.items())
            ]

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        parent_path, name = split_path(target)
        with self._lock:
            node = validate_entry_exists(self._find(target), target)
            if node.is_dir and node.children:
                raise DirectoryNotEmptyError(target)
            parent = self._find(parent_path)
            del parent.children[name]
            parent.modified_at = _now()

    def create(self, path: str) -> AtomicWriter:
        """Return a writer that installs the file node when closed."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        parent_path, name = split_path(target)
        with self._lock:
            validate_parent_directory(self._find(parent_path), parent_path)
            validate_not_overwriting_directory_with_file(
                self._find(target),
                target,
            )

        def commit(body: BinaryIO) -> None:
            payload = body.read()
            with self._lock:
                parent = self._find(parent_path)
                validate_parent_directory(parent, parent_path)
                validate_not_overwriting_directory_with_file(
                    parent.children.get(name),
                    target,
                )
                parent.children[name] = _MemoryNode(
                    is_dir=False,
                    mode=DEFAULT_FILE_MODE,
                    data=payload,
                )
                parent.modified_at = _now()

        return AtomicWriter(target, commit)

    def open(self, path: str) -> RangeReader:
        """Return a reader over a snapshot of the file's current content."""
        target = normalize_path(path)
        with self._lock:
            node = validate_entry_exists(self._find(target), target)
            validate_is_file(node, target)
            data = node.data

        def fetch_range(offset: int, length: int) -> bytes:
            return data[offset : offset + length]

        return RangeReader(fetch_range, len(data), name=target)

    def close(self) -> None:
        """Nothing to release; the tree lives as long as the store object."""

    def _find(self, target: str) -> _MemoryNode | None:
        """Walk the tree; None if any segment is missing or not a directory."""
        node = self._root
        if is_root(target):
            return node
        for segment in target.lstrip(SEPARATOR).split(SEPARATOR):
            if not node.is_dir:
                return None
            child = node.children.get(segment)
            if child is None:
                return None
            node = child
        return node

    @staticmethod
    def _to_info(path: str, node: _MemoryNode) -> FileInfo:
        if node.is_dir:
            return FileInfo.directory(
                path,
                mode=node.mode,
                modified_at=node.modified_at,
            )
        return FileInfo.file(
            path,
            len(node.data),
            mode=node.mode,
            modified_at=node.modified_at,
        )

    def __repr__(self) -> str:
        """Return a short description of the store."""
        return "MemoryStreamStore()"


def _create_memory_store(location: ConnectionString) -> MemoryStreamStore:
    """Create a fresh memory store; ``mem://`` takes no parameters."""
    return MemoryStreamStore()


def register_backend(registry: BackendRegistry) -> None:
    """Register the ``mem`` scheme."""
    registry.register("mem", _create_memory_store)
