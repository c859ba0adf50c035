"""Hierarchical directory emulation over flat key/value object stores.

Object stores such as S3 or GCS address blobs by a single key and have no
notion of directories. ``FlatStreamStore`` implements the full ``StreamStore``
contract on top of five primitives exposed by an ``ObjectPrimitives``
adapter: put, ranged get, head, paginated prefix listing and delete.

Key Layout:
    A store path ``/a/b/c`` maps to the key ``<prefix>a/b/c`` where
    ``prefix`` is the mount root inside the bucket. A directory exists when
    either a marker object ``<prefix>a/b/`` exists or any key lies beneath
    ``<prefix>a/b/``. Both forms are treated identically by stat, readdir and
    remove.

Listing:
    Listings are paginated by the backend. ``readdir`` follows continuation
    tokens until exhausted and merges the pages into one listing; any page
    failure propagates and no partial result is returned.

Example:

    >>> from streamstore.s3_backend import S3Primitives
    >>> store = FlatStreamStore(S3Primitives(client, "bucket"), prefix="data/")
    >>> store.mkdir("/reports")
    >>> with store.create("/reports/today.csv") as writer:
    ...     writer.write(b"1,42\\n")
    >>> [entry.name for entry in store.readdir("/reports")]
    ['today.csv']

"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO

from .interfaces import (
    DEFAULT_DIRECTORY_MODE,
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
    from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ObjectSummary:
    """A single object as reported by head or a listing."""

    key: str
    size: int
    modified_at: datetime | None = None


@dataclass(frozen=True)
class ListPage:
    """One page of a prefix listing plus the token for the next page."""

    objects: list[ObjectSummary] = field(default_factory=list)
    next_token: str | None = None


class ObjectPrimitives(ABC):
    """Minimal single-round-trip operations a flat backend must supply.

    Implementations translate not-found and access-denied conditions into
    ``NotFoundError``/``PermissionDeniedError`` where noted and let every
    other failure propagate unchanged.
    """

    @abstractmethod
    def put(self, key: str, body: BinaryIO) -> None:
        """Store ``body`` at ``key`` as one object, replacing any prior one."""

    @abstractmethod
    def get_range(self, key: str, offset: int, length: int) -> bytes:
        """Return ``length`` bytes of ``key`` starting at ``offset``."""

    @abstractmethod
    def head(self, key: str) -> ObjectSummary | None:
        """Return the object's summary, or None when it does not exist."""

    @abstractmethod
    def list_objects(
        self,
        prefix: str,
        *,
        max_keys: int = DEFAULT_PAGE_SIZE,
        token: str | None = None,
    ) -> ListPage:
        """Return one page of objects whose keys start with ``prefix``.

        Keys are returned in the backend's native (lexicographic) order.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object at ``key``."""

    def close(self) -> None:  # noqa: B027
        """Release the underlying client."""


class FlatStreamStore(StreamStore):
    """StreamStore emulating directories on top of ``ObjectPrimitives``."""

    def __init__(
        self,
        primitives: ObjectPrimitives,
        *,
        prefix: str = "",
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialise the emulator.

        Args:
            primitives: Backend adapter supplying the flat operations.
            prefix: Mount root inside the key space (e.g. ``"data/"``).
            page_size: Maximum keys requested per listing round trip.

        """
        if page_size < 1:
            message = "page_size must be positive"
            raise ValueError(message)
        stripped = prefix.strip(SEPARATOR)
        self._prefix = stripped + SEPARATOR if stripped else ""
        self._primitives = primitives
        self._page_size = page_size

    @property
    def primitives(self) -> ObjectPrimitives:
        """Backend adapter used by this store."""
        return self._primitives

    @property
    def prefix(self) -> str:
        """Key prefix all store paths are mapped under."""
        return self._prefix

    def stat(self, path: str) -> FileInfo:
        """Return metadata for a file, a marker directory or an implied one."""
        target = normalize_path(path)
        return validate_entry_exists(self._lookup(target), target)

    def mkdir(self, path: str, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create a directory by writing its marker object."""
        target = normalize_path(path)
        if is_root(target):
            raise AlreadyExistsError(target)
        parent, _ = split_path(target)
        validate_parent_directory(self._lookup(parent), parent)
        validate_entry_not_exists(self._lookup(target), target)
        self._primitives.put(self._marker_key(target), io.BytesIO(b""))

    def readdir(self, path: str) -> list[FileInfo]:
        """Merge every listing page under the directory into its children."""
        target = normalize_path(path)
        entry = validate_entry_exists(self._lookup(target), target)
        validate_is_directory(entry, target)

        prefix = self._marker_key(target)
        children: dict[str, FileInfo] = {}
        token: str | None = None
        pages = 0
        while True:
            page = self._primitives.list_objects(
                prefix,
                max_keys=self._page_size,
                token=token,
            )
            pages += 1
            for summary in page.objects:
                remainder = summary.key[len(prefix) :]
                if not remainder:
                    continue
                name, separator, _ = remainder.partition(SEPARATOR)
                if not name or name in children:
                    continue
                child_path = join_path(target, name)
                if separator:
                    children[name] = FileInfo.directory(child_path)
                else:
                    children[name] = FileInfo.file(
                        child_path,
                        summary.size,
                        modified_at=summary.modified_at,
                    )
            token = page.next_token
            if not token:
                break
        logger.debug("Listed %s: %d entries over %d pages", target, len(children), pages)
        return list(children.values())

    def remove(self, path: str) -> None:
        """Delete a file object or the marker of an empty directory."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        entry = validate_entry_exists(self._lookup(target), target)
        if not entry.is_dir:
            self._primitives.delete(self._key(target))
            return
        if self._has_children(target):
            raise DirectoryNotEmptyError(target)
        self._primitives.delete(self._marker_key(target))

    def create(self, path: str) -> AtomicWriter:
        """Return a writer that uploads the whole object when closed."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        parent, _ = split_path(target)
        validate_parent_directory(self._lookup(parent), parent)
        validate_not_overwriting_directory_with_file(self._lookup(target), target)

        key = self._key(target)

        def commit(body: BinaryIO) -> None:
            self._primitives.put(key, body)

        return AtomicWriter(target, commit)

    def open(self, path: str) -> RangeReader:
        """Return a reader issuing ranged gets against the object."""
        target = normalize_path(path)
        entry = validate_entry_exists(self._lookup(target), target)
        validate_is_file(entry, target)

        key = self._key(target)

        def fetch_range(offset: int, length: int) -> bytes:
            return self._primitives.get_range(key, offset, length)

        return RangeReader(fetch_range, entry.size, name=target)

    def close(self) -> None:
        """Close the backend adapter."""
        self._primitives.close()

    def _lookup(self, target: str) -> FileInfo | None:
        """Resolve a normalized path to file info, directory info or None."""
        if is_root(target):
            return FileInfo.directory(target)
        summary = self._primitives.head(self._key(target))
        if summary is not None:
            return FileInfo.file(
                target,
                summary.size,
                modified_at=summary.modified_at,
            )
        page = self._primitives.list_objects(self._marker_key(target), max_keys=1)
        if page.objects:
            return FileInfo.directory(target)
        return None

    def _has_children(self, target: str) -> bool:
        """Return True when anything other than the marker lies beneath."""
        prefix = self._marker_key(target)
        page = self._primitives.list_objects(prefix, max_keys=2)
        return any(summary.key != prefix for summary in page.objects)

    def _key(self, target: str) -> str:
        return self._prefix + target.lstrip(SEPARATOR)

    def _marker_key(self, target: str) -> str:
        if is_root(target):
            return self._prefix
        return self._key(target) + SEPARATOR

    def __repr__(self) -> str:
        """Return a short description of the store."""
        return f"FlatStreamStore({self._primitives!r}, prefix={self._prefix!r})"
