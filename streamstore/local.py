"""Local filesystem implementation of StreamStore.

All entries live beneath a root directory on the local disk. Store paths are
mapped onto that root and re-checked after symlink resolution so that no
path can escape it.

Atomic Writes:
    ``create`` buffers content in a spooled accumulator. On close the content
    is copied into a hidden file placed in the target's directory and renamed
    over the target, so readers see either the old content or the new
    content, never a partial file. The hidden file only exists while the
    commit runs.

Positional Reads:
    ``open`` holds one file descriptor per reader and serves every read
    through ``os.pread``, so ``read_at`` calls never share a file offset.

Example:

    >>> store = LocalStreamStore("/data/files")
    >>> store.mkdir("/reports")
    >>> with store.create("/reports/today.csv") as writer:
    ...     writer.write(b"1,42\\n")
    >>> store.stat("/reports/today.csv").size
    5

"""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .compat import os_errors_translated
from .interfaces import (
    DEFAULT_DIRECTORY_MODE,
    DEFAULT_FILE_MODE,
    AlreadyExistsError,
    FileInfo,
    InvalidOperationError,
    IsDirectoryError,
    NotFoundError,
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

TEMP_PREFIX = ".streamstore-"
LOCAL_HOSTS = ("", "localhost")


class LocalStreamStore(StreamStore):
    """StreamStore backed by a directory on the local filesystem."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        create_root: bool = True,
    ) -> None:
        """Initialise the store rooted at the given filesystem path."""
        base = Path(root).expanduser()
        self._root = base.resolve(strict=False)
        if create_root:
            self._root.mkdir(parents=True, exist_ok=True)
        elif not self._root.is_dir():
            raise NotFoundError(str(self._root))

    @property
    def root(self) -> Path:
        """Absolute directory used as the store root."""
        return self._root

    def stat(self, path: str) -> FileInfo:
        """Return metadata for a file or directory."""
        target = normalize_path(path)
        return validate_entry_exists(self._lookup(target), target)

    def mkdir(self, path: str, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create one directory; ``mode`` is subject to the process umask."""
        target = normalize_path(path)
        if is_root(target):
            raise AlreadyExistsError(target)
        parent, _ = split_path(target)
        validate_parent_directory(self._lookup(parent), parent)
        validate_entry_not_exists(self._lookup(target), target)
        with os_errors_translated(target):
            os.mkdir(self._ensure_within_root(target), mode)

    def readdir(self, path: str) -> list[FileInfo]:
        """Return immediate children sorted by name."""
        target = normalize_path(path)
        entry = validate_entry_exists(self._lookup(target), target)
        validate_is_directory(entry, target)

        children: list[FileInfo] = []
        with os_errors_translated(target), os.scandir(
            self._ensure_within_root(target),
        ) as entries:
            for child in entries:
                try:
                    child_stat = child.stat()
                except FileNotFoundError:
                    # removed between listing and stat, or a dangling symlink
                    continue
                children.append(_to_info(join_path(target, child.name), child_stat))
        children.sort(key=lambda info: info.name)
        return children

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        entry = validate_entry_exists(self._lookup(target), target)
        real = self._ensure_within_root(target)
        with os_errors_translated(target):
            if entry.is_dir:
                os.rmdir(real)
            else:
                os.remove(real)

    def create(self, path: str) -> AtomicWriter:
        """Return a writer that renames a hidden temp file into place on close."""
        target = normalize_path(path)
        if is_root(target):
            raise InvalidOperationError.root_path_not_allowed(target)
        parent, _ = split_path(target)
        validate_parent_directory(self._lookup(parent), parent)
        validate_not_overwriting_directory_with_file(self._lookup(target), target)

        real = self._ensure_within_root(target)

        def commit(body: BinaryIO) -> None:
            with os_errors_translated(target):
                temp = tempfile.NamedTemporaryFile(  # noqa: SIM115
                    mode="wb",
                    dir=real.parent,
                    prefix=TEMP_PREFIX,
                    delete=False,
                )
                try:
                    with temp:
                        shutil.copyfileobj(body, temp)
                    os.chmod(temp.name, DEFAULT_FILE_MODE)
                    os.replace(temp.name, real)
                except BaseException:
                    with contextlib.suppress(FileNotFoundError):
                        os.remove(temp.name)
                    raise

        return AtomicWriter(target, commit)

    def open(self, path: str) -> RangeReader:
        """Return a reader serving positional reads from one descriptor."""
        target = normalize_path(path)
        entry = validate_entry_exists(self._lookup(target), target)
        validate_is_file(entry, target)

        with os_errors_translated(target):
            fd = os.open(self._ensure_within_root(target), os.O_RDONLY)
        try:
            fd_stat = os.fstat(fd)
            if stat.S_ISDIR(fd_stat.st_mode):
                raise IsDirectoryError(target)
        except BaseException:
            os.close(fd)
            raise

        def fetch_range(offset: int, length: int) -> bytes:
            with os_errors_translated(target):
                return os.pread(fd, length, offset)

        return RangeReader(
            fetch_range,
            fd_stat.st_size,
            name=target,
            on_close=lambda: os.close(fd),
        )

    def close(self) -> None:
        """Nothing to release; every reader owns its own descriptor."""

    def _lookup(self, target: str) -> FileInfo | None:
        """Stat a normalized path; None when it or an ancestor is missing."""
        real = self._ensure_within_root(target)
        with os_errors_translated(target):
            try:
                stat_result = os.stat(real)
            except (FileNotFoundError, NotADirectoryError):
                # NotADirectoryError: an ancestor is a regular file
                return None
        return _to_info(target, stat_result)

    def _ensure_within_root(self, target: str) -> Path:
        """Map a normalized store path onto the root, refusing escapes.

        The candidate is resolved with symlinks followed; a link pointing
        outside the root raises ``InvalidOperationError``.
        """
        candidate = (self._root / target.lstrip(SEPARATOR)).resolve(strict=False)
        try:
            candidate.relative_to(self._root)
        except ValueError as exc:
            raise InvalidOperationError.path_outside_root(target) from exc
        return candidate

    def __repr__(self) -> str:
        """Return a short description of the store."""
        return f"LocalStreamStore({str(self._root)!r})"


def _to_info(path: str, stat_result: os.stat_result) -> FileInfo:
    modified_at = _timestamp_to_datetime(stat_result.st_mtime)
    if stat.S_ISDIR(stat_result.st_mode):
        return FileInfo.directory(
            path,
            mode=stat_result.st_mode,
            modified_at=modified_at,
        )
    return FileInfo.file(
        path,
        stat_result.st_size,
        mode=stat_result.st_mode,
        modified_at=modified_at,
    )


def _timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert a POSIX timestamp to an aware datetime in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _create_local_store(location: ConnectionString) -> LocalStreamStore:
    """Build a store from ``file:///absolute/root``."""
    if location.host.lower() not in LOCAL_HOSTS:
        message = f"file:// only supports local paths, got host '{location.host}'"
        raise ValueError(message)
    return LocalStreamStore(
        location.path,
        create_root=location.flag("create_root", default=True),
    )


def register_backend(registry: BackendRegistry) -> None:
    """Register the ``file`` scheme."""
    registry.register("file", _create_local_store, options=("create_root",))
