"""Behaviour every StreamStore backend must share.

Each test runs against the memory store, the local disk store, the flat
emulator over fake S3 and GCS clients, and the SFTP store over a fake
client.
"""

from __future__ import annotations

import io
import stat
from typing import TYPE_CHECKING

import pytest

from streamstore import (
    DIRECTORY_SIZE,
    AlreadyExistsError,
    DirectoryNotEmptyError,
    FlatStreamStore,
    InvalidOperationError,
    IsDirectoryError,
    LocalStreamStore,
    MemoryStreamStore,
    NotDirectoryError,
    NotFoundError,
    StreamStore,
    mkdir_all,
    read_file,
    write_file,
)
from streamstore.gcs_backend import GCSPrimitives
from streamstore.s3_backend import S3Primitives
from streamstore.sftp_backend import SFTPStreamStore

from tests.fakes import FakeGCSClient, FakeS3Client, FakeSFTPClient

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

BACKENDS = ["mem", "local", "s3", "gcs", "sftp"]


def _build_store(kind: str, tmp_path: Path) -> StreamStore:
    if kind == "mem":
        return MemoryStreamStore()
    if kind == "local":
        return LocalStreamStore(tmp_path / "root")
    if kind == "s3":
        return FlatStreamStore(S3Primitives(FakeS3Client(), "bucket"), prefix="root")
    if kind == "gcs":
        return FlatStreamStore(GCSPrimitives(FakeGCSClient(), "bucket"), prefix="root")
    if kind == "sftp":
        (tmp_path / "mount").mkdir()
        return SFTPStreamStore(FakeSFTPClient(tmp_path), root="/mount")
    message = f"unknown backend {kind}"
    raise ValueError(message)


@pytest.fixture(params=BACKENDS)
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[StreamStore]:
    """Provide each backend in turn, closed after the test."""
    instance = _build_store(request.param, tmp_path)
    yield instance
    instance.close()


def _names(store: StreamStore, path: str) -> list[str]:
    return sorted(entry.name for entry in store.readdir(path))


class TestStat:
    """Metadata for files, directories and the root."""

    def test_root_is_directory(self, store: StreamStore) -> None:
        """The root always exists as a directory."""
        info = store.stat("/")
        assert info.is_dir
        assert stat.S_ISDIR(info.mode)

    def test_file_size_after_close(self, store: StreamStore) -> None:
        """A closed writer's byte count is reported by stat."""
        with store.create("/data.bin") as writer:
            writer.write(b"x" * 1000)
            writer.write(b"y" * 24)
        info = store.stat("/data.bin")
        assert not info.is_dir
        assert info.size == 1024
        assert stat.S_ISREG(info.mode)
        assert info.name == "data.bin"

    def test_directory_reports_synthetic_size(self, store: StreamStore) -> None:
        """Directories report the conventional directory size."""
        store.mkdir("/dir")
        info = store.stat("/dir")
        assert info.is_dir
        assert info.size == DIRECTORY_SIZE

    def test_missing_path(self, store: StreamStore) -> None:
        """Stat of an absent path raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.stat("/missing")

    def test_path_beneath_file_is_missing(self, store: StreamStore) -> None:
        """Nothing can exist below a regular file."""
        write_file(store, "/file.txt", b"data")
        with pytest.raises(NotFoundError):
            store.stat("/file.txt/child")

    def test_trailing_slash_and_relative_paths(self, store: StreamStore) -> None:
        """Paths are normalized before use."""
        store.mkdir("dir/")
        assert store.stat("/dir/").is_dir
        assert store.stat("dir/../dir").is_dir

    def test_lstat_matches_stat(self, store: StreamStore) -> None:
        """Stores have no links, so lstat equals stat."""
        write_file(store, "/file.txt", b"abc")
        assert store.lstat("/file.txt").size == store.stat("/file.txt").size == 3


class TestMkdir:
    """Single-level directory creation."""

    def test_mkdir_twice(self, store: StreamStore) -> None:
        """Creating an existing directory raises AlreadyExistsError."""
        store.mkdir("/dir")
        with pytest.raises(AlreadyExistsError):
            store.mkdir("/dir")

    def test_mkdir_over_file(self, store: StreamStore) -> None:
        """Creating a directory where a file exists raises AlreadyExistsError."""
        write_file(store, "/name", b"")
        with pytest.raises(AlreadyExistsError):
            store.mkdir("/name")

    def test_mkdir_root(self, store: StreamStore) -> None:
        """The root already exists."""
        with pytest.raises(AlreadyExistsError):
            store.mkdir("/")

    def test_mkdir_missing_parent(self, store: StreamStore) -> None:
        """Mkdir is not recursive."""
        with pytest.raises(NotFoundError):
            store.mkdir("/a/b")
        with pytest.raises(NotFoundError):
            store.stat("/a")

    def test_mkdir_beneath_file(self, store: StreamStore) -> None:
        """A file parent raises NotDirectoryError."""
        write_file(store, "/file.txt", b"data")
        with pytest.raises(NotDirectoryError):
            store.mkdir("/file.txt/sub")

    def test_mkdir_all_is_idempotent(self, store: StreamStore) -> None:
        """mkdir_all creates ancestors and tolerates existing ones."""
        mkdir_all(store, "/a/b/c")
        mkdir_all(store, "/a/b/c")
        mkdir_all(store, "/a/b/d")
        assert store.stat("/a/b/c").is_dir
        assert _names(store, "/a/b") == ["c", "d"]

    def test_mkdir_all_through_file(self, store: StreamStore) -> None:
        """mkdir_all refuses to descend through a file."""
        store.mkdir("/a")
        write_file(store, "/a/b", b"")
        with pytest.raises(NotDirectoryError):
            mkdir_all(store, "/a/b/c")


class TestReaddir:
    """Directory listings."""

    def test_dot_prefixed_names_listed(self, store: StreamStore) -> None:
        """Names are never filtered, whatever they start with."""
        write_file(store, "/.streamstore-notes", b"x")
        write_file(store, "/.hidden", b"")
        assert _names(store, "/") == [".hidden", ".streamstore-notes"]
        assert store.stat("/.streamstore-notes").size == 1

    def test_immediate_children_only(self, store: StreamStore) -> None:
        """Nested entries collapse into their top-level directory."""
        mkdir_all(store, "/top/sub/deeper")
        write_file(store, "/top/file.txt", b"1")
        write_file(store, "/top/sub/inner.txt", b"22")
        write_file(store, "/top/sub/deeper/leaf.txt", b"333")

        entries = {entry.name: entry for entry in store.readdir("/top")}
        assert sorted(entries) == ["file.txt", "sub"]
        assert entries["sub"].is_dir
        assert entries["sub"].path == "/top/sub"
        assert entries["file.txt"].size == 1
        assert _names(store, "/top/sub") == ["deeper", "inner.txt"]

    def test_root_listing(self, store: StreamStore) -> None:
        """The root can be listed."""
        store.mkdir("/dir")
        write_file(store, "/file", b"")
        assert _names(store, "/") == ["dir", "file"]

    def test_empty_directory(self, store: StreamStore) -> None:
        """An empty directory lists nothing."""
        store.mkdir("/empty")
        assert store.readdir("/empty") == []

    def test_many_entries(self, store: StreamStore) -> None:
        """Listings spanning more than one backend page are complete."""
        store.mkdir("/many")
        for index in range(1010):
            write_file(store, f"/many/file-{index:04d}", b"")
        names = _names(store, "/many")
        assert len(names) == 1010
        assert names[0] == "file-0000"
        assert names[-1] == "file-1009"

    def test_readdir_file(self, store: StreamStore) -> None:
        """Listing a file raises NotDirectoryError."""
        write_file(store, "/file.txt", b"data")
        with pytest.raises(NotDirectoryError):
            store.readdir("/file.txt")

    def test_readdir_missing(self, store: StreamStore) -> None:
        """Listing a missing directory raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.readdir("/missing")


class TestRemove:
    """Removal of files and directories."""

    def test_remove_file(self, store: StreamStore) -> None:
        """A removed file is gone."""
        write_file(store, "/file.txt", b"data")
        store.remove("/file.txt")
        with pytest.raises(NotFoundError):
            store.stat("/file.txt")

    def test_remove_empty_directory(self, store: StreamStore) -> None:
        """An empty directory can be removed."""
        store.mkdir("/dir")
        store.remove("/dir")
        with pytest.raises(NotFoundError):
            store.stat("/dir")

    def test_remove_non_empty_directory(self, store: StreamStore) -> None:
        """A directory with children cannot be removed."""
        store.mkdir("/dir")
        write_file(store, "/dir/file.txt", b"data")
        with pytest.raises(DirectoryNotEmptyError):
            store.remove("/dir")
        store.remove("/dir/file.txt")
        store.remove("/dir")
        assert store.readdir("/") == []

    def test_pending_writer_leaves_directory_empty(self, store: StreamStore) -> None:
        """An uncommitted write neither shows in readdir nor blocks removal."""
        store.mkdir("/d")
        writer = store.create("/d/f")
        writer.write(b"pending")
        assert store.readdir("/d") == []
        store.remove("/d")
        with pytest.raises(NotFoundError):
            store.stat("/d")
        writer.discard()

    def test_remove_missing(self, store: StreamStore) -> None:
        """Removing a missing path raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.remove("/missing")

    def test_remove_root(self, store: StreamStore) -> None:
        """The root cannot be removed."""
        with pytest.raises(InvalidOperationError):
            store.remove("/")


class TestCreate:
    """Atomic write sessions."""

    def test_content_visible_only_after_close(self, store: StreamStore) -> None:
        """Nothing appears at the path until the writer is closed."""
        writer = store.create("/pending.txt")
        writer.write(b"payload")
        with pytest.raises(NotFoundError):
            store.stat("/pending.txt")
        assert _names(store, "/") == []
        writer.close()
        assert read_file(store, "/pending.txt") == b"payload"

    def test_overwrite_replaces_content(self, store: StreamStore) -> None:
        """Closing a second writer replaces the first file's content."""
        write_file(store, "/file.txt", b"original content")
        writer = store.create("/file.txt")
        writer.write(b"new")
        assert read_file(store, "/file.txt") == b"original content"
        writer.close()
        assert read_file(store, "/file.txt") == b"new"
        assert store.stat("/file.txt").size == 3

    def test_exception_discards(self, store: StreamStore) -> None:
        """Leaving the block through an exception commits nothing."""
        with pytest.raises(RuntimeError), store.create("/file.txt") as writer:
            writer.write(b"partial")
            message = "boom"
            raise RuntimeError(message)
        with pytest.raises(NotFoundError):
            store.stat("/file.txt")
        assert _names(store, "/") == []

    def test_write_after_close(self, store: StreamStore) -> None:
        """A closed writer rejects further data."""
        writer = store.create("/file.txt")
        writer.close()
        with pytest.raises(InvalidOperationError):
            writer.write(b"late")

    def test_empty_file(self, store: StreamStore) -> None:
        """Closing without writing creates an empty file."""
        store.create("/empty").close()
        assert store.stat("/empty").size == 0
        assert read_file(store, "/empty") == b""

    def test_create_missing_parent(self, store: StreamStore) -> None:
        """Creating below a missing directory raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.create("/missing/file.txt")

    def test_create_beneath_file(self, store: StreamStore) -> None:
        """Creating below a file raises NotDirectoryError."""
        write_file(store, "/file.txt", b"data")
        with pytest.raises(NotDirectoryError):
            store.create("/file.txt/child")

    def test_create_over_directory(self, store: StreamStore) -> None:
        """A directory cannot be replaced by a file."""
        store.mkdir("/dir")
        with pytest.raises(IsDirectoryError):
            store.create("/dir")

    def test_write_file_from_stream(self, store: StreamStore) -> None:
        """write_file copies file-like objects in chunks."""
        payload = bytes(range(256)) * 100
        size = write_file(store, "/blob", io.BytesIO(payload), chunk_size=1000)
        assert size == len(payload)
        assert read_file(store, "/blob") == payload


class TestOpen:
    """Read sessions."""

    @pytest.fixture
    def alphabet(self, store: StreamStore) -> str:
        """Store a 26-byte file and return its path."""
        path = "/alphabet.txt"
        write_file(store, path, b"abcdefghijklmnopqrstuvwxyz")
        return path

    def test_sequential_reads(self, store: StreamStore, alphabet: str) -> None:
        """Reads advance the cursor and end with empty results."""
        with store.open(alphabet) as reader:
            assert reader.size == 26
            assert reader.read(10) == b"abcdefghij"
            assert reader.read(10) == b"klmnopqrst"
            assert reader.read(10) == b"uvwxyz"
            assert reader.read(10) == b""
            assert reader.eof
            assert reader.read(10) == b""

    def test_read_at_does_not_move_cursor(self, store: StreamStore, alphabet: str) -> None:
        """Positional reads leave the sequential cursor alone."""
        with store.open(alphabet) as reader:
            assert reader.read(3) == b"abc"
            assert reader.read_at(4, 20) == b"uvwx"
            assert reader.read_at(10, 20) == b"uvwxyz"
            assert reader.read_at(5, 26) == b""
            assert reader.read(3) == b"def"
            assert reader.tell() == 6

    def test_readers_are_independent(self, store: StreamStore, alphabet: str) -> None:
        """Two readers over one file keep separate cursors."""
        with store.open(alphabet) as first, store.open(alphabet) as second:
            assert first.read(5) == b"abcde"
            assert second.read(2) == b"ab"
            assert first.read(2) == b"fg"
            assert second.read(2) == b"cd"

    def test_seek(self, store: StreamStore, alphabet: str) -> None:
        """Seek supports all whence values and past-end positions."""
        with store.open(alphabet) as reader:
            assert reader.seek(-3, io.SEEK_END) == 23
            assert reader.read() == b"xyz"
            assert reader.seek(5) == 5
            assert reader.seek(2, io.SEEK_CUR) == 7
            assert reader.read(1) == b"h"
            assert reader.seek(100) == 100
            assert reader.read(4) == b""
            assert reader.eof
            reader.seek(0)
            assert not reader.eof
            assert reader.read(1) == b"a"

    def test_open_directory(self, store: StreamStore) -> None:
        """Opening a directory raises IsDirectoryError."""
        store.mkdir("/dir")
        with pytest.raises(IsDirectoryError):
            store.open("/dir")

    def test_open_missing(self, store: StreamStore) -> None:
        """Opening a missing file raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.open("/missing")

    def test_reader_keeps_snapshot_size(self, store: StreamStore, alphabet: str) -> None:
        """The size is captured when the reader is opened."""
        with store.open(alphabet) as reader:
            assert reader.size == 26
            assert reader.read(26) == b"abcdefghijklmnopqrstuvwxyz"
