"""Tests for the buffered atomic writer."""

from __future__ import annotations

import gc
import io
from typing import BinaryIO

import pytest

from streamstore.interfaces import InvalidOperationError
from streamstore.writer import AtomicWriter


class RecordingCommit:
    """Commit callable capturing every payload it receives."""

    def __init__(self, *, fail: bool = False) -> None:
        """Optionally fail every commit."""
        self.payloads: list[bytes] = []
        self.fail = fail

    def __call__(self, body: BinaryIO) -> None:
        """Read the whole body, then fail if configured to."""
        self.payloads.append(body.read())
        if self.fail:
            message = "upload rejected"
            raise OSError(message)


@pytest.fixture
def commit() -> RecordingCommit:
    """Provide a recording commit callable."""
    return RecordingCommit()


class TestAtomicWriter:
    """Commit and discard behaviour."""

    def test_commits_once_on_close(self, commit: RecordingCommit) -> None:
        """All writes are delivered as one payload at close."""
        writer = AtomicWriter("/file", commit)
        assert writer.write(b"hello ") == 6
        writer.write(bytearray(b"world"))
        assert commit.payloads == []
        assert writer.size == writer.tell() == 11
        writer.close()
        writer.close()
        assert commit.payloads == [b"hello world"]
        assert writer.closed

    def test_write_after_close(self, commit: RecordingCommit) -> None:
        """A closed writer rejects data."""
        writer = AtomicWriter("/file", commit)
        writer.close()
        assert not writer.writable()
        with pytest.raises(InvalidOperationError, match="closed"):
            writer.write(b"late")

    def test_discard(self, commit: RecordingCommit) -> None:
        """Discarded content is never committed and cleanup runs."""
        discarded: list[bool] = []
        writer = AtomicWriter("/file", commit, on_discard=lambda: discarded.append(True))
        writer.write(b"data")
        writer.discard()
        writer.close()
        assert commit.payloads == []
        assert discarded == [True]

    def test_context_manager_commits(self, commit: RecordingCommit) -> None:
        """Leaving the block normally commits."""
        with AtomicWriter("/file", commit) as writer:
            writer.write(b"data")
        assert commit.payloads == [b"data"]

    def test_context_manager_discards_on_error(self, commit: RecordingCommit) -> None:
        """Leaving the block by exception does not commit."""
        with pytest.raises(KeyError), AtomicWriter("/file", commit) as writer:
            writer.write(b"data")
            raise KeyError
        assert commit.payloads == []
        assert writer.closed

    def test_abandoned_writer_never_commits(self, commit: RecordingCommit) -> None:
        """Garbage collection discards instead of committing."""
        discarded: list[bool] = []
        writer = AtomicWriter("/file", commit, on_discard=lambda: discarded.append(True))
        writer.write(b"data")
        del writer
        gc.collect()
        assert commit.payloads == []
        assert discarded == [True]

    def test_failed_commit_discards_and_raises(self) -> None:
        """Commit errors propagate and the pending content is cleaned up."""
        failing = RecordingCommit(fail=True)
        discarded: list[bool] = []
        writer = AtomicWriter("/file", failing, on_discard=lambda: discarded.append(True))
        writer.write(b"data")
        with pytest.raises(OSError, match="rejected"):
            writer.close()
        assert discarded == [True]
        assert writer.closed

    def test_custom_buffer_is_rewound(self, commit: RecordingCommit) -> None:
        """A supplied buffer is rewound before commit."""
        buffer = io.BytesIO()
        writer = AtomicWriter("/file", commit, buffer=buffer)
        writer.write(b"abc")
        writer.close()
        assert commit.payloads == [b"abc"]
        assert buffer.closed

    def test_large_payload_spills_to_disk(self, commit: RecordingCommit) -> None:
        """Payloads above the spool threshold are still delivered intact."""
        chunk = b"x" * (1024 * 1024)
        with AtomicWriter("/big", commit) as writer:
            for _ in range(10):
                writer.write(chunk)
        assert len(commit.payloads[0]) == 10 * len(chunk)

    def test_repr(self, commit: RecordingCommit) -> None:
        """The representation names the path and state."""
        writer = AtomicWriter("/file", commit)
        assert "open" in repr(writer)
        writer.close()
        assert "closed" in repr(writer)
