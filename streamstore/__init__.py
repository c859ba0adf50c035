"""Storage abstraction library with one hierarchical contract over many stores.

This package exposes a small filesystem-like interface (stat, mkdir, readdir,
remove, create, open) implemented uniformly over local disk, process memory,
flat cloud object stores and SFTP servers. A connection string selects the
backend at open time, so calling code stays backend-agnostic.

Core Components:
    - StreamStore: Abstract interface all backends implement
    - LocalStreamStore: Direct filesystem storage (``file://``)
    - MemoryStreamStore: In-process reference store (``mem://``)
    - FlatStreamStore: Directory emulation over S3 (``s3://``) and GCS (``gs://``)
    - SFTPStreamStore: Remote storage over SFTP (``sftp://``)
    - RangeReader / AtomicWriter: Read and write sessions handed out by stores

Quick Start:

    >>> from streamstore import resolve_backend
    >>> with resolve_backend("mem://") as store:
    ...     store.mkdir("/data")
    ...     with store.create("/data/hello.txt") as writer:
    ...         writer.write(b"Hello, world!")
    ...     with store.open("/data/hello.txt") as reader:
    ...         reader.read()
    b'Hello, world!'

Exception Handling:

    >>> from streamstore import NotFoundError
    >>> try:
    ...     store.stat("/nonexistent.txt")
    ... except NotFoundError:
    ...     print("File not found")

Supported Operations:
    - stat() / lstat() - Entry metadata
    - mkdir() - Create one directory
    - readdir() - List immediate children
    - remove() - Delete a file or empty directory
    - create() - Start an atomic write session
    - open() - Start a seekable read session

"""

from .compat import (
    CompatibleStreamStore,
    os_errors_translated,
    translate_backend_exception,
    translate_exceptions,
)
from .connection import ConnectionString
from .factory import (
    create_default_registry,
    default_registry,
    register_backend_factory,
    resolve_backend,
)
from .flat import FlatStreamStore, ListPage, ObjectPrimitives, ObjectSummary
from .interfaces import (
    DEFAULT_CHUNK_SIZE,
    DIRECTORY_SIZE,
    AlreadyExistsError,
    ConnectionFailedError,
    DirectoryNotEmptyError,
    FileBackendError,
    FileInfo,
    InvalidOperationError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
    PermissionDeniedError,
    StreamStore,
    UnsupportedError,
)
from .local import LocalStreamStore
from .logging_store import LoggingStreamStore
from .memory import MemoryStreamStore
from .reader import RangeReader, ReadCursor
from .registry import BackendRegistry
from .utils import mkdir_all, read_file, write_file
from .writer import AtomicWriter

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DIRECTORY_SIZE",
    "AlreadyExistsError",
    "AtomicWriter",
    "BackendRegistry",
    "CompatibleStreamStore",
    "ConnectionFailedError",
    "ConnectionString",
    "DirectoryNotEmptyError",
    "FileBackendError",
    "FileInfo",
    "FlatStreamStore",
    "InvalidOperationError",
    "IsDirectoryError",
    "ListPage",
    "LocalStreamStore",
    "LoggingStreamStore",
    "MemoryStreamStore",
    "NotDirectoryError",
    "NotFoundError",
    "ObjectPrimitives",
    "ObjectSummary",
    "PermissionDeniedError",
    "RangeReader",
    "ReadCursor",
    "StreamStore",
    "UnsupportedError",
    "create_default_registry",
    "default_registry",
    "mkdir_all",
    "os_errors_translated",
    "read_file",
    "register_backend_factory",
    "resolve_backend",
    "translate_backend_exception",
    "translate_exceptions",
    "write_file",
]
