"""Amazon S3 adapter for the flat directory emulator.

``S3Primitives`` implements ``ObjectPrimitives`` with boto3 so that
``FlatStreamStore`` can present a bucket (or a prefix within it) as a
hierarchical store.

Connection String:
    ``s3://bucket/optional/prefix?sse=AES256&region=eu-west-1``

    Options:
        - ``sse``: server-side encryption applied to every upload
          (``AES256`` or ``aws:kms``)
        - ``region``: AWS region of the bucket
        - ``endpoint``: custom endpoint URL for S3-compatible services

Credentials come from the standard boto3 chain (environment, shared config,
instance metadata).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, BinaryIO

import boto3
from botocore.exceptions import ClientError, EndpointConnectionError

from .flat import DEFAULT_PAGE_SIZE, FlatStreamStore, ListPage, ObjectPrimitives, ObjectSummary
from .interfaces import ConnectionFailedError, NotFoundError, PermissionDeniedError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .connection import ConnectionString
    from .registry import BackendRegistry

logger = logging.getLogger(__name__)

SSE_ALGORITHMS = ("AES256", "aws:kms")
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
ACCESS_DENIED_CODES = frozenset({"403", "AccessDenied", "Forbidden"})
INVALID_RANGE_CODES = frozenset({"416", "InvalidRange"})


def _error_code(exc: ClientError) -> str:
    error = exc.response.get("Error") or {}
    return str(error.get("Code") or "")


@contextmanager
def _s3_errors(key: str) -> Iterator[None]:
    """Translate boto3 errors for ``key`` into store errors."""
    try:
        yield
    except ClientError as exc:
        code = _error_code(exc)
        if code in NOT_FOUND_CODES:
            raise NotFoundError(key) from exc
        if code in ACCESS_DENIED_CODES:
            raise PermissionDeniedError(key, reason=str(exc)) from exc
        raise
    except EndpointConnectionError as exc:
        raise ConnectionFailedError(str(exc), path=key) from exc


class S3Primitives(ObjectPrimitives):
    """Flat object operations against one S3 bucket."""

    def __init__(self, client: Any, bucket: str, *, sse: str | None = None) -> None:
        """Initialise the adapter.

        Args:
            client: A boto3 S3 client.
            bucket: Bucket holding the store's objects.
            sse: Server-side encryption algorithm applied to uploads.

        Raises:
            ValueError: If the bucket is empty or sse is not recognised.

        """
        if not bucket:
            message = "S3 bucket name is required"
            raise ValueError(message)
        if sse is not None and sse not in SSE_ALGORITHMS:
            message = f"Unsupported sse '{sse}'; expected one of {', '.join(SSE_ALGORITHMS)}"
            raise ValueError(message)
        self._client = client
        self._bucket = bucket
        self._sse = sse

    @property
    def bucket(self) -> str:
        """Bucket name."""
        return self._bucket

    def put(self, key: str, body: BinaryIO) -> None:
        """Upload ``body``; boto3 switches to multipart for large payloads."""
        extra_args = {"ServerSideEncryption": self._sse} if self._sse else None
        with _s3_errors(key):
            self._client.upload_fileobj(body, self._bucket, key, ExtraArgs=extra_args)

    def get_range(self, key: str, offset: int, length: int) -> bytes:
        """Fetch an inclusive byte range with a ranged GET."""
        byte_range = f"bytes={offset}-{offset + length - 1}"
        try:
            with _s3_errors(key):
                response = self._client.get_object(
                    Bucket=self._bucket,
                    Key=key,
                    Range=byte_range,
                )
        except ClientError as exc:
            # the object shrank after the reader captured its size
            if _error_code(exc) in INVALID_RANGE_CODES:
                return b""
            raise
        return response["Body"].read()

    def head(self, key: str) -> ObjectSummary | None:
        """Return the object's size and timestamp, or None if it is absent."""
        try:
            with _s3_errors(key):
                response = self._client.head_object(Bucket=self._bucket, Key=key)
        except NotFoundError:
            return None
        return ObjectSummary(
            key=key,
            size=int(response.get("ContentLength", 0)),
            modified_at=response.get("LastModified"),
        )

    def list_objects(
        self,
        prefix: str,
        *,
        max_keys: int = DEFAULT_PAGE_SIZE,
        token: str | None = None,
    ) -> ListPage:
        """Return one ``list_objects_v2`` page."""
        kwargs: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if token:
            kwargs["ContinuationToken"] = token
        with _s3_errors(prefix):
            response = self._client.list_objects_v2(**kwargs)
        objects = [
            ObjectSummary(
                key=item["Key"],
                size=int(item.get("Size", 0)),
                modified_at=item.get("LastModified"),
            )
            for item in response.get("Contents", []) or []
        ]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListPage(objects=objects, next_token=next_token)

    def delete(self, key: str) -> None:
        """Delete one object."""
        with _s3_errors(key):
            self._client.delete_object(Bucket=self._bucket, Key=key)

    def close(self) -> None:
        """Close the client's connection pool."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __repr__(self) -> str:
        """Return a short description of the adapter."""
        return f"S3Primitives(bucket={self._bucket!r}, sse={self._sse!r})"


def _create_s3_store(location: ConnectionString) -> FlatStreamStore:
    """Build a store from ``s3://bucket/prefix``."""
    client = boto3.client(
        "s3",
        region_name=location.option("region"),
        endpoint_url=location.option("endpoint"),
    )
    primitives = S3Primitives(client, location.host, sse=location.option("sse"))
    logger.debug("Opened S3 bucket %s", location.host)
    return FlatStreamStore(primitives, prefix=location.path)


def register_backend(registry: BackendRegistry) -> None:
    """Register the ``s3`` scheme."""
    registry.register("s3", _create_s3_store, options=("sse", "region", "endpoint"))
