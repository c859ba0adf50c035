"""Google Cloud Storage adapter for the flat directory emulator.

Connection String:
    ``gs://bucket/optional/prefix?credentialsfile=/etc/gcs/service.json``

    Without ``credentialsfile`` the client falls back to Application Default
    Credentials.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, BinaryIO

from google.api_core import exceptions as gax
from google.cloud import storage

from .flat import DEFAULT_PAGE_SIZE, FlatStreamStore, ListPage, ObjectPrimitives, ObjectSummary
from .interfaces import NotFoundError, PermissionDeniedError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .connection import ConnectionString
    from .registry import BackendRegistry

logger = logging.getLogger(__name__)


@contextmanager
def _gcs_errors(key: str) -> Iterator[None]:
    """Translate google-api-core errors for ``key`` into store errors."""
    try:
        yield
    except gax.NotFound as exc:
        raise NotFoundError(key) from exc
    except (gax.Forbidden, gax.Unauthorized) as exc:
        raise PermissionDeniedError(key, reason=str(exc)) from exc


class GCSPrimitives(ObjectPrimitives):
    """Flat object operations against one GCS bucket."""

    def __init__(self, client: Any, bucket_name: str) -> None:
        """Initialise the adapter with a ``google.cloud.storage.Client``."""
        if not bucket_name:
            message = "GCS bucket name is required"
            raise ValueError(message)
        self._client = client
        self._bucket = client.bucket(bucket_name)
        self._bucket_name = bucket_name

    def put(self, key: str, body: BinaryIO) -> None:
        """Upload ``body`` as one object."""
        with _gcs_errors(key):
            self._bucket.blob(key).upload_from_file(body, rewind=True)

    def get_range(self, key: str, offset: int, length: int) -> bytes:
        """Download an inclusive byte range."""
        try:
            with _gcs_errors(key):
                return self._bucket.blob(key).download_as_bytes(
                    start=offset,
                    end=offset + length - 1,
                )
        except gax.RequestRangeNotSatisfiable:
            # the object shrank after the reader captured its size
            return b""

    def head(self, key: str) -> ObjectSummary | None:
        """Fetch blob metadata; ``get_blob`` returns None for missing keys."""
        with _gcs_errors(key):
            blob = self._bucket.get_blob(key)
        if blob is None:
            return None
        return ObjectSummary(key=key, size=int(blob.size or 0), modified_at=blob.updated)

    def list_objects(
        self,
        prefix: str,
        *,
        max_keys: int = DEFAULT_PAGE_SIZE,
        token: str | None = None,
    ) -> ListPage:
        """Return a single page of ``list_blobs``."""
        with _gcs_errors(prefix):
            iterator = self._bucket.list_blobs(
                prefix=prefix,
                page_size=max_keys,
                page_token=token,
            )
            page = next(iterator.pages, None)
            blobs = list(page) if page is not None else []
        objects = [
            ObjectSummary(key=blob.name, size=int(blob.size or 0), modified_at=blob.updated)
            for blob in blobs
        ]
        return ListPage(objects=objects, next_token=iterator.next_page_token)

    def delete(self, key: str) -> None:
        """Delete one blob."""
        with _gcs_errors(key):
            self._bucket.blob(key).delete()

    def close(self) -> None:
        """Close the client's HTTP session."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __repr__(self) -> str:
        """Return a short description of the adapter."""
        return f"GCSPrimitives(bucket={self._bucket_name!r})"


def _create_gcs_store(location: ConnectionString) -> FlatStreamStore:
    """Build a store from ``gs://bucket/prefix``."""
    credentials_file = location.option("credentialsfile")
    if credentials_file:
        client = storage.Client.from_service_account_json(credentials_file)
    else:
        client = storage.Client()
    logger.debug("Opened GCS bucket %s", location.host)
    return FlatStreamStore(GCSPrimitives(client, location.host), prefix=location.path)


def register_backend(registry: BackendRegistry) -> None:
    """Register the ``gs`` scheme."""
    registry.register("gs", _create_gcs_store, options=("credentialsfile",))
