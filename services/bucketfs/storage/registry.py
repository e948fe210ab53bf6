"""
Bucket-scoped factory and directory of object handles.

The Store is the only component that talks to the remote client. Handles
call back into it to resolve, download and upload their blob.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from datetime import UTC, datetime

from bucketfs.logging_config import get_logger
from bucketfs.storage.handle import ObjectHandle
from bucketfs.storage.pager import merge_pages
from bucketfs.storage.protocol import (
    CONTENT_HASH,
    CONTENT_LENGTH,
    AlreadyOpenError,
    BlobMeta,
    Lookup,
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectStoreError,
    RemoteClient,
    merge_metadata,
)
from bucketfs.storage.query import Query, exact_name
from bucketfs.storage.retry import RetryPolicy

logger = get_logger(__name__)

# Recomputed on every upload, never carried over from a previous version.
_DERIVED_KEYS = frozenset({CONTENT_LENGTH, CONTENT_HASH})


class Store:
    """Handles on the blobs of one bucket."""

    def __init__(
        self,
        client: RemoteClient,
        bucket: str = "",
        *,
        page_size: int = 1000,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._page_size = page_size
        self._retry = retry or RetryPolicy()
        self._handles: dict[str, ObjectHandle] = {}

    def __repr__(self) -> str:
        return f"<Store bucket={self._bucket!r} handles={len(self._handles)}>"

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def client(self) -> RemoteClient:
        return self._client

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    def handles(self) -> list[str]:
        """Names with a live handle, sorted."""
        return sorted(self._handles)

    # --- Registry operations ---

    def new_object(self, name: str) -> ObjectHandle:
        """Register an empty, writable handle for a name not yet in the bucket.

        Nothing is written remotely until the handle is synced. Opening it
        without an explicit access level opens it read-write.

        Raises:
            ObjectExistsError: If the blob already exists remotely.
            AlreadyOpenError: If a live handle for ``name`` is open.
        """
        lookup = self.lookup(name)
        lookup.raise_for_error()
        if lookup.exists:
            raise ObjectExistsError(name)

        current = self._handles.get(name)
        if current is not None and current.opened:
            raise AlreadyOpenError(name)

        handle = ObjectHandle(self, name)
        self._handles[name] = handle
        logger.debug("Object created", bucket=self._bucket, name=name)
        return handle

    def get(self, name: str) -> ObjectHandle:
        """Return a handle carrying the remote metadata of ``name``.

        Content is not downloaded until the handle is opened.

        Raises:
            ObjectNotFoundError: If the blob does not exist remotely.
        """
        lookup = self.lookup(name)
        lookup.raise_for_error()
        if not lookup.exists or lookup.meta is None:
            raise ObjectNotFoundError(name)

        handle = self._handles.get(name)
        if handle is None:
            handle = ObjectHandle(self, name, remote=lookup.meta)
            self._handles[name] = handle
        else:
            handle.refresh(lookup.meta)
        return handle

    def list(self, query: Query | None = None) -> list[BlobMeta]:
        """Metadata of every blob matching ``query``."""
        query = query or Query()
        records = merge_pages(self._client, query, retry=self._retry, page_size=self._page_size)
        return query.apply_filters(records)

    def delete(self, name: str) -> None:
        """Delete a blob with a single remote call; errors surface unchanged."""
        self._client.delete(name)
        self._handles.pop(name, None)
        logger.info("Object deleted", bucket=self._bucket, name=name)

    def forget(self, handle: ObjectHandle) -> None:
        """Unregister ``handle`` if it is the live handle for its name."""
        if self._handles.get(handle.name) is handle:
            del self._handles[handle.name]

    # --- Remote access used by handles ---

    def lookup(self, name: str) -> Lookup:
        """Resolve exactly ``name`` with a single-result listing."""
        query = Query(prefix=name, page_size=1, max_results=1).where(exact_name(name))
        try:
            records = query.apply_filters(
                merge_pages(self._client, query, retry=self._retry, page_size=1)
            )
        except ObjectStoreError as e:
            return Lookup.failed(name, e)
        if not records:
            return Lookup.not_found(name)
        return Lookup.found(records[0])

    def download(self, name: str) -> bytes:
        """Fetch the full body of ``name``, retrying transient failures."""

        def _read() -> bytes:
            with self._client.read(name) as stream:
                return stream.read()

        return self._retry.call("read", _read)

    def upload(
        self,
        name: str,
        data: bytes,
        *,
        metadata: Mapping[str, str],
        content_type: str,
        updated: datetime | None = None,
    ) -> BlobMeta:
        """Write ``data`` as the new body of ``name``, retrying transient failures.

        Returns the metadata the blob now carries.
        """
        user_metadata = {k: v for k, v in metadata.items() if k not in _DERIVED_KEYS}

        def _write() -> None:
            with self._client.write(name, user_metadata, content_type) as sink:
                sink.write(data)

        self._retry.call("write", _write)
        digest = hashlib.md5(data).hexdigest()  # noqa: S324
        logger.info("Object synced", bucket=self._bucket, name=name, size=len(data))
        return BlobMeta(
            name=name,
            updated=updated or datetime.now(UTC),
            size=len(data),
            metadata=merge_metadata(
                user_metadata, size=len(data), content_type=content_type, content_hash=digest
            ),
            content_type=content_type,
        )
