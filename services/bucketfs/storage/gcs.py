"""
Google Cloud Storage remote client for bucketfs.

Uses the synchronous google-cloud-storage SDK. Auth via Application
Default Credentials; credential acquisition is left entirely to the SDK.
"""

from __future__ import annotations

import base64
import io
from datetime import UTC, datetime
from typing import Any, BinaryIO

from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exc

from bucketfs.logging_config import get_logger
from bucketfs.storage.protocol import (
    CONTENT_HASH,
    DEFAULT_CONTENT_TYPE,
    BlobMeta,
    ListPage,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectStorePermissionError,
    TransientStoreError,
)
from bucketfs.storage.sink import CommitSink

logger = get_logger(__name__)

_TRANSIENT = (
    gexc.TooManyRequests,
    gexc.DeadlineExceeded,
    gexc.ServerError,
    auth_exc.TransportError,
    OSError,
)


def translate_error(e: Exception, name: str) -> ObjectStoreError:
    """Map a google SDK or transport failure onto the bucketfs taxonomy."""
    if isinstance(e, gexc.NotFound):
        return ObjectNotFoundError(name)
    if isinstance(e, gexc.Forbidden | gexc.Unauthorized):
        return ObjectStorePermissionError(str(e))
    if isinstance(e, _TRANSIENT):
        return TransientStoreError(str(e))
    return ObjectStoreError(str(e))


class GCSClient:
    """Remote client backed by a Google Cloud Storage bucket."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        project_id: str = "",
        client: Any = None,
    ) -> None:
        self._bucket_name = bucket
        self._prefix = prefix.strip("/")
        self._project_id = project_id or None
        self._client: Any = client

    def _full_key(self, name: str) -> str:
        if self._prefix:
            return f"{self._prefix}/{name}"
        return name

    def _strip_prefix(self, full_key: str) -> str:
        if self._prefix and full_key.startswith(self._prefix + "/"):
            return full_key[len(self._prefix) + 1 :]
        return full_key

    def _get_client(self) -> Any:
        if self._client is None:
            from google.cloud import storage as gcs_storage

            self._client = gcs_storage.Client(project=self._project_id)
            logger.info("GCS client initialized", bucket=self._bucket_name)
        return self._client

    def _blob(self, name: str) -> Any:
        return self._get_client().bucket(self._bucket_name).blob(self._full_key(name))

    def _to_meta(self, blob: Any) -> BlobMeta:
        metadata = dict(blob.metadata or {})
        if blob.md5_hash:
            # GCS reports base64; bucketfs records hex everywhere.
            metadata.setdefault(CONTENT_HASH, base64.b64decode(blob.md5_hash).hex())
        return BlobMeta(
            name=self._strip_prefix(blob.name),
            updated=blob.updated or datetime.now(UTC),
            size=int(blob.size or 0),
            metadata=metadata,
            content_type=blob.content_type or DEFAULT_CONTENT_TYPE,
        )

    def list_page(
        self,
        prefix: str,
        page_size: int,
        page_token: str | None = None,
    ) -> ListPage:
        full_prefix = self._full_key(prefix)
        try:
            iterator = self._get_client().list_blobs(
                self._bucket_name,
                prefix=full_prefix or None,
                max_results=page_size,
                page_token=page_token,
            )
            page = next(iterator.pages, None)
            records = [self._to_meta(b) for b in page] if page is not None else []
        except Exception as e:
            raise translate_error(e, prefix) from e

        return ListPage(records=records, next_page_token=iterator.next_page_token or None)

    def read(self, name: str) -> BinaryIO:
        try:
            data = self._blob(name).download_as_bytes()
        except Exception as e:
            raise translate_error(e, name) from e
        return io.BytesIO(data)

    def write(self, name: str, metadata: dict[str, str], content_type: str) -> BinaryIO:
        blob = self._blob(name)
        blob.metadata = dict(metadata) or None

        def _commit(data: bytes) -> None:
            try:
                blob.upload_from_string(data, content_type=content_type)
            except Exception as e:
                raise translate_error(e, name) from e

        return CommitSink(_commit)

    def delete(self, name: str) -> None:
        try:
            self._blob(name).delete()
        except Exception as e:
            raise translate_error(e, name) from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("GCS client closed")
