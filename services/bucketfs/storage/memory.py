"""
In-process remote client.

Keeps blobs in a dict. Used for tests and as a scratch backend; contents
vanish with the process.
"""

from __future__ import annotations

import hashlib
import io
from datetime import UTC, datetime
from typing import BinaryIO

from bucketfs.storage.protocol import CONTENT_HASH, BlobMeta, ListPage, ObjectNotFoundError
from bucketfs.storage.sink import CommitSink


class MemoryClient:
    """Remote client backed by a dictionary."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, BlobMeta]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def content(self, name: str) -> bytes:
        """Stored body of ``name``, for inspection."""
        if name not in self._blobs:
            raise ObjectNotFoundError(name)
        return self._blobs[name][0]

    def list_page(
        self,
        prefix: str,
        page_size: int,
        page_token: str | None = None,
    ) -> ListPage:
        names = sorted(n for n in self._blobs if n.startswith(prefix))
        start = int(page_token) if page_token else 0
        end = start + page_size
        records = [self._blobs[n][1] for n in names[start:end]]
        return ListPage(records=records, next_page_token=str(end) if end < len(names) else None)

    def read(self, name: str) -> BinaryIO:
        return io.BytesIO(self.content(name))

    def write(self, name: str, metadata: dict[str, str], content_type: str) -> BinaryIO:
        user_metadata = dict(metadata)

        def _commit(data: bytes) -> None:
            self.put(name, data, content_type=content_type, metadata=user_metadata)

        return CommitSink(_commit)

    def delete(self, name: str) -> None:
        if self._blobs.pop(name, None) is None:
            raise ObjectNotFoundError(name)

    def put(
        self,
        name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> BlobMeta:
        """Store a blob directly, bypassing the sink protocol."""
        meta = BlobMeta(
            name=name,
            updated=datetime.now(UTC),
            size=len(data),
            metadata={
                **(metadata or {}),
                CONTENT_HASH: hashlib.md5(data).hexdigest(),  # noqa: S324
            },
            content_type=content_type,
        )
        self._blobs[name] = (bytes(data), meta)
        return meta
