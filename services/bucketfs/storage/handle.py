"""
In-memory, buffered handle on a single blob.

A handle downloads the whole blob on open, serves reads and writes from
a memory buffer, and uploads the whole buffer on sync. The buffer is
sequential: seeking is not supported.

Lifecycle::

    unresolved --open--> opened --close--> closed --open--> opened ...

Remote storage is authoritative for content whenever the handle is closed.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from bucketfs.logging_config import get_logger
from bucketfs.storage.protocol import (
    CONTENT_TYPE,
    DEFAULT_CONTENT_TYPE,
    AlreadyOpenError,
    BlobMeta,
    InvalidStateError,
    UnsupportedOperationError,
)

if TYPE_CHECKING:
    from bucketfs.storage.registry import Store

logger = get_logger(__name__)

MODE_READ_ONLY = 0o444
MODE_READ_WRITE = 0o644


class AccessLevel(StrEnum):
    """Intent fixed for the duration of an open session."""

    READ_ONLY = "r"
    READ_WRITE = "rw"


@dataclass(frozen=True)
class ObjectStat:
    """Stat-like summary of a handle."""

    name: str
    size: int
    mode: int
    updated: datetime


class ObjectHandle:
    """Stateful session on one blob, created and tracked by a Store."""

    def __init__(
        self,
        store: Store,
        name: str,
        *,
        remote: BlobMeta | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self._store = store
        self._name = name
        self._remote = remote
        self._metadata: dict[str, str] = dict(remote.metadata if remote else metadata or {})
        self._updated = remote.updated if remote else datetime.now(UTC)
        self._buffer = bytearray()
        self._pos = 0
        self._opened = False
        self._readonly = False

    def __repr__(self) -> str:
        state = "opened" if self._opened else "closed"
        return f"<ObjectHandle {self._name!r} {state} readonly={self._readonly}>"

    # --- Accessors ---

    @property
    def name(self) -> str:
        return self._name

    @property
    def metadata(self) -> dict[str, str]:
        return dict(self._metadata)

    @property
    def updated(self) -> datetime:
        return self._updated

    @property
    def remote(self) -> BlobMeta | None:
        """Remote metadata as of the last lookup or sync, None if never resolved."""
        return self._remote

    @property
    def opened(self) -> bool:
        return self._opened

    @property
    def readonly(self) -> bool:
        return self._readonly

    def readable(self) -> bool:
        return self._opened

    def writable(self) -> bool:
        return self._opened and not self._readonly

    def seekable(self) -> bool:
        return False

    def stat(self) -> ObjectStat:
        if self._opened:
            size = len(self._buffer)
        else:
            size = self._remote.size if self._remote else 0
        return ObjectStat(
            name=self._name,
            size=size,
            mode=MODE_READ_ONLY if self._readonly else MODE_READ_WRITE,
            updated=self._updated,
        )

    # --- Lifecycle ---

    def open(self, access: AccessLevel | None = None) -> ObjectHandle:
        """Start a session, downloading the blob body if it exists remotely.

        Without an explicit ``access``, a handle that has never been resolved
        remotely (fresh from ``Store.new_object``) opens read-write; any other
        handle opens read-only.

        Raises:
            AlreadyOpenError: If the handle is already open.
            RetryExhaustedError: If resolving or downloading kept failing.
        """
        if self._opened:
            raise AlreadyOpenError(self._name)

        if access is None:
            access = AccessLevel.READ_WRITE if self._remote is None else AccessLevel.READ_ONLY

        if self._remote is None:
            lookup = self._store.lookup(self._name)
            lookup.raise_for_error()
            if lookup.exists:
                self._set_remote(lookup.meta)

        if self._remote is not None:
            self._buffer = bytearray(self._store.download(self._name))
        else:
            self._buffer = bytearray()

        self._pos = 0
        self._readonly = access is AccessLevel.READ_ONLY
        self._opened = True
        logger.debug(
            "Object opened",
            name=self._name,
            access=str(access),
            size=len(self._buffer),
            new=self._remote is None,
        )
        return self

    def close(self) -> None:
        """End the session, syncing once if it was writable.

        A failed sync leaves the handle open so the caller may retry.
        """
        if not self._opened:
            return
        if not self._readonly:
            self.sync()
        self._opened = False
        self._buffer = bytearray()
        self._pos = 0
        logger.debug("Object closed", name=self._name)

    def release(self) -> None:
        """Drop the buffer and unregister from the store. Remote state is untouched."""
        self._buffer = bytearray()
        self._pos = 0
        self._opened = False
        self._store.forget(self)

    def __enter__(self) -> ObjectHandle:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --- Buffer I/O ---

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the cursor; all remaining if negative."""
        self._require_open("read")
        end = len(self._buffer)
        if size >= 0:
            end = min(self._pos + size, end)
        data = bytes(self._buffer[self._pos : end])
        self._pos = end
        return data

    def write(self, data: bytes) -> int:
        self._require_writable("write")
        self._buffer.extend(data)
        self._updated = datetime.now(UTC)
        return len(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        raise UnsupportedOperationError(
            f"seek is not supported on memory-buffered object {self._name!r}"
        )

    def tell(self) -> int:
        return self._pos

    def truncate(self, size: int) -> int:
        """Resize the buffer to ``size`` bytes, zero-padding when growing."""
        self._require_writable("truncate")
        if size < 0:
            raise ValueError(f"negative size value {size}")
        if size < len(self._buffer):
            del self._buffer[size:]
        else:
            self._buffer.extend(bytes(size - len(self._buffer)))
        self._pos = min(self._pos, size)
        self._updated = datetime.now(UTC)
        return size

    def sync(self) -> None:
        """Upload the whole buffer as the new blob body.

        Raises:
            InvalidStateError: If the handle is closed or read-only.
            RetryExhaustedError: If every upload attempt failed. The remote
                blob is left as the last attempt left it.
        """
        self._require_writable("sync")
        meta = self._store.upload(
            self._name,
            bytes(self._buffer),
            metadata=self._metadata,
            content_type=self.content_type(),
            updated=self._updated,
        )
        self._set_remote(meta)

    def content_type(self) -> str:
        """Content type sent on upload, derived from metadata or the name."""
        if self._metadata.get(CONTENT_TYPE):
            return self._metadata[CONTENT_TYPE]
        guessed, _ = mimetypes.guess_type(self._name)
        return guessed or DEFAULT_CONTENT_TYPE

    # --- Internals ---

    def _set_remote(self, meta: BlobMeta | None) -> None:
        self._remote = meta
        if meta is not None:
            self._metadata = dict(meta.metadata)
            self._updated = meta.updated

    def refresh(self, meta: BlobMeta) -> None:
        """Adopt freshly resolved remote metadata; ignored while open."""
        if not self._opened:
            self._set_remote(meta)

    def _require_open(self, op: str) -> None:
        if not self._opened:
            raise InvalidStateError(f"cannot {op} {self._name!r}: object is not open")

    def _require_writable(self, op: str) -> None:
        self._require_open(op)
        if self._readonly:
            raise InvalidStateError(f"cannot {op} {self._name!r}: object is open read-only")
