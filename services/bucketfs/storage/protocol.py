"""
Remote client protocol and shared types for bucketfs.

Defines the RemoteClient Protocol every backend must satisfy, the blob
metadata record, the lookup result, and the exception taxonomy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import BinaryIO, Protocol, runtime_checkable

CONTENT_TYPE = "Content-Type"
CONTENT_LENGTH = "Content-Length"
CONTENT_HASH = "Content-MD5"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# --- Data Types ---


@dataclass(frozen=True)
class BlobMeta:
    """Metadata about a stored blob."""

    name: str
    updated: datetime
    size: int
    metadata: dict[str, str] = field(default_factory=dict)
    content_type: str = DEFAULT_CONTENT_TYPE


def merge_metadata(
    metadata: Mapping[str, str] | None,
    *,
    size: int,
    content_type: str | None = None,
    content_hash: str | None = None,
) -> dict[str, str]:
    """Return a copy of ``metadata`` with the well-known keys filled in.

    Keys already present are kept as-is. ``Content-MD5`` is always present,
    empty when no hash is known.
    """
    merged = dict(metadata or {})
    if content_type and CONTENT_TYPE not in merged:
        merged[CONTENT_TYPE] = content_type
    merged.setdefault(CONTENT_LENGTH, str(size))
    merged.setdefault(CONTENT_HASH, content_hash or "")
    return merged


def hydrate(meta: BlobMeta) -> BlobMeta:
    """Return ``meta`` with its metadata mapping completed."""
    return replace(
        meta,
        metadata=merge_metadata(meta.metadata, size=meta.size, content_type=meta.content_type),
    )


@dataclass(frozen=True)
class ListPage:
    """One page of a remote listing."""

    records: list[BlobMeta]
    next_page_token: str | None = None


class LookupStatus(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Lookup:
    """Outcome of resolving a single blob name against the remote store."""

    name: str
    status: LookupStatus
    meta: BlobMeta | None = None
    error: Exception | None = None

    @classmethod
    def found(cls, meta: BlobMeta) -> Lookup:
        return cls(name=meta.name, status=LookupStatus.FOUND, meta=meta)

    @classmethod
    def not_found(cls, name: str) -> Lookup:
        return cls(name=name, status=LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, name: str, error: Exception) -> Lookup:
        return cls(name=name, status=LookupStatus.FAILED, error=error)

    @property
    def exists(self) -> bool:
        return self.status is LookupStatus.FOUND

    def raise_for_error(self) -> None:
        """Re-raise the underlying error of a failed lookup."""
        if self.status is LookupStatus.FAILED and self.error is not None:
            raise self.error


# --- Exceptions ---


class ObjectStoreError(Exception):
    """Base exception for bucketfs operations."""


class ObjectNotFoundError(ObjectStoreError):
    """Raised when a requested blob does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Object not found: {name}")


class ObjectExistsError(ObjectStoreError):
    """Raised when creating a blob whose name is already taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Object already exists: {name}")


class AlreadyOpenError(ObjectStoreError):
    """Raised when opening a handle that is already open."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Object already open: {name}")


class UnsupportedOperationError(ObjectStoreError):
    """Raised for operations the memory-buffered object model does not offer."""


class InvalidStateError(ObjectStoreError):
    """Raised when an operation is not allowed in the handle's current state."""


class ObjectStorePermissionError(ObjectStoreError):
    """Raised when the caller lacks permission for the operation."""


class TransientStoreError(ObjectStoreError):
    """A remote failure that is worth retrying (throttling, 5xx, timeouts)."""


class RetryExhaustedError(ObjectStoreError):
    """Raised once every attempt of a remote call has failed transiently."""

    def __init__(self, operation: str, errors: list[BaseException]) -> None:
        self.operation = operation
        self.errors = list(errors)
        detail = "; ".join(
            f"attempt {i}: {type(e).__name__}: {e}" for i, e in enumerate(self.errors, 1)
        )
        super().__init__(f"{operation} failed after {len(self.errors)} attempts ({detail})")


# --- Protocol ---


@runtime_checkable
class RemoteClient(Protocol):
    """Protocol defining the remote object store client.

    Implementations satisfy this interface structurally; no inheritance
    required. All calls block for their network round trip.
    """

    def list_page(
        self,
        prefix: str,
        page_size: int,
        page_token: str | None = None,
    ) -> ListPage:
        """List one page of blobs whose name starts with ``prefix``.

        Records are ordered by name. ``next_page_token`` is None on the
        last page.
        """
        ...

    def read(self, name: str) -> BinaryIO:
        """Open a blob's content for reading.

        Raises:
            ObjectNotFoundError: If the blob does not exist.
        """
        ...

    def write(self, name: str, metadata: dict[str, str], content_type: str) -> BinaryIO:
        """Open a sink for a new blob body; closing the sink commits it."""
        ...

    def delete(self, name: str) -> None:
        """Delete a blob."""
        ...
