"""
Object storage layer for bucketfs.

Provides build_client() to construct the configured remote client and
open_store() to wrap it in a Store. There is no module-level store;
callers own the Store they open.
"""

from __future__ import annotations

from bucketfs.config import StorageBackend, StorageConfig, settings
from bucketfs.logging_config import get_logger
from bucketfs.storage.handle import AccessLevel, ObjectHandle, ObjectStat
from bucketfs.storage.protocol import (
    AlreadyOpenError,
    BlobMeta,
    InvalidStateError,
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectStoreError,
    RemoteClient,
    RetryExhaustedError,
    TransientStoreError,
    UnsupportedOperationError,
)
from bucketfs.storage.query import Query
from bucketfs.storage.registry import Store
from bucketfs.storage.retry import Backoff, RetryPolicy

logger = get_logger(__name__)

__all__ = [
    "AccessLevel",
    "AlreadyOpenError",
    "Backoff",
    "BlobMeta",
    "InvalidStateError",
    "ObjectExistsError",
    "ObjectHandle",
    "ObjectNotFoundError",
    "ObjectStat",
    "ObjectStoreError",
    "Query",
    "RemoteClient",
    "RetryExhaustedError",
    "RetryPolicy",
    "Store",
    "TransientStoreError",
    "UnsupportedOperationError",
    "build_client",
    "open_store",
]


def build_client(cfg: StorageConfig) -> RemoteClient:
    """Construct the remote client selected by ``cfg.backend``."""
    match cfg.backend:
        case StorageBackend.GCS:
            from bucketfs.storage.gcs import GCSClient

            if not cfg.bucket:
                raise ObjectStoreError("storage.bucket is required for the gcs backend")
            client: RemoteClient = GCSClient(
                bucket=cfg.bucket,
                prefix=cfg.gcs.prefix,
                project_id=cfg.gcs.project_id,
            )

        case StorageBackend.FILESYSTEM:
            from bucketfs.storage.filesystem import FilesystemClient

            client = FilesystemClient(root_dir=cfg.filesystem.root_dir, bucket=cfg.bucket)

        case StorageBackend.MEMORY:
            from bucketfs.storage.memory import MemoryClient

            client = MemoryClient()

    logger.info("Storage client initialized", backend=str(cfg.backend), bucket=cfg.bucket)
    return client


def open_store(cfg: StorageConfig | None = None) -> Store:
    """Open a Store over the configured client (defaults to global settings)."""
    cfg = cfg or settings.storage
    return Store(
        build_client(cfg),
        cfg.bucket,
        page_size=cfg.page_size,
        retry=RetryPolicy.from_config(cfg.retry),
    )
