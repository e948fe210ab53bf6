"""
Filesystem remote client for bucketfs.

Stores each blob as a file under ``root_dir/<bucket>/`` with a ``.meta``
sidecar holding the content type on the first line and ``key=value``
metadata lines after it. Zero external dependencies for dev/CI.
"""

from __future__ import annotations

import hashlib
import io
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from bucketfs.logging_config import get_logger
from bucketfs.storage.protocol import (
    CONTENT_HASH,
    DEFAULT_CONTENT_TYPE,
    BlobMeta,
    ListPage,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectStorePermissionError,
)
from bucketfs.storage.sink import CommitSink

logger = get_logger(__name__)

META_SUFFIX = ".meta"
# In-flight writes; never listed and never valid object names.
TMP_SUFFIX = ".bucketfs-tmp"
RESERVED_SUFFIXES = (META_SUFFIX, TMP_SUFFIX)


def translate_error(e: OSError, name: str) -> ObjectStoreError:
    """Map a local I/O failure onto the bucketfs taxonomy."""
    if isinstance(e, FileNotFoundError):
        return ObjectNotFoundError(name)
    if isinstance(e, PermissionError):
        return ObjectStorePermissionError(str(e))
    return ObjectStoreError(str(e))


class FilesystemClient:
    """Remote client backed by a local directory."""

    def __init__(self, root_dir: str, bucket: str = "") -> None:
        self._root = Path(root_dir) / bucket if bucket else Path(root_dir)

        # Ensure root directory exists
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("Filesystem client initialized", root_dir=str(self._root))

    @property
    def root_dir(self) -> Path:
        """The directory holding this bucket's blobs."""
        return self._root

    def _full_path(self, name: str) -> Path:
        """Resolve a blob name to a path, preventing path traversal."""
        clean = Path(name)
        if not name or clean.is_absolute() or ".." in clean.parts:
            raise ObjectStoreError(f"Invalid object name: {name}")
        if name.endswith(RESERVED_SUFFIXES):
            raise ObjectStoreError(f"Object names may not end with {RESERVED_SUFFIXES}: {name}")
        return self._root / clean

    def _name_from_path(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def _meta_path(self, path: Path) -> Path:
        return Path(str(path) + META_SUFFIX)

    def _head(self, path: Path) -> BlobMeta:
        stat = path.stat()

        content_type = DEFAULT_CONTENT_TYPE
        metadata: dict[str, str] = {}
        meta_path = self._meta_path(path)
        if meta_path.exists():
            lines = meta_path.read_text().strip().split("\n")
            if lines and lines[0]:
                content_type = lines[0]
            for line in lines[1:]:
                if "=" in line:
                    k, v = line.split("=", 1)
                    metadata[k] = v

        if CONTENT_HASH not in metadata:
            metadata[CONTENT_HASH] = hashlib.md5(path.read_bytes()).hexdigest()  # noqa: S324

        return BlobMeta(
            name=self._name_from_path(path),
            updated=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            size=stat.st_size,
            metadata=metadata,
            content_type=content_type,
        )

    def list_page(
        self,
        prefix: str,
        page_size: int,
        page_token: str | None = None,
    ) -> ListPage:
        try:
            names = sorted(
                name
                for path in self._root.rglob("*")
                if path.is_file() and not path.name.endswith(RESERVED_SUFFIXES)
                if (name := self._name_from_path(path)).startswith(prefix)
            )
            start = int(page_token) if page_token else 0
            end = start + page_size
            records = [self._head(self._root / n) for n in names[start:end]]
        except OSError as e:
            raise translate_error(e, prefix) from e
        return ListPage(records=records, next_page_token=str(end) if end < len(names) else None)

    def read(self, name: str) -> BinaryIO:
        path = self._full_path(name)
        try:
            return io.BytesIO(path.read_bytes())
        except IsADirectoryError as e:
            raise ObjectNotFoundError(name) from e
        except OSError as e:
            raise translate_error(e, name) from e

    def write(self, name: str, metadata: dict[str, str], content_type: str) -> BinaryIO:
        path = self._full_path(name)
        sidecar = content_type
        if metadata:
            sidecar += "\n" + "\n".join(f"{k}={v}" for k, v in metadata.items())

        def _commit(data: bytes) -> None:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    dir=path.parent, prefix=".", suffix=TMP_SUFFIX, delete=False
                ) as tmp:
                    tmp.write(data)
                try:
                    os.replace(tmp.name, path)
                except OSError:
                    Path(tmp.name).unlink(missing_ok=True)
                    raise
                self._meta_path(path).write_text(sidecar)
            except OSError as e:
                raise translate_error(e, name) from e

        return CommitSink(_commit)

    def delete(self, name: str) -> None:
        path = self._full_path(name)
        if not path.is_file():
            raise ObjectNotFoundError(name)
        try:
            path.unlink()
            self._meta_path(path).unlink(missing_ok=True)
        except OSError as e:
            raise translate_error(e, name) from e
