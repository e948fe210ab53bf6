"""
Shared fixtures for storage tests.
"""

from __future__ import annotations

from typing import BinaryIO

import pytest

from bucketfs.storage.filesystem import FilesystemClient
from bucketfs.storage.memory import MemoryClient
from bucketfs.storage.protocol import ListPage, TransientStoreError
from bucketfs.storage.registry import Store
from bucketfs.storage.retry import Backoff, RetryPolicy

RETRY_ATTEMPTS = 3


class FlakyClient:
    """Wraps a remote client and fails the next N calls of chosen operations."""

    def __init__(self, inner: MemoryClient) -> None:
        self.inner = inner
        self.failures: dict[str, int] = {}
        self.calls: dict[str, int] = {}

    def fail(self, operation: str, times: int) -> None:
        self.failures[operation] = times

    def _tick(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if self.failures.get(operation, 0) > 0:
            self.failures[operation] -= 1
            raise TransientStoreError(f"{operation} unavailable (503)")

    def list_page(self, prefix: str, page_size: int, page_token: str | None = None) -> ListPage:
        self._tick("list")
        return self.inner.list_page(prefix, page_size, page_token)

    def read(self, name: str) -> BinaryIO:
        self._tick("read")
        return self.inner.read(name)

    def write(self, name: str, metadata: dict[str, str], content_type: str) -> BinaryIO:
        self._tick("write")
        return self.inner.write(name, metadata, content_type)

    def delete(self, name: str) -> None:
        self._tick("delete")
        self.inner.delete(name)


@pytest.fixture
def sleeps() -> list[float]:
    """Records every backoff sleep instead of sleeping."""
    return []


@pytest.fixture
def retry(sleeps: list[float]) -> RetryPolicy:
    return RetryPolicy(
        attempts=RETRY_ATTEMPTS,
        backoff=Backoff(base_delay=0.01, multiplier=2.0, max_delay=1.0),
        sleep=sleeps.append,
    )


@pytest.fixture
def memory_client() -> MemoryClient:
    return MemoryClient()


@pytest.fixture
def flaky(memory_client: MemoryClient) -> FlakyClient:
    return FlakyClient(memory_client)


@pytest.fixture
def store(flaky: FlakyClient, retry: RetryPolicy) -> Store:
    return Store(flaky, "test-bucket", page_size=2, retry=retry)


@pytest.fixture
def fs_client(tmp_path) -> FilesystemClient:
    return FilesystemClient(root_dir=str(tmp_path), bucket="test-bucket")
