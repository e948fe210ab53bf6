"""
Tests for the shared storage types and exceptions.
"""

from datetime import UTC, datetime

import pytest

from bucketfs.storage.memory import MemoryClient
from bucketfs.storage.protocol import (
    CONTENT_HASH,
    CONTENT_LENGTH,
    CONTENT_TYPE,
    AlreadyOpenError,
    BlobMeta,
    InvalidStateError,
    Lookup,
    LookupStatus,
    ObjectExistsError,
    ObjectNotFoundError,
    ObjectStoreError,
    RemoteClient,
    RetryExhaustedError,
    TransientStoreError,
    UnsupportedOperationError,
    hydrate,
    merge_metadata,
)


def _meta(**kwargs) -> BlobMeta:
    defaults = {"name": "a.txt", "updated": datetime.now(UTC), "size": 7}
    return BlobMeta(**{**defaults, **kwargs})


class TestBlobMeta:
    def test_defaults(self) -> None:
        meta = _meta()
        assert meta.metadata == {}
        assert meta.content_type == "application/octet-stream"

    def test_frozen(self) -> None:
        meta = _meta()
        with pytest.raises(AttributeError):
            meta.name = "other"  # type: ignore[misc]


class TestMetadataDefaults:
    def test_fills_missing_keys(self) -> None:
        merged = merge_metadata({}, size=12, content_type="text/plain")
        assert merged == {CONTENT_TYPE: "text/plain", CONTENT_LENGTH: "12", CONTENT_HASH: ""}

    def test_upstream_values_win(self) -> None:
        upstream = {CONTENT_LENGTH: "99", CONTENT_HASH: "abc", CONTENT_TYPE: "image/png"}
        merged = merge_metadata(upstream, size=1, content_type="text/plain", content_hash="zzz")
        assert merged == upstream

    def test_hash_attached_when_known(self) -> None:
        assert merge_metadata(None, size=0, content_hash="abc")[CONTENT_HASH] == "abc"

    def test_does_not_mutate_input(self) -> None:
        upstream = {"k": "v"}
        merge_metadata(upstream, size=3)
        assert upstream == {"k": "v"}

    def test_hydrate(self) -> None:
        meta = hydrate(_meta(metadata={"k": "v"}, content_type="text/plain"))
        assert meta.metadata == {
            "k": "v",
            CONTENT_TYPE: "text/plain",
            CONTENT_LENGTH: "7",
            CONTENT_HASH: "",
        }


class TestLookup:
    def test_found(self) -> None:
        meta = _meta()
        lookup = Lookup.found(meta)
        assert lookup.status is LookupStatus.FOUND
        assert lookup.exists
        assert lookup.meta is meta
        lookup.raise_for_error()

    def test_not_found(self) -> None:
        lookup = Lookup.not_found("b.txt")
        assert lookup.name == "b.txt"
        assert not lookup.exists
        lookup.raise_for_error()

    def test_failed_reraises(self) -> None:
        error = TransientStoreError("503")
        lookup = Lookup.failed("c.txt", error)
        assert not lookup.exists
        with pytest.raises(TransientStoreError) as exc_info:
            lookup.raise_for_error()
        assert exc_info.value is error


class TestExceptions:
    @pytest.mark.parametrize(
        "error",
        [
            ObjectNotFoundError("k"),
            ObjectExistsError("k"),
            AlreadyOpenError("k"),
            UnsupportedOperationError("seek"),
            InvalidStateError("closed"),
            TransientStoreError("503"),
            RetryExhaustedError("list", [TransientStoreError("503")]),
        ],
    )
    def test_hierarchy(self, error: Exception) -> None:
        assert isinstance(error, ObjectStoreError)

    def test_named_errors_carry_name(self) -> None:
        for cls in (ObjectNotFoundError, ObjectExistsError, AlreadyOpenError):
            err = cls("my/key")
            assert err.name == "my/key"
            assert "my/key" in str(err)

    def test_retry_exhausted_describes_attempts(self) -> None:
        err = RetryExhaustedError("write", [TransientStoreError("a"), TimeoutError("b")])
        assert err.operation == "write"
        assert len(err.errors) == 2
        assert "attempt 1: TransientStoreError: a" in str(err)
        assert "attempt 2: TimeoutError: b" in str(err)


class TestProtocolCompliance:
    def test_memory_client_satisfies_protocol(self) -> None:
        assert isinstance(MemoryClient(), RemoteClient)
