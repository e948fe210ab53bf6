"""
Merge a paged remote listing into one ordered result.
"""

from __future__ import annotations

from bucketfs.logging_config import get_logger
from bucketfs.storage.protocol import BlobMeta, ObjectStoreError, RemoteClient, hydrate
from bucketfs.storage.query import Query
from bucketfs.storage.retry import RetryPolicy

logger = get_logger(__name__)


def merge_pages(
    client: RemoteClient,
    query: Query,
    *,
    retry: RetryPolicy,
    page_size: int,
) -> list[BlobMeta]:
    """Follow continuation tokens until the listing is complete.

    Each page gets its own retry budget. Filters are not applied here.

    Raises:
        RetryExhaustedError: If a page could not be fetched; nothing
            accumulated so far is returned.
        ObjectStoreError: If the remote hands back a token it already gave.
    """
    size = query.page_size or page_size
    if query.max_results is not None:
        size = min(size, query.max_results)

    results: list[BlobMeta] = []
    token: str | None = None
    seen: set[str] = set()
    pages = 0
    while True:
        page = retry.call("list", client.list_page, query.prefix, size, token)
        pages += 1
        results.extend(hydrate(r) for r in page.records)
        token = page.next_page_token
        if query.max_results is not None and len(results) >= query.max_results:
            del results[query.max_results :]
            break
        if not token:
            break
        if token in seen:
            raise ObjectStoreError(f"listing of {query.prefix!r} repeated page token {token!r}")
        seen.add(token)

    logger.debug("Listing merged", prefix=query.prefix, pages=pages, records=len(results))
    return results
