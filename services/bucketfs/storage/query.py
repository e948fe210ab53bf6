"""
Listing queries and client-side filters.

The remote listing only filters by prefix; everything else is applied
here after the pages have been merged.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from bucketfs.storage.protocol import BlobMeta

Predicate = Callable[[BlobMeta], bool]


@dataclass(frozen=True)
class Query:
    """A listing request: remote prefix plus client-side predicates."""

    prefix: str = ""
    page_size: int | None = None
    max_results: int | None = None
    filters: tuple[Predicate, ...] = ()

    def where(self, *predicates: Predicate) -> Query:
        """Return a copy of this query with extra predicates."""
        return replace(self, filters=self.filters + predicates)

    def apply_filters(self, records: Iterable[BlobMeta]) -> list[BlobMeta]:
        """Keep records every predicate accepts, in their original order."""
        return [r for r in records if all(f(r) for f in self.filters)]


def exact_name(name: str) -> Predicate:
    def _match(meta: BlobMeta) -> bool:
        return meta.name == name

    return _match


def name_matches(pattern: str) -> Predicate:
    """Shell-style glob on the full blob name (``logs/*.txt``)."""

    def _match(meta: BlobMeta) -> bool:
        return fnmatch.fnmatchcase(meta.name, pattern)

    return _match


def name_regex(pattern: str) -> Predicate:
    compiled = re.compile(pattern)

    def _match(meta: BlobMeta) -> bool:
        return compiled.search(meta.name) is not None

    return _match


def updated_between(start: datetime | None = None, end: datetime | None = None) -> Predicate:
    """Blobs updated in ``[start, end)``; either bound may be omitted."""

    def _match(meta: BlobMeta) -> bool:
        if start is not None and meta.updated < start:
            return False
        if end is not None and meta.updated >= end:
            return False
        return True

    return _match


def size_between(min_size: int | None = None, max_size: int | None = None) -> Predicate:
    """Blobs whose size lies in ``[min_size, max_size]``."""

    def _match(meta: BlobMeta) -> bool:
        if min_size is not None and meta.size < min_size:
            return False
        if max_size is not None and meta.size > max_size:
            return False
        return True

    return _match
