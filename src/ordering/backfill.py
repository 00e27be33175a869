"""Order-key backfill and repair.

``initialize`` moves a collection from implicit creation-time order to
explicit curated order by writing dense keys ``0..N-1`` oldest first.
It rewrites every record, so running it after manual reordering throws
the curated order away; guarding against that is up to the caller.

``normalize`` is the repair path: it re-keys a collection densely in its
*current* display order, which removes duplicate keys left by a failed
or racing move and gaps left by deletes without changing what viewers
see.

Both read straight from the store rather than from a view, and neither
rolls back: writes that land stay, and failures are collected into a
PartialFailure.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from pydantic import BaseModel, Field

from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import DocumentStore
from showcase.ordering.comparator import ordered
from showcase.shared.errors import PartialFailure, StoreError, SyncError

logger = logging.getLogger(__name__)


class BackfillResult(BaseModel):
    """Records written by a backfill or repair run."""

    collection_type: CollectionType
    count: int = 0
    total: int = 0
    written_ids: list[str] = Field(default_factory=list)


class KeySpaceReport(BaseModel):
    """Health of a collection's order keys."""

    total: int = 0
    duplicates: dict[int, list[str]] = Field(default_factory=dict)
    gaps: list[int] = Field(default_factory=list)
    unkeyed: list[str] = Field(default_factory=list)

    @property
    def is_dense(self) -> bool:
        """True when keys are exactly ``0..N-1`` with nothing missing."""
        return not self.duplicates and not self.gaps and not self.unkeyed


def creation_order(records: Iterable[ContentRecord]) -> list[ContentRecord]:
    """Sort oldest first, ties broken by id."""
    return sorted(records, key=lambda r: (r.created_at, r.id))


def key_space_report(records: Iterable[ContentRecord]) -> KeySpaceReport:
    """Describe duplicate keys, gaps below the highest key, and un-keyed records."""
    items = list(records)
    keyed = [r for r in items if r.display_order is not None]
    counts = Counter(r.display_order for r in keyed)
    duplicates = {
        key: sorted(r.id for r in keyed if r.display_order == key)
        for key, n in sorted(counts.items())
        if n > 1
    }
    highest = max(counts, default=-1)
    gaps = [k for k in range(highest + 1) if k not in counts]
    return KeySpaceReport(
        total=len(items),
        duplicates=duplicates,
        gaps=gaps,
        unkeyed=sorted(r.id for r in items if r.display_order is None),
    )


async def _fetch(store: DocumentStore, collection_type: CollectionType) -> list[ContentRecord]:
    try:
        return await store.query_all(collection_type)
    except StoreError as exc:
        raise SyncError(
            f"Could not load {collection_type.collection_name}: {exc}"
        ) from exc


async def _write_keys(
    store: DocumentStore,
    collection_type: CollectionType,
    sequence: list[ContentRecord],
    *,
    skip_unchanged: bool,
    label: str,
) -> BackfillResult:
    result = BackfillResult(collection_type=collection_type, total=len(sequence))
    failed: list[str] = []
    for index, record in enumerate(sequence):
        if skip_unchanged and record.display_order == index:
            continue
        try:
            await store.update_fields(collection_type, record.id, {"display_order": index})
        except StoreError as exc:
            logger.error(
                "%s %s: could not set display_order=%d on %s: %s",
                label,
                collection_type.value,
                index,
                record.id,
                exc,
            )
            failed.append(record.id)
            continue
        result.written_ids.append(record.id)
        result.count += 1

    if failed:
        raise PartialFailure(
            f"{label} of {collection_type.collection_name} wrote {result.count} "
            f"records, {len(failed)} failed",
            succeeded=list(result.written_ids),
            failed=failed,
            result=result,
        )
    logger.info(
        "%s %s: wrote %d of %d records",
        label,
        collection_type.value,
        result.count,
        result.total,
    )
    return result


async def initialize(store: DocumentStore, collection_type: CollectionType) -> BackfillResult:
    """Assign ``display_order = 0..N-1`` to every record, oldest first.

    Any existing keys, including manually curated ones, are overwritten.
    Running it twice in a row yields the same keys.

    Raises:
        SyncError: The collection could not be read.
        PartialFailure: Some writes were rejected; the rest stay applied.
    """
    records = await _fetch(store, collection_type)
    return await _write_keys(
        store,
        collection_type,
        creation_order(records),
        skip_unchanged=False,
        label="Backfill",
    )


async def normalize(store: DocumentStore, collection_type: CollectionType) -> BackfillResult:
    """Re-key a collection densely in its current display order.

    Keyed records keep their relative order; un-keyed records are keyed
    after them in the order they are displayed.  Records already holding
    the right key are not rewritten, so a second run writes nothing.

    Raises:
        SyncError: The collection could not be read.
        PartialFailure: Some writes were rejected; the rest stay applied.
    """
    records = await _fetch(store, collection_type)
    return await _write_keys(
        store,
        collection_type,
        ordered(records),
        skip_unchanged=True,
        label="Repair",
    )
