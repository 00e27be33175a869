"""Adjacent-swap reordering behind the "move up" / "move down" buttons.

A move exchanges the order keys of a record and its neighbour in the
view's current ordered snapshot, using two independent store writes.
Between the two writes other viewers can see both records holding the
same key (or one key missing); the comparator's id tie-break still gives
them a total order, and ``normalize`` in ``showcase.ordering.backfill``
repairs whatever a failed or racing move leaves behind.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel

from showcase.content.models import ContentRecord
from showcase.content.store import DocumentStore
from showcase.ordering.view import SyncedCollectionView
from showcase.shared.errors import (
    CollectionMismatchError,
    RecordNotFoundError,
    StoreError,
    StoreWriteFailed,
    SyncError,
)

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"


class ReorderOutcome(StrEnum):
    MOVED = "moved"
    NOOP = "noop"


class ReorderResult(BaseModel):
    """Outcome of a single move.

    For ``NOOP`` (record already at the boundary) only ``record_id`` is set.
    """

    outcome: ReorderOutcome
    record_id: str
    target_id: str | None = None
    record_order: int | None = None
    target_order: int | None = None

    @property
    def moved(self) -> bool:
        return self.outcome == ReorderOutcome.MOVED


def effective_keys(snapshot: list[ContentRecord]) -> dict[str, int]:
    """Map each record id in an ordered snapshot to the key a swap would use.

    Keyed records use their own key.  Un-keyed records get a sentinel
    above every assigned key, offset by their rank in the un-keyed tail so
    that two un-keyed neighbours still swap into distinct, ordered keys.
    """
    assigned = [r.display_order for r in snapshot if r.display_order is not None]
    base = max(assigned) + 1 if assigned else 0
    keys: dict[str, int] = {}
    rank = 0
    for record in snapshot:
        if record.display_order is not None:
            keys[record.id] = record.display_order
        else:
            keys[record.id] = base + rank
            rank += 1
    return keys


def neighbour_index(snapshot: list[ContentRecord], record_id: str, direction: Direction) -> int | None:
    """Index of the record a move would swap with, or None at the boundary.

    Raises RecordNotFoundError if ``record_id`` is not in the snapshot.
    """
    for i, record in enumerate(snapshot):
        if record.id == record_id:
            break
    else:
        raise RecordNotFoundError(record_id)
    j = i - 1 if direction == Direction.UP else i + 1
    if j < 0 or j >= len(snapshot):
        return None
    return j


async def move(
    store: DocumentStore,
    view: SyncedCollectionView,
    record: ContentRecord,
    direction: Direction,
    *,
    refresh: bool = True,
) -> ReorderResult:
    """Swap ``record`` with its neighbour in ``direction``.

    Args:
        store: Store receiving the two field updates.
        view: Started view for ``record.collection_type``.
        record: Record to move.  Only its id and type are used; keys are
            read from the view's snapshot.
        direction: ``Direction.UP`` or ``Direction.DOWN``.
        refresh: Re-fetch the view after writing instead of waiting for
            the subscription push.  A failed re-fetch is logged and the
            committed swap is still reported as MOVED.

    Returns:
        ReorderResult with ``outcome=NOOP`` at the boundary, else ``MOVED``.

    Raises:
        RecordNotFoundError: The record is not in the current snapshot.
        CollectionMismatchError: The record and view hold different types.
        StoreWriteFailed: A write was rejected.  Writes that succeeded are
            kept; the second write is not attempted if the first fails.
    """
    direction = Direction(direction)
    if record.collection_type != view.collection_type:
        raise CollectionMismatchError(
            f"Record {record.id} is a {record.collection_type.value}, "
            f"view holds {view.collection_type.value}"
        )

    snapshot = view.ordered_snapshot()
    j = neighbour_index(snapshot, record.id, direction)
    if j is None:
        logger.debug("Move %s %s is a no-op at the boundary", record.id, direction.value)
        return ReorderResult(outcome=ReorderOutcome.NOOP, record_id=record.id)

    target = snapshot[j]
    keys = effective_keys(snapshot)
    a, b = keys[record.id], keys[target.id]
    if a == b:
        logger.warning(
            "Records %s and %s share order key %d; run a repair to separate them",
            record.id,
            target.id,
            a,
        )

    collection_type = record.collection_type
    try:
        await store.update_fields(collection_type, record.id, {"display_order": b})
    except StoreError as exc:
        logger.error("Move %s: first write failed: %s", record.id, exc)
        await _refresh_quietly(view, "after a failed move")
        raise StoreWriteFailed(
            f"Could not set display_order={b} on {record.id}: {exc}",
            failed=[record.id],
            skipped=[target.id],
        ) from exc

    try:
        await store.update_fields(collection_type, target.id, {"display_order": a})
    except StoreError as exc:
        # No compensating write: the first update stays in place.
        logger.error(
            "Move %s: second write to %s failed, first write kept: %s",
            record.id,
            target.id,
            exc,
        )
        await _refresh_quietly(view, "after a failed move")
        raise StoreWriteFailed(
            f"Could not set display_order={a} on {target.id}: {exc}",
            succeeded=[record.id],
            failed=[target.id],
        ) from exc

    logger.info(
        "Moved %s %s %s: %s -> %d, %s -> %d",
        collection_type.value,
        record.id,
        direction.value,
        record.id,
        b,
        target.id,
        a,
    )
    if refresh:
        await _refresh_quietly(view, "after a move")
    return ReorderResult(
        outcome=ReorderOutcome.MOVED,
        record_id=record.id,
        target_id=target.id,
        record_order=b,
        target_order=a,
    )


async def _refresh_quietly(view: SyncedCollectionView, when: str) -> None:
    try:
        await view.refresh()
    except SyncError:
        logger.warning(
            "Could not refresh %s %s; snapshot may be stale",
            view.collection_type.value,
            when,
            exc_info=True,
        )
