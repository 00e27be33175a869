"""Admin command surface: the move buttons and the "initialize order" action.

An OrderingSession owns one SyncedCollectionView per collection type and
tracks which types have a move in flight, so the buttons can be disabled
while a swap is still being written.  That guard only covers this
session; other admins are independent and can still race.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from showcase.config import ShowcaseConfig
from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import DocumentStore
from showcase.ordering import backfill, reorder
from showcase.ordering.backfill import BackfillResult, KeySpaceReport
from showcase.ordering.reorder import Direction, ReorderResult
from showcase.ordering.view import SyncedCollectionView
from showcase.shared.errors import (
    MoveInProgressError,
    PartialFailure,
    RecordNotFoundError,
    SyncError,
)

logger = logging.getLogger(__name__)


class OrderingSession:
    """Per-admin handle on the ordering subsystem."""

    def __init__(self, store: DocumentStore, config: ShowcaseConfig | None = None) -> None:
        self._store = store
        self._config = config or ShowcaseConfig()
        self._views: dict[CollectionType, SyncedCollectionView] = {}
        self._in_flight: set[CollectionType] = set()

    async def open(self, collection_types: Iterable[CollectionType] | None = None) -> None:
        """Start a view for each collection type (all of them by default).

        Raises SyncError from the first view that fails to start; views
        already started stay open.
        """
        for collection_type in collection_types or list(CollectionType):
            view = self._views.get(collection_type)
            if view is None:
                view = SyncedCollectionView(self._store, collection_type)
                self._views[collection_type] = view
            await view.start()

    def close(self) -> None:
        for view in self._views.values():
            view.stop()
        self._views.clear()

    async def __aenter__(self) -> OrderingSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def view(self, collection_type: CollectionType) -> SyncedCollectionView:
        """Return the open view for ``collection_type``.

        Raises KeyError if the session has not opened that type.
        """
        return self._views[collection_type]

    def listing(self, collection_type: CollectionType) -> list[ContentRecord]:
        return self.view(collection_type).ordered_snapshot()

    def in_flight(self, collection_type: CollectionType) -> bool:
        return collection_type in self._in_flight

    def can_move(
        self, collection_type: CollectionType, record_id: str, direction: Direction
    ) -> bool:
        """Whether the move button for this record and direction is enabled."""
        if self.in_flight(collection_type):
            return False
        try:
            j = reorder.neighbour_index(
                self.listing(collection_type), record_id, Direction(direction)
            )
        except RecordNotFoundError:
            return False
        return j is not None

    async def move(
        self, collection_type: CollectionType, record_id: str, direction: Direction
    ) -> ReorderResult:
        """Run a move for a record in the open view.

        Raises:
            MoveInProgressError: Another move for this type has not finished.
            RecordNotFoundError: The record is not in the current listing.
            StoreWriteFailed: A write was rejected.
        """
        if self.in_flight(collection_type):
            raise MoveInProgressError(
                f"A move in {collection_type.collection_name} is already in progress"
            )
        view = self.view(collection_type)
        record = view.find(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)

        self._in_flight.add(collection_type)
        try:
            return await reorder.move(
                self._store,
                view,
                record,
                Direction(direction),
                refresh=self._config.ordering.refresh_after_write,
            )
        finally:
            self._in_flight.discard(collection_type)

    def needs_initialization(self, collection_type: CollectionType) -> bool:
        """True when the collection has records but none carries an order key."""
        records = self.listing(collection_type)
        return bool(records) and not any(r.is_keyed for r in records)

    def key_space(self, collection_type: CollectionType) -> KeySpaceReport:
        return backfill.key_space_report(self.listing(collection_type))

    async def initialize_order(self, collection_type: CollectionType) -> BackfillResult:
        """Backfill keys from creation order.  Overwrites any curated order."""
        if not self.needs_initialization(collection_type):
            logger.warning(
                "Initializing %s although it already has order keys; curated order is lost",
                collection_type.collection_name,
            )
        try:
            result = await backfill.initialize(self._store, collection_type)
        except PartialFailure:
            await self._refresh_after_failure(collection_type)
            raise
        await self.view(collection_type).refresh()
        return result

    async def repair_order(self, collection_type: CollectionType) -> BackfillResult:
        """Re-key densely in the current display order."""
        try:
            result = await backfill.normalize(self._store, collection_type)
        except PartialFailure:
            await self._refresh_after_failure(collection_type)
            raise
        await self.view(collection_type).refresh()
        return result

    async def _refresh_after_failure(self, collection_type: CollectionType) -> None:
        try:
            await self.view(collection_type).refresh()
        except SyncError:
            logger.warning(
                "Could not refresh %s after a partial write",
                collection_type.collection_name,
                exc_info=True,
            )
