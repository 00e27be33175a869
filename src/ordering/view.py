"""Synced collection view: a live, ordered cache of one collection type.

The view owns no state beyond its cache.  It is created per collection
type, started explicitly, and handed to the operations that need an
ordered snapshot; it never writes to the store.
"""

from __future__ import annotations

import logging
from types import TracebackType

from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import DocumentStore, Unsubscribe
from showcase.ordering.comparator import ordered
from showcase.shared.errors import StoreError, SyncError

logger = logging.getLogger(__name__)


class SyncedCollectionView:
    """Cache of every record of ``collection_type``, fed by store pushes.

    Each push or refresh replaces the whole set and drops the cached
    snapshot; ``ordered_snapshot`` re-sorts lazily on the next read.
    """

    def __init__(self, store: DocumentStore, collection_type: CollectionType) -> None:
        self._store = store
        self._collection_type = collection_type
        self._records: list[ContentRecord] = []
        self._snapshot: list[ContentRecord] | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._version = 0
        self.last_error: SyncError | None = None

    @property
    def collection_type(self) -> CollectionType:
        return self._collection_type

    @property
    def is_live(self) -> bool:
        """True while a subscription is held and has not reported an error."""
        return self._unsubscribe is not None and self.last_error is None

    @property
    def version(self) -> int:
        """Incremented each time the cached set is replaced."""
        return self._version

    # -- Lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Load the collection and subscribe to store pushes.

        Raises SyncError if either step fails; the view then stays empty
        (or keeps what it had) and is not live.  Calling start on a live
        view is a no-op; on a view whose subscription failed it resubscribes.
        """
        if self.is_live:
            return
        self.stop()
        self.last_error = None
        try:
            records = await self._store.query_all(self._collection_type)
            self._unsubscribe = self._store.subscribe(
                self._collection_type, self._on_update, self._on_error
            )
        except StoreError as exc:
            err = SyncError(
                f"Could not subscribe to {self._collection_type.collection_name}: {exc}"
            )
            self.last_error = err
            logger.error("%s", err)
            raise err from exc
        self._replace(records)
        logger.debug(
            "Started view %s with %d records",
            self._collection_type.value,
            len(records),
        )

    async def refresh(self) -> list[ContentRecord]:
        """Re-fetch the collection without waiting for a push.

        Returns the new ordered snapshot.  Raises SyncError on failure and
        leaves the cache untouched.
        """
        try:
            records = await self._store.query_all(self._collection_type)
        except StoreError as exc:
            raise SyncError(
                f"Could not refresh {self._collection_type.collection_name}: {exc}"
            ) from exc
        self._replace(records)
        return self.ordered_snapshot()

    def stop(self) -> None:
        """Drop the subscription.  Safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self) -> SyncedCollectionView:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    # -- Reads ---------------------------------------------------------------

    def ordered_snapshot(self) -> list[ContentRecord]:
        """Return the records in display order."""
        if self._snapshot is None:
            self._snapshot = ordered(self._records)
        return list(self._snapshot)

    def find(self, record_id: str) -> ContentRecord | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)

    # -- Store callbacks -----------------------------------------------------

    def _replace(self, records: list[ContentRecord]) -> None:
        self._records = list(records)
        self._snapshot = None
        self._version += 1

    def _on_update(self, records: list[ContentRecord]) -> None:
        stray = [r.id for r in records if r.collection_type != self._collection_type]
        if stray:
            logger.error(
                "Ignoring push for view %s containing foreign records %s",
                self._collection_type.value,
                stray,
            )
            return
        self._replace(records)

    def _on_error(self, exc: Exception) -> None:
        self.last_error = SyncError(
            f"Subscription to {self._collection_type.collection_name} failed: {exc}"
        )
        logger.error("%s", self.last_error)
