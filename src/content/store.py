"""JSON-backed document store with live subscriptions.

Persists all ContentRecords in a single JSON file, loaded on init and
saved after every write operation, or keeps them purely in memory when
no path is given.  Every mutation schedules a push of the full record
set of the touched collection to its subscribers on the running event
loop, so a write's acknowledgement and its push are not ordered with
respect to each other.

There is no multi-document transaction: each ``update_fields`` call
stands alone and the last write to a field wins.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from showcase.content.models import CollectionType, ContentRecord
from showcase.shared.errors import StoreError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".showcase-store.json"

UPDATABLE_FIELDS = frozenset({"display_order", "payload"})

OnUpdate = Callable[[list[ContentRecord]], None]
OnError = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """What the ordering layer needs from a document store."""

    async def query_all(self, collection_type: CollectionType) -> list[ContentRecord]: ...

    def subscribe(
        self,
        collection_type: CollectionType,
        on_update: OnUpdate,
        on_error: OnError,
    ) -> Unsubscribe: ...

    async def update_fields(
        self,
        collection_type: CollectionType,
        record_id: str,
        fields: dict[str, Any],
    ) -> ContentRecord: ...


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    records: list[ContentRecord] = Field(default_factory=list)


class _Subscription:
    __slots__ = ("collection_type", "on_update", "on_error", "active")

    def __init__(
        self, collection_type: CollectionType, on_update: OnUpdate, on_error: OnError
    ) -> None:
        self.collection_type = collection_type
        self.on_update = on_update
        self.on_error = on_error
        self.active = True


class JsonDocumentStore:
    """Document store for content records.

    With ``path`` set, records are persisted to ``path / STORE_FILENAME``;
    with ``path=None`` the store lives in memory only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path / STORE_FILENAME if path is not None else None
        self._data = self._load()
        self._subscriptions: dict[CollectionType, list[_Subscription]] = defaultdict(list)
        self._last_created: datetime | None = max(
            (r.created_at for r in self._data.records), default=None
        )

    @property
    def path(self) -> Path | None:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _read(self) -> _StoreData:
        if self._path is None or not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValueError) as exc:
            raise StoreError(f"Unreadable store at {self._path}: {exc}") from exc

    def _load(self) -> _StoreData:
        try:
            return self._read()
        except StoreError:
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _commit(self, records: list[ContentRecord]) -> None:
        """Persist ``records``, then make them the current set.

        If the write fails the in-memory set is left as it was.
        """
        data = _StoreData(records=records)
        self._save(data)
        self._data = data

    def _save(self, data: _StoreData) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                data.model_dump_json(indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise StoreError(f"Failed to write store at {self._path}: {exc}") from exc

    def _find(self, collection_type: CollectionType, record_id: str) -> ContentRecord | None:
        for record in self._data.records:
            if record.collection_type == collection_type and record.id == record_id:
                return record
        return None

    def _require(self, collection_type: CollectionType, record_id: str) -> ContentRecord:
        record = self._find(collection_type, record_id)
        if record is None:
            raise StoreError(f"No {collection_type.value} with id {record_id}")
        return record

    def _records_of(self, collection_type: CollectionType) -> list[ContentRecord]:
        return [
            r.model_copy(deep=True)
            for r in self._data.records
            if r.collection_type == collection_type
        ]

    def _next_created_at(self) -> datetime:
        now = datetime.now(tz=UTC)
        if self._last_created is not None and now < self._last_created:
            now = self._last_created
        self._last_created = now
        return now

    def _schedule_push(self, collection_type: CollectionType) -> None:
        subs = [s for s in self._subscriptions.get(collection_type, []) if s.active]
        if not subs:
            return
        loop = asyncio.get_running_loop()
        for sub in subs:
            loop.call_soon(self._deliver, sub)

    def _deliver(self, sub: _Subscription) -> None:
        if not sub.active:
            return
        sub.on_update(self._records_of(sub.collection_type))

    def _fail_subscribers(self, exc: Exception) -> None:
        loop = asyncio.get_running_loop()
        for subs in self._subscriptions.values():
            for sub in subs:
                if sub.active:
                    loop.call_soon(sub.on_error, exc)

    # ── Write operations ─────────────────────────────────────────

    async def create(
        self, collection_type: CollectionType, payload: dict[str, Any] | None = None
    ) -> ContentRecord:
        """Insert a new record without an order key."""
        record = ContentRecord(
            id=uuid.uuid4().hex,
            collection_type=collection_type,
            created_at=self._next_created_at(),
            payload=dict(payload or {}),
        )
        self._commit([*self._data.records, record])
        logger.debug("Created %s %s", collection_type.value, record.id)
        self._schedule_push(collection_type)
        return record.model_copy(deep=True)

    async def upsert(self, record: ContentRecord) -> None:
        """Insert or replace a record by collection type and id, as given.

        Used for imports and migrations, where ids and creation times come
        from an existing source.
        """
        kept = [
            r
            for r in self._data.records
            if not (r.collection_type == record.collection_type and r.id == record.id)
        ]
        self._commit([*kept, record.model_copy(deep=True)])
        if self._last_created is None or record.created_at > self._last_created:
            self._last_created = record.created_at
        self._schedule_push(record.collection_type)

    async def update_fields(
        self,
        collection_type: CollectionType,
        record_id: str,
        fields: dict[str, Any],
    ) -> ContentRecord:
        """Apply a partial update to one record.

        Only ``display_order`` and ``payload`` may change; payload keys are
        merged into the existing payload.

        Raises StoreError if the record does not exist or the update is
        rejected.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise StoreError(f"Fields not updatable: {sorted(unknown)}")
        record = self._require(collection_type, record_id)
        data = record.model_dump()
        if "display_order" in fields:
            data["display_order"] = fields["display_order"]
        if "payload" in fields:
            data["payload"] = {**data["payload"], **dict(fields["payload"])}
        try:
            updated = ContentRecord.model_validate(data)
        except ValidationError as exc:
            raise StoreError(f"Rejected update for {record_id}: {exc}") from exc

        self._commit([updated if r is record else r for r in self._data.records])
        self._schedule_push(collection_type)
        return updated.model_copy(deep=True)

    async def delete(self, collection_type: CollectionType, record_id: str) -> None:
        """Remove a record.  Remaining order keys are left as they are.

        Raises StoreError if the record does not exist.
        """
        record = self._require(collection_type, record_id)
        self._commit([r for r in self._data.records if r is not record])
        logger.debug("Deleted %s %s", collection_type.value, record_id)
        self._schedule_push(collection_type)

    # ── Read operations ──────────────────────────────────────────

    async def get(self, collection_type: CollectionType, record_id: str) -> ContentRecord | None:
        """Return a record by id, or None if not found."""
        record = self._find(collection_type, record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def query_all(self, collection_type: CollectionType) -> list[ContentRecord]:
        """Return every record of one collection type, in storage order."""
        return self._records_of(collection_type)

    async def reload(self) -> None:
        """Re-read the store file to pick up writes from other sessions.

        Pushes the re-read set to every subscriber.  If the file cannot be
        read, subscribers receive the error and StoreError is raised.
        """
        try:
            self._data = self._read()
        except StoreError as exc:
            self._fail_subscribers(exc)
            raise
        for collection_type in list(self._subscriptions):
            self._schedule_push(collection_type)

    # ── Subscriptions ────────────────────────────────────────────

    def subscribe(
        self,
        collection_type: CollectionType,
        on_update: OnUpdate,
        on_error: OnError,
    ) -> Unsubscribe:
        """Register a live listener for one collection type.

        The current record set is pushed once right away, then again after
        every mutation of that type.  Must be called with a running loop.
        """
        sub = _Subscription(collection_type, on_update, on_error)
        self._subscriptions[collection_type].append(sub)
        asyncio.get_running_loop().call_soon(self._deliver, sub)

        def unsubscribe() -> None:
            sub.active = False
            subs = self._subscriptions.get(collection_type, [])
            if sub in subs:
                subs.remove(sub)

        return unsubscribe

    def subscriber_count(self, collection_type: CollectionType) -> int:
        return len(self._subscriptions.get(collection_type, []))
