"""Shared fixtures for ordering tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import JsonDocumentStore
from showcase.shared.errors import StoreError

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class FlakyStore(JsonDocumentStore):
    """In-memory store that rejects writes to chosen record ids."""

    def __init__(self) -> None:
        super().__init__()
        self.reject_ids: set[str] = set()
        self.fail_queries = False
        self.writes: list[tuple[str, dict[str, Any]]] = []

    async def update_fields(self, collection_type, record_id, fields):
        if record_id in self.reject_ids:
            raise StoreError(f"permission denied for {record_id}")
        self.writes.append((record_id, dict(fields)))
        return await super().update_fields(collection_type, record_id, fields)

    async def query_all(self, collection_type):
        if self.fail_queries:
            raise StoreError("network unreachable")
        return await super().query_all(collection_type)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def make_record() -> Callable[..., ContentRecord]:
    """Build records whose ``created_at`` is ``minutes`` after a fixed base time."""

    def _make(
        record_id: str,
        display_order: int | None = None,
        minutes: int = 0,
        collection_type: CollectionType = CollectionType.PROJECT,
    ) -> ContentRecord:
        return ContentRecord(
            id=record_id,
            collection_type=collection_type,
            display_order=display_order,
            created_at=BASE_TIME + timedelta(minutes=minutes),
            payload={"title": record_id.upper()},
        )

    return _make
