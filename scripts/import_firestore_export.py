#!/usr/bin/env python3
"""Import a Firestore JSON export into the showcase store.

Reads an export of the ``projects``, ``hackathons`` and ``blogs``
collections and creates one ContentRecord per document, keeping the
document id, ``createdAt`` and any existing ``displayOrder``.  Form
fields are converted from camelCase to the snake_case payload keys.

Expected export shape::

    {"projects": [{"id": "abc", "createdAt": {"_seconds": 1700000000}, ...}], ...}

Usage:
    python scripts/import_firestore_export.py export.json --store ./content
"""
from __future__ import annotations

import argparse
import asyncio
import json
import re
from datetime import UTC, datetime
from pathlib import Path

from showcase.content.models import CollectionType, ContentRecord
from showcase.content.store import JsonDocumentStore

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

# Metadata kept on the record itself rather than in the payload.
_RESERVED = {"id", "createdAt", "displayOrder", "updatedAt"}


def snake_case(name: str) -> str:
    """Convert ``shortDescription`` to ``short_description``."""
    return _CAMEL_RE.sub("_", name).lower()


def parse_timestamp(value: object) -> datetime:
    """Parse a Firestore timestamp, ISO string, or epoch seconds.

    Documents written before the server timestamp resolved have no
    ``createdAt``; they sort as the oldest records.
    """
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds", 0))
        nanos = value.get("_nanoseconds", value.get("nanoseconds", 0))
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.fromtimestamp(0, tz=UTC)


def to_record(collection_type: CollectionType, doc: dict) -> ContentRecord:
    payload = {snake_case(k): v for k, v in doc.items() if k not in _RESERVED}
    display_order = doc.get("displayOrder")
    return ContentRecord(
        id=str(doc["id"]),
        collection_type=collection_type,
        display_order=int(display_order) if display_order is not None else None,
        created_at=parse_timestamp(doc.get("createdAt")),
        payload=payload,
    )


async def import_export(export_path: Path, store_dir: Path, overwrite: bool) -> None:
    export = json.loads(export_path.read_text(encoding="utf-8"))
    store = JsonDocumentStore(store_dir)
    added = 0
    skipped = 0

    for collection_type in CollectionType:
        for doc in export.get(collection_type.collection_name, []):
            if not overwrite and await store.get(collection_type, str(doc["id"])):
                skipped += 1
                continue
            await store.upsert(to_record(collection_type, doc))
            added += 1

    print(f"Imported {added} records ({skipped} already present)")
    for collection_type in CollectionType:
        records = await store.query_all(collection_type)
        keyed = sum(1 for r in records if r.display_order is not None)
        print(
            f"  {collection_type.collection_name}: {len(records)} records, "
            f"{keyed} with display order"
        )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import a Firestore export")
    parser.add_argument("export", help="Path to the JSON export")
    parser.add_argument("--store", required=True, help="Store directory")
    parser.add_argument(
        "--overwrite", action="store_true", help="Replace records that already exist"
    )
    args = parser.parse_args()
    asyncio.run(import_export(Path(args.export), Path(args.store), args.overwrite))
