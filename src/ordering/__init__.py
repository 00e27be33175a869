"""Curated display ordering for content collections.

The comparator defines display order, views keep an ordered live copy
of one collection type, ``move`` swaps neighbours, and the backfill
module assigns or repairs order keys across a whole collection.
"""

from showcase.ordering.admin import OrderingSession
from showcase.ordering.backfill import (
    BackfillResult,
    KeySpaceReport,
    initialize,
    key_space_report,
    normalize,
)
from showcase.ordering.comparator import compare, ordered, sort_key
from showcase.ordering.reorder import Direction, ReorderOutcome, ReorderResult, move
from showcase.ordering.view import SyncedCollectionView

__all__ = [
    "BackfillResult",
    "Direction",
    "KeySpaceReport",
    "OrderingSession",
    "ReorderOutcome",
    "ReorderResult",
    "SyncedCollectionView",
    "compare",
    "initialize",
    "key_space_report",
    "move",
    "normalize",
    "ordered",
    "sort_key",
]
