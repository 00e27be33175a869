"""Display-order comparator for content records.

Keyed records (``display_order`` set) come first, ascending by key.
Un-keyed records follow, newest ``created_at`` first.  Remaining ties
are broken by ``id`` so every snapshot has exactly one ordering, which
is what lets two admins agree on which record is "adjacent".

Every ordered listing in the package goes through ``ordered``.
"""

from __future__ import annotations

from collections.abc import Iterable

from showcase.content.models import ContentRecord
from showcase.shared.errors import CollectionMismatchError

SortKey = tuple[int, float, str]


def sort_key(record: ContentRecord) -> SortKey:
    """Return the tuple that sorts ``record`` into display position."""
    if record.display_order is not None:
        return (0, float(record.display_order), record.id)
    # Un-keyed records run newest first, the reverse of the keyed partition.
    return (1, -record.created_at.timestamp(), record.id)


def compare(a: ContentRecord, b: ContentRecord) -> int:
    """Three-way comparison: -1 if ``a`` displays before ``b``, 1 if after, 0 if same.

    Raises CollectionMismatchError if the records belong to different
    collection types.
    """
    if a.collection_type != b.collection_type:
        raise CollectionMismatchError(
            f"Cannot compare {a.collection_type.value} with {b.collection_type.value}"
        )
    ka, kb = sort_key(a), sort_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def ordered(records: Iterable[ContentRecord]) -> list[ContentRecord]:
    """Sort records of one collection type into display order.

    Raises CollectionMismatchError on mixed collection types.
    """
    items = list(records)
    kinds = {r.collection_type for r in items}
    if len(kinds) > 1:
        raise CollectionMismatchError(
            f"Mixed collection types: {sorted(k.value for k in kinds)}"
        )
    return sorted(items, key=sort_key)
