"""Error taxonomy for the ordering subsystem.

Nothing here is retried automatically: every error is raised to the
caller (the admin surface or the CLI), which decides whether to retry a
move or run a repair.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from showcase.ordering.backfill import BackfillResult


class ShowcaseError(Exception):
    """Base error for showcase."""


class StoreError(ShowcaseError):
    """A document store call failed (missing record, bad field, I/O)."""


class SyncError(ShowcaseError):
    """A query or subscription could not be established or refreshed."""


class RecordNotFoundError(ShowcaseError, KeyError):
    """The record is absent from the latest snapshot (usually a concurrent delete)."""

    def __init__(self, record_id: str) -> None:
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"record not found: {self.record_id}"


class CollectionMismatchError(ShowcaseError, ValueError):
    """Records of different collection types were compared or mixed."""


class StoreWriteFailed(ShowcaseError):
    """One of a reorder's field updates was rejected.

    Writes listed in ``succeeded`` stay in place; nothing is rolled back.
    ``skipped`` holds records whose write was never attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        succeeded: list[str] | None = None,
        failed: list[str] | None = None,
        skipped: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.succeeded = list(succeeded or [])
        self.failed = list(failed or [])
        self.skipped = list(skipped or [])


class PartialFailure(ShowcaseError):
    """A backfill or repair wrote some, but not all, records."""

    def __init__(
        self,
        message: str,
        *,
        succeeded: list[str],
        failed: list[str],
        result: BackfillResult | None = None,
    ) -> None:
        super().__init__(message)
        self.succeeded = list(succeeded)
        self.failed = list(failed)
        self.result = result


class MoveInProgressError(ShowcaseError):
    """A move for the same collection type is still in flight in this session."""
