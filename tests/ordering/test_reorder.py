"""Tests for the adjacent-swap move operation."""

import asyncio

import pytest
from showcase.content.models import CollectionType
from showcase.content.store import JsonDocumentStore
from showcase.ordering.reorder import (
    Direction,
    ReorderOutcome,
    effective_keys,
    move,
    neighbour_index,
)
from showcase.ordering.view import SyncedCollectionView
from showcase.shared.errors import (
    CollectionMismatchError,
    RecordNotFoundError,
    StoreWriteFailed,
)


def _ids(records):
    return [r.id for r in records]


def _keys(records):
    return {r.id: r.display_order for r in records}


async def _seeded_view(store, records):
    for record in records:
        await store.upsert(record)
    view = SyncedCollectionView(store, CollectionType.PROJECT)
    await view.start()
    return view


class TestBoundary:
    def test_first_up_is_noop(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            result = await move(store, view, view.find("a"), Direction.UP)
            return result, await store.query_all(CollectionType.PROJECT)

        result, records = asyncio.run(scenario())
        assert result.outcome == ReorderOutcome.NOOP
        assert result.moved is False
        assert _keys(records) == {"a": 0, "b": 1}
        assert store.writes == []

    def test_last_down_is_noop(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b")]
            )
            return await move(store, view, view.find("b"), Direction.DOWN)

        result = asyncio.run(scenario())
        assert result.outcome == ReorderOutcome.NOOP
        assert store.writes == []

    def test_single_record_both_directions(self, store, make_record):
        async def scenario():
            view = await _seeded_view(store, [make_record("only")])
            up = await move(store, view, view.find("only"), Direction.UP)
            down = await move(store, view, view.find("only"), Direction.DOWN)
            return up, down

        up, down = asyncio.run(scenario())
        assert up.outcome == down.outcome == ReorderOutcome.NOOP


class TestSwap:
    def test_adjacent_keys_exchanged(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store,
                [
                    make_record("a", display_order=3),
                    make_record("b", display_order=4),
                    make_record("c", display_order=5),
                ],
            )
            result = await move(store, view, view.find("a"), Direction.DOWN)
            return result, view.ordered_snapshot()

        result, snapshot = asyncio.run(scenario())
        assert result.outcome == ReorderOutcome.MOVED
        assert result.target_id == "b"
        assert (result.record_order, result.target_order) == (4, 3)
        assert _keys(snapshot) == {"a": 4, "b": 3, "c": 5}
        assert _ids(snapshot) == ["b", "a", "c"]

    def test_move_up(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store,
                [
                    make_record("a", display_order=0),
                    make_record("b", display_order=1),
                    make_record("c", display_order=2),
                ],
            )
            await move(store, view, view.find("c"), Direction.UP)
            return view.ordered_snapshot()

        snapshot = asyncio.run(scenario())
        assert _ids(snapshot) == ["a", "c", "b"]

    def test_uses_snapshot_keys_not_caller_copy(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            stale = make_record("a", display_order=7)
            await move(store, view, stale, Direction.DOWN)
            return view.ordered_snapshot()

        snapshot = asyncio.run(scenario())
        assert _keys(snapshot) == {"a": 1, "b": 0}

    def test_writes_record_then_target(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            await move(store, view, view.find("b"), Direction.UP)

        asyncio.run(scenario())
        assert store.writes == [("b", {"display_order": 0}), ("a", {"display_order": 1})]

    def test_no_refresh_relies_on_push(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            await move(store, view, view.find("a"), Direction.DOWN, refresh=False)
            await asyncio.sleep(0)
            return view.ordered_snapshot()

        snapshot = asyncio.run(scenario())
        assert _ids(snapshot) == ["b", "a"]

    def test_gaps_are_swapped_as_is(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=2), make_record("b", display_order=9)]
            )
            await move(store, view, view.find("b"), Direction.UP)
            return view.ordered_snapshot()

        snapshot = asyncio.run(scenario())
        assert _keys(snapshot) == {"a": 9, "b": 2}


class TestFirstSwapKeyAssignment:
    def test_unkeyed_takes_neighbours_key(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store,
                [
                    make_record("c", display_order=0),
                    make_record("a", display_order=2),
                    make_record("b", minutes=5),
                ],
            )
            result = await move(store, view, view.find("b"), Direction.UP)
            return result, view.ordered_snapshot()

        result, snapshot = asyncio.run(scenario())
        assert result.record_order == 2
        assert result.target_order == 3
        assert _keys(snapshot) == {"c": 0, "b": 2, "a": 3}
        assert _ids(snapshot) == ["c", "b", "a"]
        assert all(r.display_order is not None for r in snapshot)

    def test_keyed_moving_into_unkeyed_tail(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store,
                [
                    make_record("k", display_order=0),
                    make_record("old", minutes=1),
                    make_record("new", minutes=2),
                ],
            )
            await move(store, view, view.find("k"), Direction.DOWN)
            return view.ordered_snapshot()

        snapshot = asyncio.run(scenario())
        # "new" is displayed before "old" (newest first), so it is the neighbour.
        assert _ids(snapshot) == ["new", "k", "old"]
        assert _keys(snapshot) == {"new": 0, "k": 1, "old": None}

    def test_two_unkeyed_records_swap(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("old", minutes=1), make_record("new", minutes=2)]
            )
            before = _ids(view.ordered_snapshot())
            await move(store, view, view.find("new"), Direction.DOWN)
            return before, view.ordered_snapshot()

        before, after = asyncio.run(scenario())
        assert before == ["new", "old"]
        assert _ids(after) == ["old", "new"]
        assert _keys(after) == {"old": 0, "new": 1}


class TestEffectiveKeys:
    def test_sentinels_above_assigned(self, make_record):
        snapshot = [
            make_record("a", display_order=0),
            make_record("b", display_order=4),
            make_record("y", minutes=2),
            make_record("x", minutes=1),
        ]
        assert effective_keys(snapshot) == {"a": 0, "b": 4, "y": 5, "x": 6}

    def test_no_assigned_keys(self, make_record):
        snapshot = [make_record("y", minutes=2), make_record("x", minutes=1)]
        assert effective_keys(snapshot) == {"y": 0, "x": 1}

    def test_neighbour_index_missing(self, make_record):
        with pytest.raises(RecordNotFoundError):
            neighbour_index([make_record("a")], "zzz", Direction.UP)


class TestFailures:
    def test_record_absent_raises_not_found(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            gone = view.find("a")
            await store.delete(CollectionType.PROJECT, "a")
            await view.refresh()
            await move(store, view, gone, Direction.DOWN)

        with pytest.raises(RecordNotFoundError):
            asyncio.run(scenario())
        assert store.writes == []

    def test_wrong_view_type(self, store, make_record):
        async def scenario():
            view = await _seeded_view(store, [make_record("a")])
            blog = make_record("b", collection_type=CollectionType.BLOG)
            await move(store, view, blog, Direction.UP)

        with pytest.raises(CollectionMismatchError):
            asyncio.run(scenario())

    def test_second_write_rejected_keeps_first(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=3), make_record("b", display_order=4)]
            )
            store.reject_ids.add("b")
            with pytest.raises(StoreWriteFailed) as excinfo:
                await move(store, view, view.find("a"), Direction.DOWN)
            return excinfo.value, view.ordered_snapshot()

        error, snapshot = asyncio.run(scenario())
        assert error.succeeded == ["a"]
        assert error.failed == ["b"]
        assert error.skipped == []
        # No rollback: both now hold key 4 and the id tie-break orders them.
        assert _keys(snapshot) == {"a": 4, "b": 4}
        assert _ids(snapshot) == ["a", "b"]

    def test_first_write_rejected_skips_second(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            store.reject_ids.add("a")
            with pytest.raises(StoreWriteFailed) as excinfo:
                await move(store, view, view.find("a"), Direction.DOWN)
            return excinfo.value, await store.query_all(CollectionType.PROJECT)

        error, records = asyncio.run(scenario())
        assert error.failed == ["a"]
        assert error.skipped == ["b"]
        assert error.succeeded == []
        assert _keys(records) == {"a": 0, "b": 1}
        assert store.writes == []

    def test_refresh_failure_after_write_failure_still_reports_write(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            store.reject_ids.add("b")
            store.fail_queries = True
            await move(store, view, view.find("a"), Direction.DOWN)

        with pytest.raises(StoreWriteFailed):
            asyncio.run(scenario())

    def test_unsaved_first_write_leaves_both_keys(self, tmp_path, make_record):
        async def scenario():
            disk_store = JsonDocumentStore(tmp_path)
            view = await _seeded_view(
                disk_store, [make_record("a", display_order=3), make_record("b", display_order=4)]
            )
            disk_store.path.unlink()
            disk_store.path.mkdir()
            with pytest.raises(StoreWriteFailed) as excinfo:
                await move(disk_store, view, view.find("a"), Direction.DOWN)
            return excinfo.value, view.ordered_snapshot()

        error, snapshot = asyncio.run(scenario())
        assert error.failed == ["a"]
        assert error.skipped == ["b"]
        assert _keys(snapshot) == {"a": 3, "b": 4}

    def test_refresh_failure_after_both_writes_still_moves(self, store, make_record):
        async def scenario():
            view = await _seeded_view(
                store, [make_record("a", display_order=0), make_record("b", display_order=1)]
            )
            store.fail_queries = True
            result = await move(store, view, view.find("a"), Direction.DOWN)
            store.fail_queries = False
            return result, await store.query_all(CollectionType.PROJECT)

        result, records = asyncio.run(scenario())
        assert result.outcome == ReorderOutcome.MOVED
        assert _keys(records) == {"a": 1, "b": 0}
