"""Property-based tests for applying change sets to the index.

Feature: contentful-index-sync
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from indexsync.errors import IndexWriteError
from indexsync.models.content import to_index_record
from indexsync.sync.models import ChangeSet
from indexsync.sync.reconciler import Reconciler, chunked
from tests.fakes import RecordingIndex, build_item

item_ids = st.text(alphabet="abcdefgh", min_size=1, max_size=3)


@st.composite
def change_set_strategy(draw: st.DrawFn) -> ChangeSet:
    """Change set with unique upsert ids and unique deletion ids (lists may overlap)."""
    upsert_ids = draw(st.lists(item_ids, unique=True, max_size=12))
    deletion_ids = draw(st.lists(item_ids, unique=True, max_size=12))
    version = draw(st.integers(min_value=1, max_value=50))
    return ChangeSet(
        upserts=[build_item(item_id, version) for item_id in upsert_ids],
        deletions=deletion_ids,
        next_token="t1",
    )


@given(
    items=st.lists(st.integers(), max_size=40),
    size=st.integers(min_value=1, max_value=10),
)
def test_chunked_preserves_order_and_bounds_size(items: list[int], size: int):
    chunks = list(chunked(items, size))

    assert [value for chunk in chunks for value in chunk] == items
    assert all(1 <= len(chunk) <= size for chunk in chunks)


@given(change_set=change_set_strategy(), batch_size=st.integers(min_value=1, max_value=5))
@settings(max_examples=100)
def test_property_4_deletions_precede_upserts(change_set: ChangeSet, batch_size: int):
    """Property 4: Every delete call is made before any upsert call.

    An id that appears in both lists therefore ends up present in the index.
    """
    index = RecordingIndex()
    index.upsert_batch([to_index_record(build_item(i)) for i in change_set.deletions])
    index.calls.clear()

    Reconciler(index, batch_size=batch_size).apply(change_set)

    operations = [operation for operation, _ in index.calls]
    assert operations == sorted(operations, key=lambda op: op != "delete")

    snapshot = index.snapshot()
    for item in change_set.upserts:
        assert snapshot[item.id] == to_index_record(item).document
    for record_id in set(change_set.deletions) - {item.id for item in change_set.upserts}:
        assert record_id not in snapshot


@given(change_set=change_set_strategy(), batch_size=st.integers(min_value=1, max_value=5))
@settings(max_examples=100)
def test_property_5_applying_twice_is_idempotent(change_set: ChangeSet, batch_size: int):
    """Property 5: Re-applying the same change set leaves the index unchanged."""
    index = RecordingIndex()
    reconciler = Reconciler(index, batch_size=batch_size)

    reconciler.apply(change_set)
    once = index.snapshot()
    reconciler.apply(change_set)

    assert index.snapshot() == once


@given(change_set=change_set_strategy(), batch_size=st.integers(min_value=1, max_value=5))
@settings(max_examples=100)
def test_property_6_chunking_bounds_every_call(change_set: ChangeSet, batch_size: int):
    """Property 6: No index call carries more than batch_size operations."""
    index = RecordingIndex()

    result = Reconciler(index, batch_size=batch_size).apply(change_set)

    assert all(1 <= len(ids) <= batch_size for _, ids in index.calls)
    assert result.index_calls == len(index.calls)
    assert result.records_upserted == len(change_set.upserts)
    assert result.records_deleted == len(change_set.deletions)

    deleted = [i for op, ids in index.calls if op == "delete" for i in ids]
    upserted = [i for op, ids in index.calls if op == "upsert" for i in ids]
    assert deleted == change_set.deletions
    assert upserted == [item.id for item in change_set.upserts]


def test_empty_change_set_makes_no_calls(index):
    result = Reconciler(index).apply(ChangeSet(next_token="t1"))

    assert index.calls == []
    assert result.index_calls == 0


def test_only_deletions_makes_no_upsert_call(index):
    Reconciler(index).apply(ChangeSet(deletions=["a"], next_token="t1"))

    assert index.calls == [("delete", ["a"])]


def test_failed_chunk_aborts_with_partial_counts(make_item):
    index = RecordingIndex(fail_on_calls={3})
    change_set = ChangeSet(
        upserts=[make_item(i) for i in ["a", "b", "c", "d"]],
        deletions=["x"],
        next_token="t1",
    )

    with pytest.raises(IndexWriteError) as exc_info:
        Reconciler(index, batch_size=2).apply(change_set)

    assert exc_info.value.records_deleted == 1
    assert exc_info.value.records_upserted == 2
    # The failing call is the last one attempted
    assert len(index.calls) == 3


def test_unexpected_index_errors_become_index_write_errors(make_item):
    class BrokenIndex(RecordingIndex):
        def upsert_batch(self, records):
            raise RuntimeError("socket closed")

    with pytest.raises(IndexWriteError, match="socket closed"):
        Reconciler(BrokenIndex()).apply(ChangeSet(upserts=[make_item("a")], next_token="t1"))


def test_batch_size_must_be_positive(index):
    with pytest.raises(ValueError):
        Reconciler(index, batch_size=0)


def test_replace_clears_index_before_writing(index, make_item):
    index.upsert_batch([to_index_record(make_item("stale")), to_index_record(make_item("a"))])
    index.calls.clear()
    change_set = ChangeSet(upserts=[make_item("a", 2)], next_token="t1", is_initial=True)

    result = Reconciler(index).apply(change_set, replace=True)

    assert index.calls == [("clear", []), ("upsert", ["a"])]
    assert set(index.snapshot()) == {"a"}
    assert result.index_cleared
    assert result.index_calls == 2


def test_replace_requires_initial_change_set(index, make_item):
    change_set = ChangeSet(upserts=[make_item("a")], next_token="t1")

    with pytest.raises(ValueError):
        Reconciler(index).apply(change_set, replace=True)

    assert index.calls == []


def test_failed_clear_writes_nothing(make_item):
    index = RecordingIndex(fail_on_calls={1})
    change_set = ChangeSet(upserts=[make_item("a")], next_token="t1", is_initial=True)

    with pytest.raises(IndexWriteError, match="clear index"):
        Reconciler(index).apply(change_set, replace=True)

    assert index.calls == [("clear", [])]
    assert index.snapshot() == {}
