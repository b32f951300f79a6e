"""Reconciliation of change sets into search index mutations."""

from typing import Iterator, TypeVar

import structlog

from indexsync.errors import IndexWriteError
from indexsync.models.content import to_index_records
from indexsync.storage.search_index import SearchIndex
from indexsync.sync.models import ChangeSet, ReconcileResult

log = structlog.stdlib.get_logger()

T = TypeVar("T")


def chunked(items: list[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items, preserving order."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


class Reconciler:
    """Applies change sets to a search index in batches."""

    def __init__(self, index: SearchIndex, batch_size: int = 1000):
        """
        Initialize reconciler.

        Args:
            index: Search index receiving the mutations
            batch_size: Maximum number of operations per index call

        Raises:
            ValueError: If batch_size is not positive
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self._index = index
        self._batch_size = batch_size

    def apply(self, change_set: ChangeSet, replace: bool = False) -> ReconcileResult:
        """
        Apply a change set to the index.

        All deletions are issued before any upsert, so an id that was deleted
        and recreated inside the same change window ends up present. Empty
        deletion or upsert lists make no index call.

        Args:
            change_set: Change set to apply
            replace: Clear the index before writing. Only valid for an initial
                change set, which describes the complete current content.

        Returns:
            ReconcileResult with the number of records written and removed

        Raises:
            ValueError: If replace is requested for an incremental change set
            IndexWriteError: If any chunk fails. Remaining chunks are skipped;
                the error carries the counts applied before the failure.
        """
        if replace and not change_set.is_initial:
            raise ValueError("Only an initial change set can replace the index")

        log.info(
            "applying_change_set",
            initial=change_set.is_initial,
            replace=replace,
            upserts=len(change_set.upserts),
            deletions=len(change_set.deletions),
            batch_size=self._batch_size,
        )

        result = ReconcileResult()

        if replace:
            self._write("clear", [], result)
            result.index_cleared = True

        if not change_set.deletions:
            log.info("no_deletions_to_apply")
        for chunk in chunked(change_set.deletions, self._batch_size):
            self._write("delete", chunk, result)

        if not change_set.upserts:
            log.info("no_upserts_to_apply")
        records = to_index_records(change_set.upserts)
        for chunk in chunked(records, self._batch_size):
            self._write("upsert", chunk, result)

        log.info(
            "change_set_applied",
            records_upserted=result.records_upserted,
            records_deleted=result.records_deleted,
            index_calls=result.index_calls,
            index_cleared=result.index_cleared,
        )
        return result

    def _write(self, operation: str, chunk: list, result: ReconcileResult) -> None:
        try:
            if operation == "clear":
                self._index.clear()
            elif operation == "delete":
                self._index.delete_batch(chunk)
            else:
                self._index.upsert_batch(chunk)
        except Exception as e:
            target = "index" if operation == "clear" else f"batch of {len(chunk)} records"
            log.error(
                "index_batch_failed",
                operation=operation,
                chunk_size=len(chunk),
                records_upserted=result.records_upserted,
                records_deleted=result.records_deleted,
                error=str(e),
            )
            raise IndexWriteError(
                f"Failed to {operation} {target}: {e}",
                records_upserted=result.records_upserted,
                records_deleted=result.records_deleted,
            ) from e

        result.index_calls += 1
        if operation == "delete":
            result.records_deleted += len(chunk)
        elif operation == "upsert":
            result.records_upserted += len(chunk)
