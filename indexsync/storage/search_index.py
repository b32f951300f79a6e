"""Search index interface and implementations for record storage."""

import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import structlog
from algoliasearch.http.exceptions import (
    AlgoliaException,
    AlgoliaUnreachableHostException,
    RequestException,
)
from algoliasearch.search.client import SearchClientSync

from indexsync.errors import IndexWriteError
from indexsync.models.content import IndexRecord
from indexsync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


class RetryableIndexError(IndexWriteError):
    """Index write failed for a reason worth retrying (network, 429, 5xx)."""


class SearchIndex(ABC):
    """Abstract interface for search index writes.

    Both operations are idempotent: upserting a record replaces any record
    with the same id in full, and deleting an absent id is a no-op.
    """

    @abstractmethod
    def upsert_batch(self, records: list[IndexRecord]) -> None:
        """Add or replace records.

        Raises:
            IndexWriteError: If the batch could not be applied
        """

    @abstractmethod
    def delete_batch(self, record_ids: list[str]) -> None:
        """Delete records by id.

        Raises:
            IndexWriteError: If the batch could not be applied
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove every record, ahead of rebuilding the index from an initial sync.

        Raises:
            IndexWriteError: If the index could not be cleared
        """


class InMemoryIndex(SearchIndex):
    """Process-local index, used for dry runs and tests."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def upsert_batch(self, records: list[IndexRecord]) -> None:
        with self._lock:
            for record in records:
                self._records[record.record_id] = dict(record.document)
        log.debug("memory_index_upserted", count=len(records))

    def delete_batch(self, record_ids: list[str]) -> None:
        with self._lock:
            for record_id in record_ids:
                self._records.pop(record_id, None)
        log.debug("memory_index_deleted", count=len(record_ids))

    def clear(self) -> None:
        with self._lock:
            count = len(self._records)
            self._records.clear()
        log.debug("memory_index_cleared", count=count)

    def get(self, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._records.get(record_id)
            return dict(record) if record is not None else None

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Copy of every stored record, keyed by record id."""
        with self._lock:
            return {key: dict(value) for key, value in self._records.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class AlgoliaIndex(SearchIndex):
    """Algolia implementation of the search index over the ``algoliasearch`` client.

    Records are saved with ``save_objects`` (full replacement) and removed with
    ``delete_objects``; the record id is used as Algolia's ``objectID``.
    """

    OBJECT_ID_KEY = "objectID"

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        wait_for_tasks: bool = True,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
        max_retry_delay: float = 60.0,
        client: SearchClientSync | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize Algolia index client.

        Args:
            app_id: Algolia application id
            api_key: Admin API key with write access
            index_name: Target index
            wait_for_tasks: Block until each indexing task is published
            max_retries: Retries for transient errors per batch
            base_retry_delay: Initial backoff delay in seconds
            max_retry_delay: Maximum backoff delay in seconds
            client: Optional pre-built Algolia search client
            sleep: Function used to wait between retries

        Raises:
            ValueError: If credentials or index name are empty
        """
        if not app_id or not api_key:
            raise ValueError("app_id and api_key are required for AlgoliaIndex")
        if not index_name or not index_name.strip():
            raise ValueError("index_name cannot be empty")

        self._index_name = index_name
        self._wait_for_tasks = wait_for_tasks
        self._client = client if client is not None else SearchClientSync(app_id, api_key)

        self._call = exponential_backoff_retry(
            max_retries=max_retries,
            base_delay=base_retry_delay,
            max_delay=max_retry_delay,
            exceptions=(RetryableIndexError,),
            sleep=sleep,
        )(self._call)

        log.info("algolia_index_initialized", app_id=app_id, index_name=index_name)

    def upsert_batch(self, records: list[IndexRecord]) -> None:
        if not records:
            return
        objects = [{**record.document, self.OBJECT_ID_KEY: record.record_id} for record in records]
        self._call(
            "save_objects",
            index_name=self._index_name,
            objects=objects,
            wait_for_tasks=self._wait_for_tasks,
        )
        log.info("algolia_records_upserted", index_name=self._index_name, count=len(records))

    def delete_batch(self, record_ids: list[str]) -> None:
        if not record_ids:
            return
        self._call(
            "delete_objects",
            index_name=self._index_name,
            object_ids=list(record_ids),
            wait_for_tasks=self._wait_for_tasks,
        )
        log.info("algolia_records_deleted", index_name=self._index_name, count=len(record_ids))

    def clear(self) -> None:
        response = self._call("clear_objects", index_name=self._index_name)
        if self._wait_for_tasks:
            self._call("wait_for_task", index_name=self._index_name, task_id=response.task_id)
        log.info("algolia_index_cleared", index_name=self._index_name)

    def _call(self, method: str, **kwargs: Any) -> Any:
        """Invoke one client method, mapping Algolia failures to index errors."""
        try:
            return getattr(self._client, method)(**kwargs)
        except AlgoliaUnreachableHostException as e:
            raise RetryableIndexError(f"Algolia hosts unreachable during {method}: {e}") from e
        except RequestException as e:
            status = getattr(e, "status_code", None)
            if status is not None and (status == 429 or status >= 500):
                raise RetryableIndexError(f"Algolia returned HTTP {status} for {method}") from e
            log.error(
                "algolia_request_rejected",
                index_name=self._index_name,
                operation=method,
                status_code=status,
                error=str(e),
            )
            raise IndexWriteError(f"Algolia rejected {method} with HTTP {status}: {e}") from e
        except AlgoliaException as e:
            raise IndexWriteError(f"Algolia {method} failed: {e}") from e
