"""Tests for search index implementations."""

from typing import Any

import pytest
from algoliasearch.http.exceptions import AlgoliaUnreachableHostException, RequestException
from algoliasearch.search.client import SearchClientSync

from indexsync.errors import IndexWriteError
from indexsync.models.content import IndexRecord
from indexsync.storage.search_index import AlgoliaIndex, InMemoryIndex, RetryableIndexError


def record(record_id: str, **document) -> IndexRecord:
    return IndexRecord(record_id=record_id, document={"recordId": record_id, **document})


class TestInMemoryIndex:
    def test_upsert_replaces_whole_record(self):
        index = InMemoryIndex()
        index.upsert_batch([record("a", title="one", extra=True)])
        index.upsert_batch([record("a", title="two")])

        assert index.get("a") == {"recordId": "a", "title": "two"}
        assert len(index) == 1

    def test_delete_is_idempotent(self):
        index = InMemoryIndex()
        index.upsert_batch([record("a"), record("b")])

        index.delete_batch(["a", "missing"])
        index.delete_batch(["a"])

        assert set(index.snapshot()) == {"b"}
        assert index.get("a") is None

    def test_snapshot_is_a_copy(self):
        index = InMemoryIndex()
        index.upsert_batch([record("a", title="one")])

        index.snapshot()["a"]["title"] = "changed"

        assert index.get("a")["title"] == "one"

    def test_clear_removes_every_record(self):
        index = InMemoryIndex()
        index.upsert_batch([record("a"), record("b")])

        index.clear()

        assert index.snapshot() == {}
        assert len(index) == 0


class StubRequestException(RequestException):
    """Algolia HTTP error with a fixed status, built without a transport response."""

    def __init__(self, status_code: int):
        Exception.__init__(self, f"HTTP {status_code}")
        self.status_code = status_code


class StubUnreachable(AlgoliaUnreachableHostException):
    def __init__(self):
        Exception.__init__(self, "Unreachable hosts")


class StubTask:
    def __init__(self, task_id: int):
        self.task_id = task_id


class StubSearchClient:
    """Records client calls; queued exceptions are raised by the next calls in order."""

    def __init__(self, failures: list[Exception] | None = None):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures = list(failures or [])

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        if self.failures:
            raise self.failures.pop(0)

    def save_objects(self, **kwargs: Any) -> list:
        self._record("save_objects", **kwargs)
        return []

    def delete_objects(self, **kwargs: Any) -> list:
        self._record("delete_objects", **kwargs)
        return []

    def clear_objects(self, **kwargs: Any) -> StubTask:
        self._record("clear_objects", **kwargs)
        return StubTask(42)

    def wait_for_task(self, **kwargs: Any) -> None:
        self._record("wait_for_task", **kwargs)


def make_index(
    client: StubSearchClient, delays: list[float] | None = None, **kwargs
) -> AlgoliaIndex:
    return AlgoliaIndex(
        app_id="APP",
        api_key="key",
        index_name="content",
        client=client,
        sleep=(delays if delays is not None else []).append,
        **kwargs,
    )


class TestAlgoliaIndex:
    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            AlgoliaIndex(app_id="", api_key="key", index_name="content")
        with pytest.raises(ValueError):
            AlgoliaIndex(app_id="APP", api_key="key", index_name=" ")

    def test_builds_search_client_from_credentials(self):
        index = AlgoliaIndex(app_id="APP", api_key="key", index_name="content")

        assert isinstance(index._client, SearchClientSync)

    def test_upsert_saves_objects_keyed_by_record_id(self):
        client = StubSearchClient()

        make_index(client).upsert_batch([record("a", title="Hi")])

        assert client.calls == [
            (
                "save_objects",
                {
                    "index_name": "content",
                    "objects": [{"recordId": "a", "title": "Hi", "objectID": "a"}],
                    "wait_for_tasks": True,
                },
            )
        ]

    def test_delete_removes_objects_by_id(self):
        client = StubSearchClient()

        make_index(client, wait_for_tasks=False).delete_batch(["a", "b"])

        assert client.calls == [
            (
                "delete_objects",
                {"index_name": "content", "object_ids": ["a", "b"], "wait_for_tasks": False},
            )
        ]

    def test_empty_batches_make_no_request(self):
        client = StubSearchClient()
        index = make_index(client)

        index.upsert_batch([])
        index.delete_batch([])

        assert client.calls == []

    def test_clear_waits_for_its_task(self):
        client = StubSearchClient()

        make_index(client).clear()

        assert client.calls == [
            ("clear_objects", {"index_name": "content"}),
            ("wait_for_task", {"index_name": "content", "task_id": 42}),
        ]

    def test_clear_without_waiting(self):
        client = StubSearchClient()

        make_index(client, wait_for_tasks=False).clear()

        assert [method for method, _ in client.calls] == ["clear_objects"]

    def test_transient_failures_are_retried(self):
        delays: list[float] = []
        client = StubSearchClient(failures=[StubUnreachable(), StubRequestException(503)])

        make_index(client, delays).upsert_batch([record("a")])

        assert [method for method, _ in client.calls] == ["save_objects"] * 3
        assert delays == [1.0, 2.0]

    def test_retries_exhausted_raise_index_write_error(self):
        client = StubSearchClient(failures=[StubRequestException(429) for _ in range(2)])

        with pytest.raises(RetryableIndexError):
            make_index(client, max_retries=1).delete_batch(["a"])

    def test_client_errors_are_not_retried(self):
        client = StubSearchClient(failures=[StubRequestException(400)])

        with pytest.raises(IndexWriteError) as exc_info:
            make_index(client).upsert_batch([record("a")])

        assert not isinstance(exc_info.value, RetryableIndexError)
        assert len(client.calls) == 1
