"""Shared fixtures for the sync engine tests."""

from typing import Callable

import pytest
import structlog

from indexsync.models.content import ContentItem
from tests.fakes import (
    FakeClock,
    FakeContentSource,
    MemoryCheckpointStore,
    RecordingIndex,
    build_item,
)


@pytest.fixture
def source() -> FakeContentSource:
    return FakeContentSource()


@pytest.fixture
def index() -> RecordingIndex:
    return RecordingIndex()


@pytest.fixture
def checkpoint() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_item() -> Callable[..., ContentItem]:
    return build_item


@pytest.fixture(autouse=True)
def reset_structlog():
    """Keep logging configuration changes from leaking between tests."""
    yield
    structlog.reset_defaults()
