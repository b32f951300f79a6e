"""Data models for synchronization operations."""

import threading
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from indexsync.models.content import ContentItem


class SyncMode(str, Enum):
    """Kind of synchronization run."""

    INITIAL = "initial"
    INCREMENTAL = "incremental"


class ChangeSet(BaseModel):
    """Represents one batch of changes returned by the content source."""

    model_config = ConfigDict(frozen=True)

    upserts: list[ContentItem] = Field(
        default_factory=list, description="Items that were created or updated"
    )
    deletions: list[str] = Field(
        default_factory=list, description="Ids of items that were removed"
    )
    next_token: str = Field(default=..., min_length=1, description="Token to resume from")
    is_initial: bool = Field(default=False, description="True for a full initial fetch")

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes to process."""
        return bool(self.upserts or self.deletions)

    @property
    def total_changes(self) -> int:
        """Get total number of changes."""
        return len(self.upserts) + len(self.deletions)


class ReconcileResult(BaseModel):
    """Counts of index mutations performed for a change set."""

    records_upserted: int = Field(default=0, ge=0, description="Records added or replaced")
    records_deleted: int = Field(default=0, ge=0, description="Record ids deleted")
    index_calls: int = Field(default=0, ge=0, description="Batched calls made to the index")
    index_cleared: bool = Field(default=False, description="Index was emptied before writing")


class SyncReport(BaseModel):
    """Report of synchronization run results."""

    mode: SyncMode = Field(..., description="Initial or incremental run")
    records_upserted: int = Field(default=0, ge=0, description="Records added or replaced")
    records_deleted: int = Field(default=0, ge=0, description="Records deleted")
    token_before: str | None = Field(default=None, description="Token the run started from")
    token_after: str | None = Field(default=None, description="Token saved by the run")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Run duration in seconds")
    start_time: datetime = Field(..., description="Run start timestamp")
    end_time: datetime = Field(..., description="Run end timestamp")
    errors: list[str] = Field(
        default_factory=list, description="List of errors encountered during the run"
    )

    @property
    def total_changes(self) -> int:
        """Get total number of changes processed."""
        return self.records_upserted + self.records_deleted

    @property
    def success(self) -> bool:
        """Check if the run completed without errors."""
        return len(self.errors) == 0


class SyncState:
    """Process-wide synchronization state owned by the orchestrator.

    Holds the last committed continuation token and the ``running`` flag that
    keeps runs mutually exclusive. The internal lock only makes the
    test-and-set of ``running`` atomic; it is never held across network calls.
    """

    def __init__(self, token: str | None = None):
        self._token = token
        self._running = False
        self._lock = threading.Lock()

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def running(self) -> bool:
        return self._running

    def try_begin_run(self) -> bool:
        """Set ``running`` if it is clear. Returns False when a run is in progress."""
        with self._lock:
            if self._running:
                return False
            self._running = True
            return True

    def end_run(self) -> None:
        with self._lock:
            self._running = False

    def commit_token(self, token: str | None) -> None:
        """Record the token that is now durably checkpointed."""
        self._token = token
