"""Synchronization components for managing incremental updates."""

from indexsync.sync.change_fetcher import ChangeSetFetcher, ContentfulChangeFetcher
from indexsync.sync.checkpoint_store import CheckpointStore, FileCheckpointStore
from indexsync.sync.models import ChangeSet, ReconcileResult, SyncMode, SyncReport, SyncState
from indexsync.sync.reconciler import Reconciler
from indexsync.sync.sync_orchestrator import SyncOrchestrator
from indexsync.sync.trigger_coalescer import TriggerCoalescer

__all__ = [
    "ChangeSet",
    "ChangeSetFetcher",
    "CheckpointStore",
    "ContentfulChangeFetcher",
    "FileCheckpointStore",
    "ReconcileResult",
    "Reconciler",
    "SyncMode",
    "SyncOrchestrator",
    "SyncReport",
    "SyncState",
    "TriggerCoalescer",
]
