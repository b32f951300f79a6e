"""Assembly of the sync engine from configuration."""

from typing import Any

import structlog

from indexsync.models.config import AppConfig
from indexsync.providers import get_checkpoint_store, get_content_source, get_search_index
from indexsync.storage.search_index import SearchIndex
from indexsync.sync.change_fetcher import ChangeSetFetcher
from indexsync.sync.checkpoint_store import CheckpointStore
from indexsync.sync.models import SyncReport
from indexsync.sync.reconciler import Reconciler
from indexsync.sync.sync_orchestrator import SyncOrchestrator
from indexsync.sync.trigger_coalescer import TimerFactory, TriggerCoalescer

log = structlog.stdlib.get_logger()


class SyncService:
    """Wires fetcher, reconciler, checkpoint store, orchestrator and coalescer."""

    def __init__(
        self,
        config: AppConfig,
        fetcher: ChangeSetFetcher | None = None,
        index: SearchIndex | None = None,
        checkpoint_store: CheckpointStore | None = None,
        timer_factory: TimerFactory | None = None,
    ):
        """
        Initialize the service.

        Args:
            config: Application configuration
            fetcher: Optional fetcher (built from config via providers if None)
            index: Optional search index (built from config via providers if None)
            checkpoint_store: Optional checkpoint store (built from config if None)
            timer_factory: Optional timer factory for the coalescer
        """
        self._config = config
        self.index = index if index is not None else get_search_index(config)
        self.checkpoint_store = (
            checkpoint_store if checkpoint_store is not None else get_checkpoint_store(config)
        )
        fetcher = fetcher if fetcher is not None else get_content_source(config)

        self.orchestrator = SyncOrchestrator(
            fetcher=fetcher,
            reconciler=Reconciler(self.index, batch_size=config.sync.batch_size),
            checkpoint_store=self.checkpoint_store,
        )

        coalescer_kwargs: dict[str, Any] = {}
        if timer_factory is not None:
            coalescer_kwargs["timer_factory"] = timer_factory
        self.coalescer = TriggerCoalescer(
            run_sync=self.orchestrator.run_incremental,
            delay_seconds=config.sync.webhook_delay_seconds,
            trigger_events=config.sync.trigger_events,
            **coalescer_kwargs,
        )

        log.info("sync_service_initialized")

    def start(self) -> SyncReport | None:
        """Load the checkpoint and run the initial sync if none exists."""
        return self.orchestrator.start()

    def run_once(self, full_sync: bool = False) -> SyncReport | None:
        """
        Run a single sync outside of webhook triggering.

        Args:
            full_sync: Rebuild the index from scratch even if a checkpoint exists

        Returns:
            SyncReport, or None if another run was in progress
        """
        return self.orchestrator.run_once(full_sync=full_sync)

    def handle_event(self, event_kind: str) -> bool:
        """Forward a change notification to the coalescer."""
        return self.coalescer.on_event(event_kind)

    def status(self) -> dict[str, Any]:
        """Snapshot of the sync state for health reporting."""
        state = self.orchestrator.state
        return {
            "has_checkpoint": state.token is not None,
            "running": state.running,
            "sync_pending": self.coalescer.pending,
        }

    def shutdown(self, timeout: float | None = 30.0) -> bool:
        """Cancel any pending scheduled run and wait for one in flight.

        Returns:
            False if a scheduled run was still in flight after ``timeout`` seconds
        """
        drained = self.coalescer.close(timeout=timeout)
        log.info("sync_service_shutdown", drained=drained)
        return drained
