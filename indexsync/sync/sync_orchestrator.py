"""Synchronization orchestrator driving fetch, reconcile and checkpoint runs."""

from datetime import datetime

import structlog

from indexsync.errors import FatalFetchError, IndexWriteError, SyncError
from indexsync.sync.change_fetcher import ChangeSetFetcher
from indexsync.sync.checkpoint_store import CheckpointStore
from indexsync.sync.models import ReconcileResult, SyncMode, SyncReport, SyncState
from indexsync.sync.reconciler import Reconciler

log = structlog.stdlib.get_logger()


class SyncOrchestrator:
    """Owns the sync state machine and guarantees at most one run at a time.

    A run moves Idle -> Running -> Idle. The checkpoint token is written only
    after the fetched change set has been applied to the index, so a crash at
    any point re-fetches the same range on the next run.
    """

    def __init__(
        self,
        fetcher: ChangeSetFetcher,
        reconciler: Reconciler,
        checkpoint_store: CheckpointStore,
        state: SyncState | None = None,
    ):
        """
        Initialize sync orchestrator.

        Args:
            fetcher: Source of change sets
            reconciler: Applies change sets to the search index
            checkpoint_store: Persists the continuation token
            state: Optional pre-built state (a fresh one is created if None)
        """
        self._fetcher = fetcher
        self._reconciler = reconciler
        self._checkpoint_store = checkpoint_store
        self._state = state or SyncState()

        log.info("sync_orchestrator_initialized")

    @property
    def state(self) -> SyncState:
        return self._state

    def start(self) -> SyncReport | None:
        """
        Load the checkpoint and run the initial sync if none exists.

        Returns:
            SyncReport of the initial run, or None if a checkpoint was found
            or another run was in progress

        Raises:
            PersistenceError: If the checkpoint cannot be read
        """
        if not self._state.try_begin_run():
            log.info("sync_already_running_skipped", requested_mode=SyncMode.INITIAL.value)
            return None

        try:
            self._load_checkpoint()
            if self._state.token is None:
                log.info("no_checkpoint_running_initial_sync")
                return self._execute(SyncMode.INITIAL)

            log.info("checkpoint_found_waiting_for_triggers")
            return None
        finally:
            self._state.end_run()

    def run_once(self, full_sync: bool = False) -> SyncReport | None:
        """
        Reload the checkpoint and run one sync, all under the running guard.

        Args:
            full_sync: Rebuild the index from an initial sync even if a token exists

        Returns:
            SyncReport, or None if another run was in progress

        Raises:
            PersistenceError: If the checkpoint cannot be read
        """
        if not self._state.try_begin_run():
            log.info("sync_already_running_skipped", full_sync=full_sync)
            return None

        try:
            self._load_checkpoint()
            if full_sync:
                return self._execute(SyncMode.INITIAL, replace=True)
            if self._state.token is None:
                return self._execute(SyncMode.INITIAL)
            return self._execute(SyncMode.INCREMENTAL)
        finally:
            self._state.end_run()

    def run(self) -> SyncReport | None:
        """Run an initial or incremental sync depending on the current state."""
        if self._state.token is None:
            return self.run_initial()
        return self.run_incremental()

    def run_initial(self, force: bool = False) -> SyncReport | None:
        """
        Fetch and index the full dataset, then save the resulting token.

        Args:
            force: Run even though a checkpoint token exists. The index is
                cleared before the fetched records are written, so records
                deleted at the source do not survive the resync.

        Returns:
            SyncReport, or None if the run was skipped
        """
        if not self._state.try_begin_run():
            log.info("sync_already_running_skipped", requested_mode=SyncMode.INITIAL.value)
            return None

        try:
            if self._state.token is not None and not force:
                log.warning("initial_sync_skipped_checkpoint_exists")
                return None
            return self._execute(SyncMode.INITIAL, replace=force)
        finally:
            self._state.end_run()

    def run_incremental(self) -> SyncReport | None:
        """
        Fetch changes since the current token, apply them and advance the token.

        Without a token this performs the initial sync instead.

        Returns:
            SyncReport, or None if another run was in progress
        """
        if not self._state.try_begin_run():
            log.info("sync_already_running_skipped", requested_mode=SyncMode.INCREMENTAL.value)
            return None

        try:
            if self._state.token is None:
                log.warning("incremental_sync_without_checkpoint_running_initial")
                return self._execute(SyncMode.INITIAL)
            return self._execute(SyncMode.INCREMENTAL)
        finally:
            self._state.end_run()

    def _execute(self, mode: SyncMode, replace: bool = False) -> SyncReport:
        """Perform one run. Must be called with the running guard held.

        With ``replace`` the index is cleared once the initial change set has
        been fetched, so it ends up holding exactly the fetched records.
        """
        start_time = datetime.now()
        token_before = self._state.token if mode is SyncMode.INCREMENTAL else None

        log.info(
            "sync_run_started",
            mode=mode.value,
            has_token=token_before is not None,
            replace=replace,
        )

        try:
            try:
                result = self._sync_once(token_before, replace=replace)
            except FatalFetchError as e:
                if mode is not SyncMode.INCREMENTAL or not e.token_rejected:
                    raise
                log.warning(
                    "sync_token_rejected_falling_back_to_initial",
                    error=str(e),
                    status_code=e.status_code,
                )
                self._state.commit_token(None)
                mode = SyncMode.INITIAL
                # Deletions made while the token was stale are only removed by a rebuild
                result = self._sync_once(None, replace=True)

        except SyncError as e:
            end_time = datetime.now()
            duration = (end_time - start_time).total_seconds()

            log.error(
                "sync_run_failed",
                mode=mode.value,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=duration,
            )

            partial = e if isinstance(e, IndexWriteError) else None
            return SyncReport(
                mode=mode,
                records_upserted=partial.records_upserted if partial else 0,
                records_deleted=partial.records_deleted if partial else 0,
                token_before=token_before,
                token_after=self._state.token,
                duration_seconds=duration,
                start_time=start_time,
                end_time=end_time,
                errors=[f"Sync failed: {e}"],
            )

        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        report = SyncReport(
            mode=mode,
            records_upserted=result.records_upserted,
            records_deleted=result.records_deleted,
            token_before=token_before,
            token_after=self._state.token,
            duration_seconds=duration,
            start_time=start_time,
            end_time=end_time,
        )

        log.info(
            "sync_run_completed",
            mode=mode.value,
            records_upserted=report.records_upserted,
            records_deleted=report.records_deleted,
            duration_seconds=duration,
        )
        return report

    def _load_checkpoint(self) -> str | None:
        """Load the persisted token into the sync state. Requires the running guard."""
        token = self._checkpoint_store.load()
        self._state.commit_token(token)
        log.info("sync_state_loaded", has_token=token is not None)
        return token

    def _sync_once(self, token: str | None, replace: bool = False) -> ReconcileResult:
        """Fetch, apply, then checkpoint. The token only advances after both succeed."""
        change_set = self._fetcher.fetch(token)
        result = self._reconciler.apply(change_set, replace=replace)
        self._checkpoint_store.save(change_set.next_token)
        self._state.commit_token(change_set.next_token)
        return result
