"""Debounced scheduling of sync runs from change notifications."""

import threading
from typing import Any, Callable, Iterable, Protocol

import structlog

log = structlog.stdlib.get_logger()


class TimerHandle(Protocol):
    """The subset of ``threading.Timer`` the coalescer relies on."""

    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


class TriggerCoalescer:
    """Collapses bursts of change events into a single delayed sync run.

    Every relevant event restarts the quiescence delay (pure debounce), so
    there is never more than one pending timer. When the delay elapses the
    run callback is invoked once; exclusion against a run that is already in
    progress is left to the orchestrator's guard. Timers are daemon threads,
    so ``close`` waits for a run in flight before the process exits.
    """

    def __init__(
        self,
        run_sync: Callable[[], Any],
        delay_seconds: float = 60.0,
        trigger_events: Iterable[str] = ("publish",),
        timer_factory: TimerFactory = threading.Timer,
    ):
        """
        Initialize trigger coalescer.

        Args:
            run_sync: Callback performing the sync run (usually run_incremental)
            delay_seconds: Quiescence delay after the last event
            trigger_events: Event kinds that schedule a run; others are ignored
            timer_factory: Builds a cancellable timer from (interval, function)
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

        self._run_sync = run_sync
        self._delay = delay_seconds
        self._trigger_events = frozenset(trigger_events)
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: TimerHandle | None = None
        # Incremented per armed timer so a superseded timer that fires late is ignored
        self._generation = 0
        self._closed = False
        # Set while no run callback is executing; close() waits on it
        self._idle = threading.Event()
        self._idle.set()
        self._firing_thread: threading.Thread | None = None

        log.info(
            "trigger_coalescer_initialized",
            delay_seconds=delay_seconds,
            trigger_events=sorted(self._trigger_events),
        )

    @property
    def pending(self) -> bool:
        """True while a scheduled run is waiting for its delay to elapse."""
        with self._lock:
            return self._timer is not None

    def on_event(self, event_kind: str) -> bool:
        """
        Record a change notification and (re)schedule the pending run.

        Args:
            event_kind: Notification kind, e.g. "publish"

        Returns:
            True if a run is now scheduled because of this event
        """
        if event_kind not in self._trigger_events:
            log.info("trigger_event_ignored", event_kind=event_kind)
            return False

        with self._lock:
            if self._closed:
                log.warning("trigger_event_after_close", event_kind=event_kind)
                return False

            coalesced = self._timer is not None
            if coalesced:
                self._timer.cancel()

            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self._delay, lambda: self._fire(generation))
            timer.daemon = True
            self._timer = timer
            timer.start()

        log.info(
            "sync_scheduled",
            event_kind=event_kind,
            delay_seconds=self._delay,
            coalesced=coalesced,
        )
        return True

    def cancel(self) -> bool:
        """Cancel the pending run, if any. Returns True if one was cancelled."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1

        log.info("scheduled_sync_cancelled")
        return True

    def close(self, timeout: float | None = 30.0) -> bool:
        """
        Cancel any pending run, stop accepting events and wait for a run in flight.

        Args:
            timeout: Seconds to wait for an in-flight run; None waits indefinitely

        Returns:
            False if a run was still in flight when the timeout expired
        """
        with self._lock:
            cancelled = self._timer is not None
            if cancelled:
                self._timer.cancel()
                self._timer = None
                self._generation += 1
            self._closed = True
            firing_thread = self._firing_thread

        log.info("trigger_coalescer_closed", cancelled_pending=cancelled)

        # A run that closes its own coalescer cannot wait for itself
        if firing_thread is None or firing_thread is threading.current_thread():
            return True

        log.info("waiting_for_scheduled_sync", timeout_seconds=timeout)
        if not self._idle.wait(timeout):
            log.warning("scheduled_sync_still_running_at_close", timeout_seconds=timeout)
            return False
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._closed:
                log.debug("stale_timer_ignored", generation=generation)
                return
            self._timer = None
            self._firing_thread = threading.current_thread()
            self._idle.clear()

        log.info("scheduled_sync_firing")
        try:
            self._run_sync()
        except Exception as e:
            log.exception("scheduled_sync_failed", error=str(e), error_type=type(e).__name__)
        finally:
            with self._lock:
                self._firing_thread = None
                self._idle.set()
