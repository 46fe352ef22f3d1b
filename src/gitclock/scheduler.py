"""Polling loop: scan -> build -> reconcile, once per period.

Ticks run on a single background thread. A failed tick is logged and the
loop carries on; nothing a tick raises can stop the timer.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .batch import ChangeBatchBuilder
from .errors import record_error
from .git_scan import WorkingTreeScanner
from .reconciler import ReconcileResult, RemoteLogReconciler

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    BUILDING = "building"
    RECONCILING = "reconciling"


class TickStatus(str, Enum):
    CLEAN = "clean"
    SYNCED = "synced"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TickOutcome:
    status: TickStatus
    changes: int = 0
    result: ReconcileResult | None = None
    message: str | None = None

    def summary(self) -> str:
        if self.status is TickStatus.CLEAN:
            return "No uncommitted changes"
        if self.status is TickStatus.SKIPPED:
            return "Skipped: previous tick still running"
        if self.status is TickStatus.SYNCED:
            return f"Logged {self.changes} changed file(s)"
        kind = self.result.status.value if self.result else "error"
        return f"Failed to log {self.changes} changed file(s) ({kind}): {self.message}"


class PollingScheduler:
    def __init__(
        self,
        *,
        scanner: WorkingTreeScanner,
        builder: ChangeBatchBuilder,
        reconciler: RemoteLogReconciler,
        interval_seconds: float,
        run_immediately: bool = True,
        on_outcome: Callable[[TickOutcome], None] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._scanner = scanner
        self._builder = builder
        self._reconciler = reconciler
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._on_outcome = on_outcome

        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.state = SchedulerState.IDLE

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            if self._stop_event.is_set():
                raise RuntimeError("Previous polling thread is still finishing a tick")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="gitclock-poll", daemon=True)
        self._thread.start()
        logger.info("Polling %s every %ss", self._scanner.repo_path, self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Stop the timer. An in-flight tick is allowed to finish.

        The thread handle is kept until the loop has actually exited.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if thread is not None and not thread.is_alive():
            self._thread = None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called. Returns True if stopped."""
        return self._stop_event.wait(timeout)

    def _loop(self) -> None:
        if self._run_immediately:
            self.run_once()
        while not self._stop_event.wait(self._interval):
            self.run_once()

    def run_once(self) -> TickOutcome:
        """Run one tick. Overlapping calls are skipped, not queued."""
        if not self._tick_lock.acquire(blocking=False):
            logger.info("Previous tick still running; skipping this one")
            outcome = TickOutcome(TickStatus.SKIPPED)
            self._report(outcome)
            return outcome

        try:
            outcome = self._tick()
        except Exception as exc:  # noqa: BLE001
            record_error(
                operation="polling_tick",
                exc=exc,
                context={"repo": str(self._scanner.repo_path)},
                include_traceback=True,
            )
            outcome = TickOutcome(TickStatus.FAILED, message=str(exc))
        finally:
            self.state = SchedulerState.IDLE
            self._tick_lock.release()

        self._report(outcome)
        return outcome

    def _tick(self) -> TickOutcome:
        self.state = SchedulerState.SCANNING
        records = list(self._scanner.scan())

        self.state = SchedulerState.BUILDING
        batch = self._builder.build(records)
        if batch is None:
            logger.debug("Working tree clean; nothing to log")
            return TickOutcome(TickStatus.CLEAN)

        self.state = SchedulerState.RECONCILING
        result = self._reconciler.reconcile(batch)
        if result.ok:
            logger.info("Logged %d changed file(s) (%s)", len(batch), result.status.value)
            return TickOutcome(TickStatus.SYNCED, changes=len(batch), result=result)

        logger.warning(
            "Could not log %d changed file(s): %s", len(batch), result.status.value
        )
        return TickOutcome(
            TickStatus.FAILED, changes=len(batch), result=result, message=result.message
        )

    def _report(self, outcome: TickOutcome) -> None:
        if self._on_outcome is None:
            return
        try:
            self._on_outcome(outcome)
        except Exception:  # noqa: BLE001
            logger.exception("Tick outcome callback failed")
