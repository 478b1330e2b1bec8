"""
FolderSync scheduler.

Drives reconciliation cycles on a fixed interval with cancellation
support observed at cycle boundaries and between file operations.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from enum import Enum, auto
from typing import Protocol

from foldersync.core.exceptions import CycleCancelled
from foldersync.core.logging import SyncLogger, get_logger
from foldersync.core.models import SyncCycleOutcome

logger = get_logger(__name__)


class CancellationToken:
    """Cooperative cancellation signal shared by the scheduler and engine."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def check_cancelled(self) -> None:
        """Raise CycleCancelled if cancellation was requested."""
        if self._event.is_set():
            raise CycleCancelled("Synchronization was cancelled")

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def sleep(self, seconds: float, token: CancellationToken) -> bool: ...


class SystemClock:
    """Wall clock whose sleep wakes early on cancellation."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, token: CancellationToken) -> bool:
        return token.wait(seconds)


class CycleRunner(Protocol):
    def run_cycle(self) -> SyncCycleOutcome: ...


class SchedulerState(Enum):
    """States of the scheduling loop."""

    IDLE = auto()
    RUNNING = auto()
    SLEEPING = auto()
    STOPPED = auto()


class Scheduler:
    """
    Runs cycles forever: IDLE -> RUNNING -> SLEEPING -> IDLE.

    The interval is measured from the end of one cycle to the start of the
    next. Exceptions escaping a cycle are logged and never stop the loop;
    only cancellation (or ``max_cycles``) moves the scheduler to STOPPED.
    """

    def __init__(
        self,
        engine: CycleRunner,
        interval_seconds: float,
        sync_logger: SyncLogger,
        token: CancellationToken | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.sync_logger = sync_logger
        self.token = token or CancellationToken()
        self.clock = clock or SystemClock()
        self.state = SchedulerState.IDLE
        self.cycles_run = 0
        self._state_callbacks: list[Callable[[SchedulerState], None]] = []

    def run(self, max_cycles: int | None = None) -> int:
        """Run until cancelled or ``max_cycles`` cycles completed. Returns cycles run."""
        logger.debug("Scheduler started", interval_seconds=self.interval_seconds)

        while not self.token.is_cancelled:
            self._set_state(SchedulerState.RUNNING)
            started = self.clock.monotonic()
            try:
                outcome = self.engine.run_cycle()
            except CycleCancelled:
                break
            except Exception as e:
                self.sync_logger.error(f"Error during synchronization: {e}")
                logger.exception("Cycle raised", cycle=self.cycles_run + 1)
            else:
                if outcome.cancelled:
                    self.cycles_run += 1
                    break
            self.cycles_run += 1
            logger.debug(
                "Cycle finished",
                cycle=self.cycles_run,
                duration_seconds=self.clock.monotonic() - started,
            )

            if max_cycles is not None and self.cycles_run >= max_cycles:
                break

            self._set_state(SchedulerState.SLEEPING)
            self.sync_logger.info(
                f"Synchronization complete. Waiting for {self.interval_seconds} seconds..."
            )
            if self.clock.sleep(self.interval_seconds, self.token):
                break
            self._set_state(SchedulerState.IDLE)

        self._set_state(SchedulerState.STOPPED)
        logger.debug("Scheduler stopped", cycles=self.cycles_run)
        return self.cycles_run

    def stop(self) -> None:
        """Request a graceful stop; the in-flight file operation completes first."""
        self.token.cancel()

    def add_state_callback(self, callback: Callable[[SchedulerState], None]) -> None:
        """Add a callback notified on every state change."""
        self._state_callbacks.append(callback)

    def _set_state(self, state: SchedulerState) -> None:
        self.state = state
        for callback in self._state_callbacks:
            try:
                callback(state)
            except Exception as e:
                logger.warning("State callback error", error=str(e))
