"""
Tests for foldersync.core.scheduler module.
"""

import io
import threading
from datetime import datetime
from pathlib import Path

import pytest

from foldersync.core.exceptions import CycleCancelled
from foldersync.core.logging import SyncLogger
from foldersync.core.models import SyncCycleOutcome
from foldersync.core.scheduler import (
    CancellationToken,
    Scheduler,
    SchedulerState,
    SystemClock,
)


class FakeClock:
    """Clock that records sleeps instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep = None

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float, token: CancellationToken) -> bool:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep()
        return token.is_cancelled


class FakeEngine:
    """Engine whose cycles are scripted."""

    def __init__(self, effects: list[object] | None = None) -> None:
        self.effects = list(effects or [])
        self.calls = 0

    def run_cycle(self) -> SyncCycleOutcome:
        self.calls += 1
        effect = self.effects.pop(0) if self.effects else None
        if isinstance(effect, BaseException):
            raise effect
        if isinstance(effect, SyncCycleOutcome):
            return effect
        return SyncCycleOutcome(started_at=datetime.now(), ended_at=datetime.now())


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initial_state(self) -> None:
        token = CancellationToken()
        assert not token.is_cancelled
        token.check_cancelled()

    def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled
        with pytest.raises(CycleCancelled):
            token.check_cancelled()

    def test_wait_wakes_on_cancel(self) -> None:
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(5) is True
        finally:
            timer.cancel()

    def test_wait_times_out(self) -> None:
        assert CancellationToken().wait(0.01) is False


class TestSystemClock:
    """Tests for SystemClock."""

    def test_sleep_returns_immediately_when_cancelled(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert SystemClock().sleep(60, token) is True

    def test_monotonic_increases(self) -> None:
        clock = SystemClock()
        assert clock.monotonic() <= clock.monotonic()


class TestScheduler:
    """Tests for Scheduler."""

    def test_runs_max_cycles(self, sync_logger: SyncLogger) -> None:
        engine = FakeEngine()
        clock = FakeClock()
        scheduler = Scheduler(engine, 30, sync_logger, clock=clock)

        cycles = scheduler.run(max_cycles=3)

        assert cycles == 3
        assert engine.calls == 3
        assert clock.sleeps == [30, 30]
        assert scheduler.state is SchedulerState.STOPPED

    def test_waiting_message_logged(
        self, sync_logger: SyncLogger, console_output: io.StringIO, log_file: Path
    ) -> None:
        scheduler = Scheduler(FakeEngine(), 5, sync_logger, clock=FakeClock())

        scheduler.run(max_cycles=2)

        message = "Synchronization complete. Waiting for 5 seconds..."
        assert message in console_output.getvalue()
        assert message in log_file.read_text(encoding="utf-8")

    def test_exception_does_not_stop_loop(
        self, sync_logger: SyncLogger, console_output: io.StringIO
    ) -> None:
        engine = FakeEngine([RuntimeError("disk on fire"), None, None])
        scheduler = Scheduler(engine, 1, sync_logger, clock=FakeClock())

        cycles = scheduler.run(max_cycles=3)

        assert cycles == 3
        assert engine.calls == 3
        assert "Error during synchronization: disk on fire" in console_output.getvalue()

    def test_cancel_during_sleep(self, sync_logger: SyncLogger) -> None:
        engine = FakeEngine()
        clock = FakeClock()
        scheduler = Scheduler(engine, 10, sync_logger, clock=clock)
        clock.on_sleep = scheduler.stop

        cycles = scheduler.run()

        assert cycles == 1
        assert engine.calls == 1
        assert scheduler.state is SchedulerState.STOPPED

    def test_cancelled_before_start(self, sync_logger: SyncLogger) -> None:
        token = CancellationToken()
        token.cancel()
        engine = FakeEngine()
        scheduler = Scheduler(engine, 10, sync_logger, token=token, clock=FakeClock())

        assert scheduler.run() == 0
        assert engine.calls == 0

    def test_cancelled_cycle_stops(self, sync_logger: SyncLogger) -> None:
        cancelled = SyncCycleOutcome(started_at=datetime.now(), cancelled=True)
        engine = FakeEngine([cancelled])
        clock = FakeClock()
        scheduler = Scheduler(engine, 10, sync_logger, clock=clock)

        cycles = scheduler.run()

        assert cycles == 1
        assert clock.sleeps == []

    def test_cycle_cancelled_exception_stops(self, sync_logger: SyncLogger) -> None:
        engine = FakeEngine([CycleCancelled("stop")])
        scheduler = Scheduler(engine, 10, sync_logger, clock=FakeClock())

        assert scheduler.run() == 0
        assert scheduler.state is SchedulerState.STOPPED

    def test_state_transitions(self, sync_logger: SyncLogger) -> None:
        states: list[SchedulerState] = []
        scheduler = Scheduler(FakeEngine(), 1, sync_logger, clock=FakeClock())
        scheduler.add_state_callback(states.append)

        scheduler.run(max_cycles=2)

        assert states == [
            SchedulerState.RUNNING,
            SchedulerState.SLEEPING,
            SchedulerState.IDLE,
            SchedulerState.RUNNING,
            SchedulerState.STOPPED,
        ]

    def test_failing_state_callback_ignored(self, sync_logger: SyncLogger) -> None:
        def broken(state: SchedulerState) -> None:
            raise ValueError("bad callback")

        scheduler = Scheduler(FakeEngine(), 1, sync_logger, clock=FakeClock())
        scheduler.add_state_callback(broken)

        assert scheduler.run(max_cycles=1) == 1

    def test_runs_until_stopped_from_another_thread(self, sync_logger: SyncLogger) -> None:
        engine = FakeEngine()
        scheduler = Scheduler(engine, 0.01, sync_logger)

        thread = threading.Thread(target=scheduler.run)
        thread.start()
        timer = threading.Timer(0.1, scheduler.stop)
        timer.start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert engine.calls >= 1
        assert scheduler.state is SchedulerState.STOPPED
