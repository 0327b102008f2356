"""Shared fixtures: sample factories and a controllable timer host."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from monitorchart.models import DetailSnapshot, MetricsWindow, MonitorDescriptor, MonitorEvent, MonitorState, Sample

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def at(minutes: float) -> datetime:
    """Timestamp ``minutes`` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


def make_sample(
    minutes: float,
    ok: bool = True,
    latency_ms: int = 30,
    status_code: int | None = 200,
    error: str | None = None,
) -> Sample:
    return Sample(timestamp=at(minutes), ok=ok, latency_ms=latency_ms, status_code=status_code, error=error)


def make_snapshot(
    monitor_id: int = 1,
    samples: tuple | None = None,
    interval_sec: int | None = 10,
    is_paused: bool = False,
    hours: int = 1,
) -> DetailSnapshot:
    """Detail snapshot for an HTTP monitor, one healthy sample per minute by default."""
    if samples is None:
        samples = tuple(make_sample(m, latency_ms=25) for m in range(60))
    return DetailSnapshot(
        monitor=MonitorDescriptor(
            id=monitor_id,
            name=f"monitor-{monitor_id}",
            type="http",
            url="https://example.com",
            interval_sec=interval_sec,
            is_paused=is_paused,
        ),
        state=MonitorState(status="up", last_status_code=200, uptime_24h=99.5, uptime_30d=99.9),
        metrics=MetricsWindow(samples=samples, window_from=BASE_TIME, window_to=BASE_TIME + timedelta(hours=hours)),
        events=(MonitorEvent(timestamp=at(5), event_type="up"),),
    )


async def settle(rounds: int = 5) -> None:
    """Let pending tasks on the running loop make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeTimer:
    """Timer handle that only fires when a test fires it."""

    def __init__(self, delay: float, callback, args: tuple) -> None:
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.callback(*self.args)


class FakeHost:
    """TimerHost with manual timers; tasks run on the current asyncio loop."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []
        self.tasks: list[asyncio.Task] = []

    def call_later(self, delay: float, callback, *args) -> FakeTimer:
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    def create_task(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_pending(self) -> None:
        for timer in self.pending:
            timer.fire()


@pytest.fixture
def host() -> FakeHost:
    """Create a fake timer host."""
    return FakeHost()
