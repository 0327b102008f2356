"""Self-rescheduling refresh loop for a monitor detail view.

The scheduler keeps one ``ScheduleState`` per view. It runs on a single
event loop (the ``TimerHost``), so no locks are needed: every callback runs
to completion before the next one starts.

State machine: Idle -> Scheduled -> Fetching -> Scheduled -> ... -> Idle.

Example:
    scheduler = RefreshScheduler(loop, surface.is_visible, detail.load)
    scheduler.activate(monitor.id)
    scheduler.fetch_now()
"""

import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Protocol

from .config import RefreshConfig
from .models import MonitorDescriptor

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerHost(Protocol):
    """Timer and task capabilities of a single-threaded event loop.

    ``asyncio.AbstractEventLoop`` satisfies this protocol.
    """

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...

    def create_task(self, coro: Coroutine[Any, Any, Any]) -> Any: ...


@dataclass
class ScheduleState:
    """Polling state for the monitor currently shown in a view.

    Attributes:
        monitor_id: Monitor this state belongs to.
        timer: Pending tick, or None when nothing is scheduled.
        in_flight: Whether a refresh fetch is outstanding for this monitor.
        deferred: A fetch is owed once an earlier state's fetch for the
            same monitor completes.
    """

    monitor_id: int
    timer: TimerHandle | None = None
    in_flight: bool = False
    deferred: bool = False


def refresh_delay_ms(interval_sec: float | None, config: RefreshConfig | None = None) -> int:
    """Delay before the next refresh, following the monitor's own check interval.

    A missing or zero interval falls back to ``config.default_interval_sec``;
    the result is clamped to ``[min_delay_ms, max_delay_ms]``.
    """
    config = config or RefreshConfig()
    seconds = interval_sec or config.default_interval_sec
    return int(min(max(seconds * 1000, config.min_delay_ms), config.max_delay_ms))


class RefreshScheduler:
    """Keeps at most one pending timer and one in-flight fetch per view."""

    def __init__(
        self,
        host: TimerHost,
        is_visible: Callable[[], bool],
        refresh: Callable[[int], Awaitable[Any]],
        config: RefreshConfig | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            host: Event loop used for timers and fetch tasks.
            is_visible: Returns whether the view is currently visible.
            refresh: Coroutine function that fetches and renders a monitor.
            config: Delay bounds; defaults to RefreshConfig().
        """
        self._host = host
        self._is_visible = is_visible
        self._refresh = refresh
        self._config = config or RefreshConfig()
        self._state: ScheduleState | None = None
        # Monitor id -> state whose fetch is currently running.
        self._running: dict[int, ScheduleState] = {}

    @property
    def state(self) -> ScheduleState | None:
        return self._state

    @property
    def monitor_id(self) -> int | None:
        return self._state.monitor_id if self._state else None

    @property
    def in_flight(self) -> bool:
        return self._state is not None and self._state.in_flight

    @property
    def is_scheduled(self) -> bool:
        return self._state is not None and self._state.timer is not None

    def activate(self, monitor_id: int) -> ScheduleState:
        """Start tracking ``monitor_id``, replacing any previous state.

        A fetch still outstanding for the previous state is not cancelled;
        it completes against the old state object. If it belongs to the same
        monitor, the new state counts as in flight until it completes and then
        fetches once, so one monitor never has two fetches outstanding.
        """
        self.stop()
        self._state = ScheduleState(monitor_id=monitor_id)
        if monitor_id in self._running:
            self._state.in_flight = True
            self._state.deferred = True
        logger.debug("Refresh scheduler activated for monitor %d", monitor_id)
        return self._state

    def stop(self) -> None:
        """Cancel any pending tick and return to Idle."""
        if self._state is None:
            return
        self._cancel_timer(self._state)
        logger.debug("Refresh scheduler stopped for monitor %d", self._state.monitor_id)
        self._state = None

    def schedule(self, monitor: MonitorDescriptor) -> bool:
        """Schedule the next tick for ``monitor``.

        The pending tick is always cancelled first. Paused or inactive
        monitors are left unscheduled.

        Returns:
            True if a tick was scheduled.
        """
        state = self._state
        if state is None or state.monitor_id != monitor.id:
            logger.debug("Ignoring schedule request for inactive monitor %d", monitor.id)
            return False
        self._cancel_timer(state)
        if not monitor.is_pollable:
            logger.debug("Monitor %d is paused or inactive, not scheduling refresh", monitor.id)
            return False
        delay_ms = refresh_delay_ms(monitor.interval_sec, self._config)
        state.timer = self._host.call_later(delay_ms / 1000, self._on_tick, state, monitor)
        return True

    def fetch_now(self) -> bool:
        """Start a fetch immediately unless one is already in flight.

        Returns:
            True if a fetch was started.
        """
        state = self._state
        if state is None:
            return False
        if state.in_flight:
            logger.debug("Fetch already in flight for monitor %d", state.monitor_id)
            return False
        self._cancel_timer(state)
        self._start(state)
        return True

    def _on_tick(self, state: ScheduleState, monitor: MonitorDescriptor) -> None:
        if state is not self._state:
            return
        state.timer = None
        if not self._is_visible():
            logger.debug("View hidden, skipping refresh of monitor %d", monitor.id)
            self.schedule(monitor)
            return
        if state.in_flight:
            logger.debug("Refresh of monitor %d still in flight, rescheduling", monitor.id)
            self.schedule(monitor)
            return
        self._start(state)

    def _start(self, state: ScheduleState) -> None:
        state.in_flight = True
        self._running[state.monitor_id] = state
        self._host.create_task(self._run(state))

    async def _run(self, state: ScheduleState) -> None:
        try:
            await self._refresh(state.monitor_id)
        except Exception:
            logger.exception("Refresh of monitor %d failed", state.monitor_id)
        finally:
            state.in_flight = False
            if self._running.get(state.monitor_id) is state:
                del self._running[state.monitor_id]
        self._start_deferred(state.monitor_id)

    def _start_deferred(self, monitor_id: int) -> None:
        current = self._state
        if current is None or current.monitor_id != monitor_id or not current.deferred:
            return
        current.deferred = False
        logger.debug("Starting deferred fetch for monitor %d", monitor_id)
        self._cancel_timer(current)
        self._start(current)

    @staticmethod
    def _cancel_timer(state: ScheduleState) -> None:
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None
