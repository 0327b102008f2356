"""Monitor detail view: fetch, aggregate, scale, lay out and keep it live.

``MonitorDetail`` is the entry point the host application talks to. It owns a
``RefreshScheduler`` and re-runs the chart pipeline on every refresh:

    samples -> aggregate -> plan axes -> build geometry -> hover index

Responses that arrive after the selection (monitor or range) changed are
discarded, so a slow fetch can never overwrite a newer chart.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Protocol

from .aggregator import aggregate
from .client import MonitorNotFoundError, SampleStoreError
from .config import Config
from .geometry import ChartGeometry, ChartLayout, build, plot_points, resolve_domain
from .hover import HoverIndex, tooltip_text
from .models import DetailSnapshot, MonitorDescriptor
from .ranges import Range, bucket_width
from .scale import plan_x_axis, plan_y_axis
from .scheduler import RefreshScheduler, TimerHost
from .summary import (
    EventRow,
    StatCard,
    event_rows,
    maintenance_notice,
    monitor_tags,
    stats_cards,
    status_strip,
    target_label,
)

logger = logging.getLogger(__name__)


class DetailFetcher(Protocol):
    """Asynchronous source of detail snapshots (see ``client.ThreadedFetcher``)."""

    async def fetch(self, monitor_id: int, metrics_range: Range, events_range: Range) -> DetailSnapshot: ...


class HostSurface(Protocol):
    """Visibility and sizing signals from whatever surface shows the chart."""

    def is_visible(self) -> bool: ...

    def container_width(self) -> float | None: ...

    def on_visibility_change(self, callback: Callable[[bool], None]) -> None: ...

    def on_container_resize(self, callback: Callable[[float], None]) -> None: ...


class StaticSurface:
    """In-process HostSurface whose signals are raised by calling its setters."""

    def __init__(self, width: float | None = None, visible: bool = True) -> None:
        self._width = width
        self._visible = visible
        self._visibility_callbacks: list[Callable[[bool], None]] = []
        self._resize_callbacks: list[Callable[[float], None]] = []

    def is_visible(self) -> bool:
        return self._visible

    def container_width(self) -> float | None:
        return self._width

    def on_visibility_change(self, callback: Callable[[bool], None]) -> None:
        self._visibility_callbacks.append(callback)

    def on_container_resize(self, callback: Callable[[float], None]) -> None:
        self._resize_callbacks.append(callback)

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        for callback in list(self._visibility_callbacks):
            callback(visible)

    def resize(self, width: float) -> None:
        self._width = width
        for callback in list(self._resize_callbacks):
            callback(width)


@dataclass(frozen=True)
class ChartRender:
    """Result of one render cycle of the detail view."""

    monitor: MonitorDescriptor
    range: Range
    target: str
    geometry: ChartGeometry
    hover: HoverIndex
    status_strip: tuple[str, ...]
    stats: tuple[StatCard, ...]
    events: tuple[EventRow, ...]
    rendered_at: datetime
    tags: tuple[str, ...] = ()
    maintenance: str | None = None


def render_snapshot(
    snapshot: DetailSnapshot,
    range_key: Range,
    layout: ChartLayout,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> ChartRender:
    """Run the chart pipeline over a fetched snapshot.

    The visible chart uses aggregated buckets for coarse ranges, while the
    hover index always covers the raw samples.
    """
    now = now or datetime.now(UTC)
    samples = snapshot.metrics.samples
    domain = resolve_domain(snapshot.metrics.window_from, snapshot.metrics.window_to, range_key, now)
    plotted = aggregate(samples, bucket_width(range_key), domain.start, domain.end)
    y_plan = plan_y_axis(item.latency_ms for item in plotted if item.ok)
    geometry = build(plotted, domain, y_plan, plan_x_axis(range_key), layout, range_key, tz)
    hover = HoverIndex(plot_points(samples, layout, domain, y_plan))
    return ChartRender(
        monitor=snapshot.monitor,
        range=range_key,
        target=target_label(snapshot.monitor),
        geometry=geometry,
        hover=hover,
        status_strip=tuple(status_strip(samples)),
        stats=tuple(stats_cards(snapshot.monitor, snapshot.state)),
        events=tuple(event_rows(snapshot.events, tz)),
        rendered_at=now,
        tags=tuple(monitor_tags(snapshot.monitor)),
        maintenance=maintenance_notice(snapshot.state),
    )


class MonitorDetail:
    """Detail view for one selected monitor at a time.

    Example:
        detail = MonitorDetail(ThreadedFetcher(client), loop, surface, config,
                               on_render=write_chart, on_selection_lost=reload_list)
        detail.select(42)
    """

    def __init__(
        self,
        fetcher: DetailFetcher,
        host: TimerHost,
        surface: HostSurface,
        config: Config | None = None,
        on_render: Callable[[ChartRender], None] | None = None,
        on_selection_lost: Callable[[int], None] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._host = host
        self._surface = surface
        self._config = config or Config()
        self._on_render = on_render
        self._on_selection_lost = on_selection_lost
        self._tz = tz

        self._range = self._config.chart.default_range
        self._events_range = self._config.chart.events_range
        self._selected_id: int | None = None
        # Incremented on every selection change; loads carrying an older token are stale.
        self._token = 0
        self._snapshot: DetailSnapshot | None = None
        self._render: ChartRender | None = None
        self._known: dict[int, MonitorDescriptor] = {}

        self._scheduler = RefreshScheduler(host, surface.is_visible, self.load, self._config.refresh)
        surface.on_visibility_change(self._handle_visibility)
        surface.on_container_resize(self._handle_resize)

    @property
    def selected_id(self) -> int | None:
        return self._selected_id

    @property
    def range(self) -> Range:
        return self._range

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def last_render(self) -> ChartRender | None:
        return self._render

    def select(self, monitor_id: int) -> None:
        """Show ``monitor_id`` and start fetching and refreshing it."""
        logger.info("Selected monitor %d", monitor_id)
        self._selected_id = monitor_id
        self._token += 1
        self._snapshot = None
        self._render = None
        self._scheduler.activate(monitor_id)
        self._scheduler.fetch_now()

    def set_range(self, range_key: Range | str) -> None:
        """Change the chart range and refetch the selected monitor."""
        self._range = Range.parse(range_key)
        if self._selected_id is not None:
            self.select(self._selected_id)

    def set_events_range(self, range_key: Range | str) -> None:
        self._events_range = Range.parse(range_key)
        if self._selected_id is not None:
            self.select(self._selected_id)

    def clear(self) -> None:
        """Drop the selection and stop refreshing."""
        self._scheduler.stop()
        self._selected_id = None
        self._token += 1
        self._snapshot = None
        self._render = None

    def monitor_changed(self, monitor: MonitorDescriptor) -> None:
        """Apply a pause/resume or settings change made elsewhere."""
        self._known[monitor.id] = monitor
        if monitor.id == self._selected_id:
            self._scheduler.schedule(monitor)

    def hover(self, cursor_x: float) -> str | None:
        """Tooltip text for the raw sample nearest ``cursor_x``, if any."""
        if self._render is None:
            return None
        point = self._render.hover.nearest(cursor_x)
        return tooltip_text(point, self._tz) if point is not None else None

    async def load(self, monitor_id: int) -> ChartRender | None:
        """Fetch and render ``monitor_id``; never raises.

        Returns:
            The new render, or None when the fetch failed, the monitor is
            gone, or the response went stale before it arrived.
        """
        token = self._token
        range_key, events_range = self._range, self._events_range
        try:
            snapshot = await self._fetcher.fetch(monitor_id, range_key, events_range)
        except MonitorNotFoundError:
            if token != self._token:
                logger.debug("Discarding stale not-found response for monitor %d", monitor_id)
                return None
            self._handle_not_found(monitor_id)
            return None
        except SampleStoreError as e:
            logger.warning("Failed to load monitor %d: %s", monitor_id, e)
            self._retry_later(token, monitor_id)
            return None
        except Exception:
            logger.exception("Unexpected error loading monitor %d", monitor_id)
            self._retry_later(token, monitor_id)
            return None

        if token != self._token or monitor_id != self._selected_id:
            logger.debug("Discarding stale response for monitor %d", monitor_id)
            return None

        self._known[monitor_id] = snapshot.monitor
        self._snapshot = snapshot
        render = self._render_snapshot(snapshot)
        self._scheduler.schedule(snapshot.monitor)
        return render

    def _render_snapshot(self, snapshot: DetailSnapshot) -> ChartRender | None:
        layout = ChartLayout.for_container(
            self._surface.container_width(),
            fallback_width=self._config.chart.width,
            height=self._config.chart.height,
        )
        try:
            render = render_snapshot(snapshot, self._range, layout, tz=self._tz)
        except Exception:
            logger.exception("Failed to render monitor %d, keeping previous chart", snapshot.monitor.id)
            return None
        self._render = render
        if self._on_render is not None:
            try:
                self._on_render(render)
            except Exception as e:
                logger.error("Render callback failed: %s", e)
        return render

    def _handle_not_found(self, monitor_id: int) -> None:
        logger.info("Monitor %d no longer exists, clearing selection", monitor_id)
        self._known.pop(monitor_id, None)
        if self._selected_id == monitor_id:
            self.clear()
        if self._on_selection_lost is not None:
            try:
                self._on_selection_lost(monitor_id)
            except Exception as e:
                logger.error("Selection-lost callback failed: %s", e)

    def _retry_later(self, token: int, monitor_id: int) -> None:
        if token == self._token:
            self._scheduler.schedule(self._fallback_descriptor(monitor_id))

    def _fallback_descriptor(self, monitor_id: int) -> MonitorDescriptor:
        known = self._known.get(monitor_id)
        if known is not None:
            return known
        return MonitorDescriptor(id=monitor_id, name=f"#{monitor_id}")

    def _handle_visibility(self, visible: bool) -> None:
        if visible and self._selected_id is not None:
            self._scheduler.fetch_now()

    def _handle_resize(self, width: float) -> None:
        if self._snapshot is None or self._selected_id is None:
            return
        self._render_snapshot(self._snapshot)
