"""Turn plotted samples or buckets into drawable chart primitives.

The builder is independent of any rendering surface: it produces pixel
coordinates for gridlines, axis labels, up polylines, down bands and point
markers. ``svg.render_svg`` is one consumer of this geometry.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Callable, Protocol, Sequence

from .models import PlotPoint
from .ranges import DATE_LABEL_RANGES, Range, lookback
from .scale import YAxisPlan

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 980
MIN_WIDTH = 640
DEFAULT_HEIGHT = 260

# Smallest extent a down band reaches past an edge point, and the minimum
# width of any band.
EDGE_BAND_MIN_PX = 6.0
BAND_MIN_WIDTH_PX = 2.0

MARKER_RADIUS = 2.5
ANCHOR_MARKER_RADIUS = 4.0

# The domain is never narrower than this, so scaling never divides by zero.
MIN_DOMAIN = timedelta(seconds=1)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class Plottable(Protocol):
    """Anything that can be laid out on the chart (Sample or Bucket)."""

    timestamp: datetime
    ok: bool
    latency_ms: int
    status_code: int | None
    error: str | None


@dataclass(frozen=True)
class Padding:
    left: int = 54
    right: int = 14
    top: int = 14
    bottom: int = 34


@dataclass(frozen=True)
class ChartLayout:
    """Pixel dimensions of the chart and its plot area."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    padding: Padding = field(default_factory=Padding)

    @classmethod
    def for_container(
        cls,
        container_width: float | None,
        fallback_width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
    ) -> "ChartLayout":
        """Size the chart to a container, never narrower than MIN_WIDTH."""
        width = int(container_width) if container_width else fallback_width
        return cls(width=max(MIN_WIDTH, width), height=height)

    @property
    def plot_left(self) -> float:
        return float(self.padding.left)

    @property
    def plot_right(self) -> float:
        return float(self.width - self.padding.right)

    @property
    def plot_top(self) -> float:
        return float(self.padding.top)

    @property
    def plot_bottom(self) -> float:
        return float(self.height - self.padding.bottom)

    @property
    def plot_width(self) -> float:
        return self.plot_right - self.plot_left

    @property
    def plot_height(self) -> float:
        return self.plot_bottom - self.plot_top


@dataclass(frozen=True)
class Domain:
    """Time span mapped onto the plot area's width."""

    start: datetime
    end: datetime

    @property
    def span(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class YTick:
    value: int
    y: float
    label: str


@dataclass(frozen=True)
class XTick:
    timestamp: datetime
    x: float
    label: str
    anchor: str  # "start", "middle" or "end"


@dataclass(frozen=True)
class UpSegment:
    """Connected run of up points drawn as one polyline."""

    points: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class DownBand:
    """Shaded outage region spanning the full plot height."""

    x_start: float
    x_end: float
    top: float
    bottom: float

    @property
    def width(self) -> float:
        return self.x_end - self.x_start


@dataclass(frozen=True)
class Marker:
    x: float
    y: float
    radius: float
    ok: bool = True


@dataclass(frozen=True)
class ChartGeometry:
    """Everything needed to draw one latency chart."""

    layout: ChartLayout
    domain: Domain
    y_plan: YAxisPlan
    y_ticks: tuple[YTick, ...]
    x_ticks: tuple[XTick, ...]
    up_segments: tuple[UpSegment, ...]
    down_bands: tuple[DownBand, ...]
    markers: tuple[Marker, ...]
    points: tuple[PlotPoint, ...]

    @property
    def empty(self) -> bool:
        return not self.points

    @property
    def gridlines(self) -> tuple[float, ...]:
        """y pixel of each horizontal gridline."""
        return tuple(t.y for t in self.y_ticks)

    @property
    def y_labels(self) -> tuple[str, ...]:
        return tuple(t.label for t in self.y_ticks)

    @property
    def x_gridlines(self) -> tuple[float, ...]:
        return tuple(t.x for t in self.x_ticks)

    @property
    def x_labels(self) -> tuple[str, ...]:
        return tuple(t.label for t in self.x_ticks)


def resolve_domain(
    window_from: datetime | None,
    window_to: datetime | None,
    range_key: Range,
    now: datetime | None = None,
) -> Domain:
    """Resolve the plotted time domain.

    Server-supplied bounds win; missing bounds fall back to "now" and the
    range's default lookback. The domain is at least one second wide.
    """
    end = window_to or now or datetime.now(UTC)
    start = window_from or (end - lookback(range_key))
    domain_start = min(start, end - MIN_DOMAIN)
    domain_end = max(end, domain_start + MIN_DOMAIN)
    return Domain(start=domain_start, end=domain_end)


def x_scale(layout: ChartLayout, domain: Domain) -> Callable[[datetime], float]:
    """Return a function mapping a timestamp to a clamped x pixel."""
    span = max(domain.span, MIN_DOMAIN) / timedelta(milliseconds=1)

    def scale(ts: datetime) -> float:
        ratio = ((ts - domain.start) / timedelta(milliseconds=1)) / span
        return layout.plot_left + max(0.0, min(1.0, ratio)) * layout.plot_width

    return scale


def y_scale(layout: ChartLayout, y_plan: YAxisPlan) -> Callable[[float], float]:
    """Return a function mapping a latency to a y pixel (larger latency, smaller y)."""

    def scale(value: float) -> float:
        clamped = max(0.0, min(float(y_plan.max), float(value)))
        return layout.plot_top + (1 - clamped / y_plan.max) * layout.plot_height

    return scale


def plot_points(
    items: Sequence[Plottable],
    layout: ChartLayout,
    domain: Domain,
    y_plan: YAxisPlan,
) -> list[PlotPoint]:
    """Position samples or buckets, ordered left to right by timestamp."""
    sx = x_scale(layout, domain)
    sy = y_scale(layout, y_plan)
    points = []
    for item in sorted(items, key=lambda i: i.timestamp):
        latency = max(0, item.latency_ms or 0)
        points.append(
            PlotPoint(
                x=sx(item.timestamp),
                y=sy(latency),
                ok=bool(item.ok),
                latency_ms=latency,
                timestamp=item.timestamp,
                status_code=item.status_code,
                error=item.error,
            )
        )
    return points


def _y_ticks(layout: ChartLayout, y_plan: YAxisPlan) -> list[YTick]:
    sy = y_scale(layout, y_plan)
    return [YTick(value=v, y=sy(v), label=str(v)) for v in y_plan.ticks]


def _format_x_label(ts: datetime, range_key: Range | None, tz: tzinfo | None) -> str:
    local = ts.astimezone(tz)
    if range_key is not None and Range.parse(range_key) in DATE_LABEL_RANGES:
        return local.strftime("%d.%m")
    return local.strftime("%H:%M")


def _x_ticks(
    layout: ChartLayout,
    domain: Domain,
    interval: timedelta,
    range_key: Range | None,
    tz: tzinfo | None,
) -> list[XTick]:
    if interval <= timedelta(0) or domain.end <= domain.start:
        return []
    sx = x_scale(layout, domain)
    # Ticks sit on multiples of the interval since the epoch.
    first = _EPOCH + ((domain.start - _EPOCH) // interval) * interval
    candidates = []
    ts = first
    while ts <= domain.end + timedelta(milliseconds=1):
        candidates.append(ts)
        ts += interval

    ticks = []
    last = len(candidates) - 1
    for n, ts in enumerate(candidates):
        if ts < domain.start or ts > domain.end:
            continue
        if n == 0:
            anchor = "start"
        elif n == last:
            anchor = "end"
        else:
            anchor = "middle"
        ticks.append(XTick(timestamp=ts, x=sx(ts), label=_format_x_label(ts, range_key, tz), anchor=anchor))
    return ticks


def up_segments(points: Sequence[PlotPoint]) -> list[UpSegment]:
    """Group up points into maximal runs broken by down points.

    Runs of a single point are dropped; they are drawn as markers only.
    """
    runs: list[list[PlotPoint]] = []
    current: list[PlotPoint] = []
    for pt in points:
        if pt.ok:
            current.append(pt)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return [UpSegment(points=tuple((p.x, p.y) for p in run)) for run in runs if len(run) >= 2]


def down_bands(points: Sequence[PlotPoint], layout: ChartLayout) -> list[DownBand]:
    """Shade each down point out to the midpoints with its neighbours.

    Adjacent down points produce touching bands, which are merged so a
    contiguous outage renders as one band.
    """
    top, bottom = layout.plot_top, layout.plot_bottom
    last = len(points) - 1
    raw: list[tuple[float, float]] = []
    for idx, pt in enumerate(points):
        if pt.ok:
            continue
        prev_x = points[idx - 1].x if idx > 0 else pt.x
        next_x = points[idx + 1].x if idx < last else pt.x
        if idx > 0:
            start = (prev_x + pt.x) / 2
        else:
            start = max(layout.plot_left, pt.x - max(EDGE_BAND_MIN_PX, (next_x - pt.x) / 2))
        if idx < last:
            end = (pt.x + next_x) / 2
        else:
            end = min(layout.plot_right, pt.x + max(EDGE_BAND_MIN_PX, (pt.x - prev_x) / 2))
        end = max(end, start + BAND_MIN_WIDTH_PX)
        raw.append((start, end))

    merged: list[list[float]] = []
    for start, end in raw:
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [DownBand(x_start=s, x_end=e, top=top, bottom=bottom) for s, e in merged]


def markers(points: Sequence[PlotPoint]) -> list[Marker]:
    """One marker per up point; the first and last are enlarged."""
    up = [p for p in points if p.ok]
    last = len(up) - 1
    return [
        Marker(
            x=p.x,
            y=p.y,
            radius=ANCHOR_MARKER_RADIUS if idx in (0, last) else MARKER_RADIUS,
            ok=True,
        )
        for idx, p in enumerate(up)
    ]


def build(
    items: Sequence[Plottable],
    domain: Domain,
    y_plan: YAxisPlan,
    x_tick_interval: timedelta,
    layout: ChartLayout | None = None,
    range_key: Range | None = None,
    tz: tzinfo | None = None,
) -> ChartGeometry:
    """Build chart geometry for plotted items (raw samples or buckets).

    Args:
        items: Samples or buckets to plot, in any order.
        domain: Time span mapped to the plot width.
        y_plan: Y-axis scale from ``scale.plan_y_axis``.
        x_tick_interval: Spacing of x-axis ticks from ``scale.plan_x_axis``.
        layout: Pixel layout; defaults to ``ChartLayout()``.
        range_key: Selected range, used to choose the x label format.
        tz: Timezone for x labels (local time if None).

    Returns:
        ChartGeometry. Axes are always present, even with no items.
    """
    layout = layout or ChartLayout()
    points = plot_points(items, layout, domain, y_plan)
    geometry = ChartGeometry(
        layout=layout,
        domain=domain,
        y_plan=y_plan,
        y_ticks=tuple(_y_ticks(layout, y_plan)),
        x_ticks=tuple(_x_ticks(layout, domain, x_tick_interval, range_key, tz)),
        up_segments=tuple(up_segments(points)),
        down_bands=tuple(down_bands(points, layout)),
        markers=tuple(markers(points)),
        points=tuple(points),
    )
    logger.debug(
        "Built chart geometry: %d points, %d segments, %d down bands",
        len(geometry.points),
        len(geometry.up_segments),
        len(geometry.down_bands),
    )
    return geometry
