"""Data models for monitor health history and chart rendering."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta


@dataclass(frozen=True)
class Sample:
    """A single recorded check outcome for a monitor.

    Attributes:
        timestamp: When the check ran (timezone-aware, UTC).
        ok: Whether the check was classified as passing.
        latency_ms: Measured latency in milliseconds (never negative).
        status_code: Protocol status code, or None if not applicable.
        error: Diagnostic error text, or None if the check passed cleanly.
    """

    timestamp: datetime
    ok: bool
    latency_ms: int
    status_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class Bucket:
    """Aggregated fixed-width time window of samples.

    A bucket with up_count == 0 represents a fully-down interval. Buckets
    expose the same plotting attributes as Sample (timestamp, ok, latency_ms,
    status_code, error) so either can be laid out by the geometry builder.

    Attributes:
        window_start: Inclusive start of the window.
        window_end: Exclusive end of the window (start + bucket width).
        up_count: Number of successful samples in the window.
        up_latency_sum: Sum of latencies of successful samples (ms).
        sample_count: Total number of samples in the window.
        last_status_code: Latest non-null status code seen in the window.
        last_error: Latest non-empty error seen in the window.
    """

    window_start: datetime
    window_end: datetime
    up_count: int
    up_latency_sum: int
    sample_count: int
    last_status_code: int | None = None
    last_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.up_count > 0

    @property
    def latency_ms(self) -> int:
        """Mean latency of successful samples, rounded half-up; 0 when down."""
        if self.up_count == 0:
            return 0
        return int(math.floor(self.up_latency_sum / self.up_count + 0.5))

    @property
    def timestamp(self) -> datetime:
        """Midpoint of the window, truncated to whole milliseconds."""
        half = (self.window_end - self.window_start) / 2
        midpoint = self.window_start + half
        return midpoint - timedelta(microseconds=midpoint.microsecond % 1000)

    @property
    def status_code(self) -> int | None:
        return self.last_status_code

    @property
    def error(self) -> str | None:
        return self.last_error


@dataclass(frozen=True)
class PlotPoint:
    """A positioned point on the chart.

    Attributes:
        x: Horizontal pixel position.
        y: Vertical pixel position (top-left origin).
        ok: Whether the underlying sample or bucket was up.
        latency_ms: Latency shown for the point.
        timestamp: Time the point represents.
        status_code: Status code for the tooltip, if any.
        error: Error text for the tooltip, if any.
    """

    x: float
    y: float
    ok: bool
    latency_ms: int
    timestamp: datetime
    status_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class MonitorDescriptor:
    """Monitor configuration as reported by the sample store."""

    id: int
    name: str
    type: str = ""
    url: str | None = None
    host: str | None = None
    port: int | None = None
    interval_sec: int | None = None
    is_paused: bool = False
    is_active: bool = True
    tags: tuple[str, ...] = ()
    sla_target_pct: float | None = None

    @property
    def is_pollable(self) -> bool:
        """Whether the detail view should keep refreshing this monitor."""
        return self.is_active and not self.is_paused


@dataclass(frozen=True)
class MonitorState:
    """Current health summary of a monitor."""

    status: str
    last_checked_at: datetime | None = None
    last_status_code: int | None = None
    last_error: str | None = None
    last_latency_ms: int | None = None
    avg_latency_24h: float | None = None
    uptime_24h: float | None = None
    uptime_30d: float | None = None
    maintenance_active: bool = False


@dataclass(frozen=True)
class MonitorEvent:
    """A discrete status-change event (up, down, maintenance, tls_expiring)."""

    timestamp: datetime | None
    event_type: str
    message: str = ""


@dataclass(frozen=True)
class MetricsWindow:
    """Samples for a range plus the bounds the server used, when supplied."""

    samples: tuple[Sample, ...]
    window_from: datetime | None = None
    window_to: datetime | None = None


@dataclass(frozen=True)
class DetailSnapshot:
    """Everything fetched for one detail-view refresh."""

    monitor: MonitorDescriptor
    state: MonitorState | None
    metrics: MetricsWindow
    events: tuple[MonitorEvent, ...] = field(default_factory=tuple)
