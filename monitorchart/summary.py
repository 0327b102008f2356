"""Detail-view summaries shown next to the chart: status strip, stats, events."""

from dataclasses import dataclass
from datetime import tzinfo
from typing import Sequence

from .formatting import PLACEHOLDER, format_datetime, format_latency, format_uptime, sanitize_error_message
from .models import MonitorDescriptor, MonitorEvent, MonitorState, Sample

STATUS_STRIP_LENGTH = 50

# Monitor types addressed by host (and optional port) rather than by URL.
HOST_TARGET_TYPES = frozenset(
    {
        "tcp",
        "ping",
        "dns",
        "docker",
        "steam",
        "gamedig",
        "mqtt",
        "kafka_producer",
        "mssql",
        "mysql",
        "mongodb",
        "radius",
        "redis",
        "tailscale_ping",
    }
)

EVENT_LABELS = {
    "up": "Up",
    "down": "Down",
    "paused": "Paused",
    "maintenance": "Maintenance",
    "maintenance_start": "Maintenance started",
    "maintenance_end": "Maintenance ended",
    "tls_expiring": "TLS certificate expiring",
}


@dataclass(frozen=True)
class StatCard:
    label: str
    value: str


@dataclass(frozen=True)
class EventRow:
    status_class: str
    label: str
    message: str
    when: str


def status_class(status: str | None) -> str:
    """Map a monitor status or event type to its display class."""
    value = (status or "").lower()
    if value == "up":
        return "up"
    if value == "paused":
        return "paused"
    if value in ("maintenance", "maintenance_start", "maintenance_end"):
        return "maintenance"
    return "down"


def status_label(status: str | None) -> str:
    value = (status or "").lower()
    return EVENT_LABELS.get(value, value.replace("_", " ").capitalize() or PLACEHOLDER)


def target_label(monitor: MonitorDescriptor) -> str:
    """Describe what a monitor checks: ``host:port`` for host-type monitors, else the URL."""
    if monitor.type.lower() in HOST_TARGET_TYPES:
        if monitor.port:
            return f"{monitor.host}:{monitor.port}"
        return monitor.host or PLACEHOLDER
    return monitor.url or monitor.host or PLACEHOLDER


def status_strip(samples: Sequence[Sample], length: int = STATUS_STRIP_LENGTH) -> list[str]:
    """Up/down classes of the most recent samples, oldest first."""
    recent = sorted(samples, key=lambda s: s.timestamp)[-length:]
    if not recent:
        return ["paused"]
    return ["up" if s.ok else "down" for s in recent]


def stats_cards(monitor: MonitorDescriptor, state: MonitorState | None) -> list[StatCard]:
    """Build the headline stat cards for a monitor."""
    last_code = str(state.last_status_code) if state and state.last_status_code else PLACEHOLDER
    last_error = sanitize_error_message(state.last_error) if state and state.last_error else ""
    cards = [
        StatCard("Current", last_error or last_code),
        StatCard("Avg latency 24h", format_latency(state.avg_latency_24h if state else None)),
        StatCard("Uptime 24h", format_uptime(state.uptime_24h if state else None)),
        StatCard("Uptime 30d", format_uptime(state.uptime_30d if state else None)),
    ]
    if monitor.sla_target_pct:
        uptime = (state.uptime_30d if state else None) or 0.0
        cards.append(StatCard("SLA", "OK" if uptime >= monitor.sla_target_pct else "Violated"))
    return cards


def event_rows(events: Sequence[MonitorEvent], tz: tzinfo | None = None) -> list[EventRow]:
    return [
        EventRow(
            status_class=status_class(event.event_type),
            label=status_label(event.event_type),
            message=sanitize_error_message(event.message) if event.message else "",
            when=format_datetime(event.timestamp, tz),
        )
        for event in events
    ]


def monitor_tags(monitor: MonitorDescriptor) -> list[str]:
    """Non-empty tags of a monitor, in the order the store reports them."""
    return [t for t in monitor.tags if t.strip()]


def maintenance_notice(state: MonitorState | None) -> str | None:
    """Notice shown while a maintenance window covers the monitor, else None."""
    if state is None:
        return None
    if state.maintenance_active or (state.status or "").lower() == "maintenance":
        return "Maintenance active"
    return None
