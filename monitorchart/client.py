"""HTTP client for the external sample store.

Fetches monitor descriptors, current state, recorded samples and status
events. Responses are parsed into the frozen models from ``models``;
individual malformed samples are dropped rather than failing the fetch.
"""

import asyncio
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

import requests

from .config import StoreConfig
from .models import DetailSnapshot, MetricsWindow, MonitorDescriptor, MonitorEvent, MonitorState, Sample
from .ranges import Range

logger = logging.getLogger(__name__)

# Error messages the store uses in place of a 404 status.
NOT_FOUND_MESSAGES = frozenset({"not found", "common.notfound"})

# Fractional seconds beyond microseconds (e.g. RFC 3339 nanoseconds) are truncated.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class SampleStoreError(Exception):
    """Raised when the sample store cannot satisfy a request."""

    pass


class FetchError(SampleStoreError):
    """Transient failure: network error, server error or malformed response."""

    pass


class MonitorNotFoundError(SampleStoreError):
    """The monitor was deleted or is not accessible."""

    def __init__(self, monitor_id: int, message: str = "not found") -> None:
        super().__init__(f"Monitor {monitor_id}: {message}")
        self.monitor_id = monitor_id


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC.

    Returns:
        A timezone-aware datetime, or None if the value is missing or invalid.
    """
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_sample(data: Any) -> Sample | None:
    """Parse one metrics item into a Sample.

    Accepts either ``ts`` or ``timestamp`` for the time field and either
    ``status_code`` or ``statusCode``.

    Returns:
        The parsed sample, or None if the item is malformed.
    """
    if not isinstance(data, dict):
        return None
    timestamp = parse_timestamp(data.get("ts") or data.get("timestamp"))
    if timestamp is None:
        return None
    latency_raw = data.get("latency_ms")
    try:
        latency = max(0, int(latency_raw or 0))
    except (TypeError, ValueError):
        return None
    status_code = data.get("status_code", data.get("statusCode"))
    error = data.get("error")
    return Sample(
        timestamp=timestamp,
        ok=bool(data.get("ok")),
        latency_ms=latency,
        status_code=_optional_int(status_code),
        error=str(error) if error else None,
    )


def _parse_monitor(data: dict) -> MonitorDescriptor:
    try:
        monitor_id = int(data["id"])
    except (KeyError, TypeError, ValueError):
        raise FetchError("Monitor response is missing a valid 'id'")

    tags = data.get("tags")
    if not isinstance(tags, list):
        tags = []
    return MonitorDescriptor(
        id=monitor_id,
        name=str(data.get("name") or f"#{monitor_id}"),
        type=str(data.get("type") or ""),
        url=data.get("url") or None,
        host=data.get("host") or None,
        port=_optional_int(data.get("port")),
        interval_sec=_optional_int(data.get("interval_sec")),
        is_paused=bool(data.get("is_paused", False)),
        is_active=bool(data.get("is_active", True)),
        tags=tuple(str(t) for t in tags if t),
        sla_target_pct=_optional_float(data.get("sla_target_pct")),
    )


def _parse_state(data: dict) -> MonitorState:
    return MonitorState(
        status=str(data.get("status") or ""),
        last_checked_at=parse_timestamp(data.get("last_checked_at")),
        last_status_code=_optional_int(data.get("last_status_code")),
        last_error=data.get("last_error") or None,
        last_latency_ms=_optional_int(data.get("last_latency_ms")),
        avg_latency_24h=_optional_float(data.get("avg_latency_24h")),
        uptime_24h=_optional_float(data.get("uptime_24h")),
        uptime_30d=_optional_float(data.get("uptime_30d")),
        maintenance_active=bool(data.get("maintenance_active", False)),
    )


def _parse_metrics(data: dict) -> MetricsWindow:
    items = data.get("items")
    if not isinstance(items, list):
        items = []
    samples = []
    dropped = 0
    for item in items:
        sample = parse_sample(item)
        if sample is None:
            dropped += 1
            continue
        samples.append(sample)
    if dropped:
        logger.debug("Dropped %d malformed samples", dropped)
    return MetricsWindow(
        samples=tuple(samples),
        window_from=parse_timestamp(data.get("from")),
        window_to=parse_timestamp(data.get("to")),
    )


def _parse_event(data: Any) -> MonitorEvent | None:
    if not isinstance(data, dict):
        return None
    return MonitorEvent(
        timestamp=parse_timestamp(data.get("ts") or data.get("timestamp")),
        event_type=str(data.get("event_type") or ""),
        message=str(data.get("message") or ""),
    )


class SampleStoreClient:
    """Synchronous client for the sample store REST API.

    Example:
        client = SampleStoreClient(config.store)
        window = client.get_metrics(42, Range.H24)
    """

    def __init__(self, config: StoreConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")
        if config.token:
            self._session.headers["Authorization"] = f"Bearer {config.token}"

    def close(self) -> None:
        self._session.close()

    def _get(self, monitor_id: int, path: str, params: dict | None = None) -> dict:
        """GET a monitor resource and decode its JSON body.

        Raises:
            MonitorNotFoundError: On 404 or a "not found" error body.
            FetchError: On any other network, HTTP or decoding failure.
        """
        url = f"{self._config.base_url.rstrip('/')}/{path}"
        try:
            response = self._session.get(
                url,
                params=params,
                timeout=self._config.timeout,
                verify=self._config.verify_tls,
            )
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}")

        if response.status_code == 404:
            raise MonitorNotFoundError(monitor_id)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            if isinstance(message, str) and message.strip().lower() in NOT_FOUND_MESSAGES:
                raise MonitorNotFoundError(monitor_id, message)
            raise FetchError(f"Request to {url} returned HTTP {response.status_code}")

        if not isinstance(body, dict):
            raise FetchError(f"Request to {url} returned a non-object JSON body")
        return body

    def get_monitor(self, monitor_id: int) -> MonitorDescriptor:
        return _parse_monitor(self._get(monitor_id, f"monitors/{monitor_id}"))

    def get_state(self, monitor_id: int) -> MonitorState:
        return _parse_state(self._get(monitor_id, f"monitors/{monitor_id}/state"))

    def get_metrics(self, monitor_id: int, range_key: Range) -> MetricsWindow:
        """Fetch recorded samples for a range, with the server's window bounds."""
        body = self._get(monitor_id, f"monitors/{monitor_id}/metrics", {"range": Range.parse(range_key).value})
        return _parse_metrics(body)

    def get_events(self, monitor_id: int, range_key: Range) -> list[MonitorEvent]:
        body = self._get(monitor_id, f"monitors/{monitor_id}/events", {"range": Range.parse(range_key).value})
        items = body.get("items")
        events = (_parse_event(item) for item in (items if isinstance(items, list) else []))
        return [e for e in events if e is not None]

    def fetch_detail(self, monitor_id: int, metrics_range: Range, events_range: Range) -> DetailSnapshot:
        """Fetch everything the detail view needs, one request after another."""
        return DetailSnapshot(
            monitor=self.get_monitor(monitor_id),
            state=self.get_state(monitor_id),
            metrics=self.get_metrics(monitor_id, metrics_range),
            events=tuple(self.get_events(monitor_id, events_range)),
        )


class ThreadedFetcher:
    """Runs the blocking client on a single background worker thread.

    A ``requests.Session`` is not safe to share between threads, so every
    fetch goes through one worker and runs its endpoint requests one after
    another. Fetches for different monitors queue behind each other and the
    event loop is never blocked.
    """

    def __init__(self, client: SampleStoreClient, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._client = client
        self._loop = loop
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="monitorchart-fetch")

    async def fetch(self, monitor_id: int, metrics_range: Range, events_range: Range) -> DetailSnapshot:
        loop = self._loop or asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self._client.fetch_detail, monitor_id, metrics_range, events_range
        )

    def close(self) -> None:
        """Stop the worker thread once queued fetches have finished."""
        self._executor.shutdown(wait=True)
