"""Display formatting helpers shared by the tooltip, stats and event list."""

import math
from datetime import datetime, tzinfo

PLACEHOLDER = "-"
GENERIC_ERROR = "Error"


def format_latency(value: float | None) -> str:
    """Format a latency as whole milliseconds, e.g. ``"42 ms"``."""
    if value is None:
        return PLACEHOLDER
    return f"{int(math.floor(value + 0.5))} ms"


def format_uptime(value: float | None) -> str:
    """Format an uptime percentage with two decimals, e.g. ``"99.95%"``."""
    if value is None:
        return PLACEHOLDER
    return f"{value:.2f}%"


def format_datetime(value: datetime | None, tz: tzinfo | None = None) -> str:
    """Format a timestamp as ``dd.mm.yyyy HH:MM`` in ``tz`` (local time if None)."""
    if value is None:
        return PLACEHOLDER
    return value.astimezone(tz).strftime("%d.%m.%Y %H:%M")


def sanitize_error_message(message: str | None) -> str:
    """Normalize raw error text for display.

    Trailing colons left by wrapped errors are removed and ``status_NNN``
    codes are shown as ``HTTP NNN``. Blank input becomes a generic label.
    """
    if not message:
        return GENERIC_ERROR
    text = str(message).strip()
    if text.endswith(":"):
        text = text[:-1].strip()
    if not text:
        return GENERIC_ERROR
    if text.startswith("status_"):
        return f"HTTP {text[len('status_'):]}"
    return text
