"""Nearest-sample lookup for the chart hover inspector."""

from bisect import bisect_left
from datetime import tzinfo
from typing import Sequence

from .formatting import PLACEHOLDER, format_datetime, format_latency, sanitize_error_message
from .models import PlotPoint


def nearest(points: Sequence[PlotPoint], cursor_x: float) -> PlotPoint | None:
    """Return the point horizontally closest to ``cursor_x``.

    Points must be sorted by x. Ties go to the earliest point.

    Returns:
        The closest point, or None if ``points`` is empty.
    """
    if not points:
        return None
    return HoverIndex(points).nearest(cursor_x)


class HoverIndex:
    """Binary-search index over plotted points for repeated cursor queries."""

    def __init__(self, points: Sequence[PlotPoint]) -> None:
        self._points = list(points)
        self._xs = [p.x for p in self._points]

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> list[PlotPoint]:
        return list(self._points)

    def nearest(self, cursor_x: float) -> PlotPoint | None:
        xs = self._xs
        if not xs:
            return None
        idx = bisect_left(xs, cursor_x)
        if idx == 0:
            return self._points[0]
        if idx == len(xs):
            return self._points[bisect_left(xs, xs[-1])]
        left, right = xs[idx - 1], xs[idx]
        if cursor_x - left <= right - cursor_x:
            # Step back to the first of any equal-x run.
            return self._points[bisect_left(xs, left)]
        return self._points[idx]


def tooltip_text(point: PlotPoint, tz: tzinfo | None = None) -> str:
    """Build the multi-line tooltip shown for a hovered point."""
    code = f"HTTP {point.status_code}" if point.status_code else PLACEHOLDER
    error = sanitize_error_message(point.error) if point.error else PLACEHOLDER
    return "\n".join(
        [
            f"Time: {format_datetime(point.timestamp, tz)}",
            f"Latency: {format_latency(point.latency_ms)}",
            f"Status: {'Up' if point.ok else 'Down'}",
            f"Code: {code}",
            f"Error: {error}",
        ]
    )
