"""Selectable lookback ranges and their per-range tables.

Each range drives three independent settings, kept as lookup tables so they
can be tuned without touching the aggregation or scaling code:

- the default lookback used when the server does not supply explicit bounds,
- the spacing of x-axis labels,
- the width of aggregation buckets (zero disables aggregation).
"""

from datetime import timedelta
from enum import Enum


class Range(str, Enum):
    """User-selectable chart range."""

    H1 = "1h"
    H3 = "3h"
    H6 = "6h"
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"

    @classmethod
    def parse(cls, value: "str | Range") -> "Range":
        """Parse a range key such as "24h" (case-insensitive).

        Raises:
            ValueError: If the value is not a known range.
        """
        if isinstance(value, Range):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown range '{value}' (expected one of: {valid})")


DEFAULT_RANGE = Range.H1

RANGE_LOOKBACK: dict[Range, timedelta] = {
    Range.H1: timedelta(hours=1),
    Range.H3: timedelta(hours=3),
    Range.H6: timedelta(hours=6),
    Range.H24: timedelta(hours=24),
    Range.D7: timedelta(days=7),
    Range.D30: timedelta(days=30),
}

RANGE_LABEL_INTERVAL: dict[Range, timedelta] = {
    Range.H1: timedelta(minutes=5),
    Range.H3: timedelta(minutes=15),
    Range.H6: timedelta(minutes=30),
    Range.H24: timedelta(hours=1),
    Range.D7: timedelta(hours=6),
    Range.D30: timedelta(hours=24),
}

# Short ranges are plotted sample-by-sample.
RANGE_BUCKET_WIDTH: dict[Range, timedelta] = {
    Range.H1: timedelta(0),
    Range.H3: timedelta(0),
    Range.H6: timedelta(0),
    Range.H24: timedelta(hours=1),
    Range.D7: timedelta(hours=6),
    Range.D30: timedelta(hours=24),
}

# Ranges whose x labels show the date instead of the time of day.
DATE_LABEL_RANGES = frozenset({Range.D7, Range.D30})


def lookback(range_key: Range) -> timedelta:
    return RANGE_LOOKBACK[Range.parse(range_key)]


def label_interval(range_key: Range) -> timedelta:
    return RANGE_LABEL_INTERVAL[Range.parse(range_key)]


def bucket_width(range_key: Range) -> timedelta:
    return RANGE_BUCKET_WIDTH[Range.parse(range_key)]
