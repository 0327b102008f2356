"""Axis scale planning for the latency chart.

The y-axis ceiling is picked from a fixed ladder so that it stays put while
latency fluctuates slightly between refreshes; the tick step is then snapped
to a "nice" 1/2/5/10 value. The x-axis tick spacing depends only on the range.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from .ranges import Range, label_interval

# (upper bound on peak latency, ceiling) pairs, checked in order.
LATENCY_CEILING_LADDER: tuple[tuple[int, int], ...] = (
    (10, 50),
    (50, 100),
    (100, 200),
)

# Beyond the ladder the ceiling doubles from this floor until it covers the peak.
LATENCY_CEILING_FLOOR = 200

# Leading digits a step is snapped up to, after normalising to a power of ten.
NICE_STEP_DIGITS: tuple[int, ...] = (1, 2, 5, 10)

# Target number of y-axis intervals before snapping the step.
Y_AXIS_DIVISIONS = 5


@dataclass(frozen=True)
class YAxisPlan:
    """Y-axis scale.

    Attributes:
        ceiling: Ladder ceiling for the observed peak latency.
        step: Distance between tick marks (ms).
        max: Top of the axis; a multiple of ``step`` that is >= ``ceiling``.
    """

    ceiling: int
    step: int
    max: int

    @property
    def ticks(self) -> list[int]:
        """Tick values from 0 to ``max`` inclusive."""
        return list(range(0, self.max + 1, self.step))


def latency_ceiling(peak: float) -> int:
    """Map a peak latency to a round axis ceiling."""
    value = max(0.0, float(peak or 0))
    for bound, ceiling in LATENCY_CEILING_LADDER:
        if value <= bound:
            return ceiling
    limit = LATENCY_CEILING_FLOOR
    while limit < value:
        limit *= 2
    return limit


def nice_step(raw: float) -> int:
    """Snap a raw step up to 1, 2, 5 or 10 times a power of ten."""
    value = max(1.0, float(raw or 1))
    power = 10 ** math.floor(math.log10(value))
    base = value / power
    for digit in NICE_STEP_DIGITS:
        if base <= digit:
            return int(digit * power)
    return int(NICE_STEP_DIGITS[-1] * power)


def plan_y_axis(up_latencies: Iterable[float]) -> YAxisPlan:
    """Plan the y-axis from the latencies of plotted up points.

    An empty input still yields a usable axis (ceiling 50).
    """
    peak = max((max(0.0, float(v)) for v in up_latencies), default=0.0)
    ceiling = latency_ceiling(peak)
    step = nice_step(max(1.0, ceiling / Y_AXIS_DIVISIONS))
    top = max(step, math.ceil(ceiling / step) * step)
    return YAxisPlan(ceiling=ceiling, step=step, max=top)


def plan_x_axis(range_key: Range) -> timedelta:
    """Return the x-axis tick spacing for a range."""
    return label_interval(range_key)
