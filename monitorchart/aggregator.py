"""Collapse raw samples into fixed-width time buckets for coarse ranges."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from .models import Bucket, Sample

logger = logging.getLogger(__name__)


@dataclass
class _Accumulator:
    """Mutable running totals for one bucket while samples are assigned."""

    index: int
    up_count: int = 0
    up_latency_sum: int = 0
    sample_count: int = 0
    last_status_code: int | None = None
    last_error: str | None = None

    def add(self, sample: Sample) -> None:
        self.sample_count += 1
        if sample.ok:
            self.up_count += 1
            self.up_latency_sum += max(0, sample.latency_ms)
        if sample.status_code is not None:
            self.last_status_code = sample.status_code
        if sample.error:
            self.last_error = sample.error


def aggregate(
    samples: Sequence[Sample],
    bucket_width: timedelta,
    window_start: datetime,
    window_end: datetime,
) -> list[Sample] | list[Bucket]:
    """Aggregate samples into buckets of ``bucket_width``.

    With a zero bucket width the samples are returned unchanged, one plotted
    item per sample. Otherwise each sample inside ``[window_start, window_end]``
    is assigned to bucket ``floor((timestamp - window_start) / bucket_width)``.

    Windows that received no samples at all are omitted rather than emitted as
    down buckets: the renderer bridges the gap, since "no data" and "down" are
    different things.

    Args:
        samples: Raw samples in any order.
        bucket_width: Width of each bucket; zero disables aggregation.
        window_start: Start of the plotted window.
        window_end: End of the plotted window.

    Returns:
        The input samples (as a list) when not aggregating, otherwise buckets
        sorted by window start.
    """
    if bucket_width <= timedelta(0):
        return list(samples)
    if not samples:
        return []

    accumulators: dict[int, _Accumulator] = {}
    discarded = 0
    for sample in samples:
        ts = sample.timestamp
        if ts < window_start or ts > window_end:
            discarded += 1
            continue
        index = (ts - window_start) // bucket_width
        acc = accumulators.get(index)
        if acc is None:
            acc = accumulators[index] = _Accumulator(index=index)
        acc.add(sample)

    if discarded:
        logger.debug("Discarded %d samples outside the aggregation window", discarded)

    return [
        Bucket(
            window_start=window_start + acc.index * bucket_width,
            window_end=window_start + (acc.index + 1) * bucket_width,
            up_count=acc.up_count,
            up_latency_sum=acc.up_latency_sum,
            sample_count=acc.sample_count,
            last_status_code=acc.last_status_code,
            last_error=acc.last_error,
        )
        for acc in sorted(accumulators.values(), key=lambda a: a.index)
    ]
