"""Tests for the bucket aggregator."""

from datetime import timedelta

from conftest import BASE_TIME, at, make_sample

from monitorchart.aggregator import aggregate
from monitorchart.models import Bucket

HOUR = timedelta(hours=1)
WINDOW_END = BASE_TIME + timedelta(hours=24)


class TestAggregatePassthrough:
    """Tests for ranges that plot raw samples."""

    def test_zero_width_returns_samples_unchanged(self) -> None:
        """A zero bucket width returns the input samples as-is."""
        samples = [make_sample(5), make_sample(1, ok=False)]
        result = aggregate(samples, timedelta(0), BASE_TIME, WINDOW_END)
        assert result == samples

    def test_empty_input_yields_no_buckets(self) -> None:
        """No samples produce no buckets."""
        assert aggregate([], HOUR, BASE_TIME, WINDOW_END) == []


class TestAggregateBuckets:
    """Tests for fixed-width bucketing."""

    def test_samples_in_one_window_share_a_bucket(self) -> None:
        """Samples within the same hour collapse into one bucket."""
        samples = [make_sample(10, latency_ms=30), make_sample(20, latency_ms=31), make_sample(50, latency_ms=50)]
        buckets = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)

        assert len(buckets) == 1
        bucket = buckets[0]
        assert isinstance(bucket, Bucket)
        assert bucket.sample_count == 3
        assert bucket.up_count == 3
        assert bucket.window_start == BASE_TIME
        assert bucket.window_end == BASE_TIME + HOUR

    def test_mean_latency_rounds_half_up(self) -> None:
        """Bucket latency is the mean of up samples rounded half-up."""
        samples = [make_sample(10, latency_ms=30), make_sample(20, latency_ms=31)]
        bucket = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.latency_ms == 31

    def test_down_samples_excluded_from_latency_mean(self) -> None:
        """Latency of failed checks does not contribute to the mean."""
        samples = [make_sample(10, latency_ms=40), make_sample(20, ok=False, latency_ms=9000)]
        bucket = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.ok is True
        assert bucket.latency_ms == 40
        assert bucket.sample_count == 2

    def test_bucket_with_no_up_samples_is_down(self) -> None:
        """A bucket whose samples all failed is down with zero latency."""
        samples = [make_sample(10, ok=False, latency_ms=500), make_sample(20, ok=False)]
        bucket = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.ok is False
        assert bucket.latency_ms == 0

    def test_one_up_sample_makes_bucket_up(self) -> None:
        """A single success among failures keeps the bucket up."""
        samples = [make_sample(5, ok=False), make_sample(15, ok=True, latency_ms=70), make_sample(25, ok=False)]
        bucket = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.ok is True
        assert bucket.latency_ms == 70

    def test_buckets_sorted_by_window(self) -> None:
        """Buckets come out ordered by time even for unordered input."""
        samples = [make_sample(190), make_sample(10), make_sample(70)]
        buckets = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)
        assert [b.window_start for b in buckets] == [BASE_TIME, BASE_TIME + HOUR, BASE_TIME + 3 * HOUR]

    def test_empty_windows_are_omitted(self) -> None:
        """Hours without samples produce no bucket."""
        samples = [make_sample(10), make_sample(190)]
        buckets = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)
        assert len(buckets) == 2

    def test_samples_outside_window_are_discarded(self) -> None:
        """Samples before the start or after the end are dropped."""
        samples = [make_sample(-10), make_sample(10), make_sample(24 * 60 + 5)]
        buckets = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)
        assert len(buckets) == 1
        assert buckets[0].sample_count == 1

    def test_bucket_timestamp_is_window_midpoint(self) -> None:
        """A bucket is plotted at the middle of its window."""
        bucket = aggregate([make_sample(10)], HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.timestamp == at(30)

    def test_keeps_latest_status_code_and_error(self) -> None:
        """Latest non-empty status code and error are carried on the bucket."""
        samples = [
            make_sample(5, ok=False, status_code=500, error="status_500"),
            make_sample(10, ok=False, status_code=503, error=None),
            make_sample(15, ok=False, status_code=None, error="timeout"),
        ]
        bucket = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)[0]
        assert bucket.status_code == 503
        assert bucket.error == "timeout"

    def test_sample_counts_are_preserved(self) -> None:
        """Every in-window sample lands in exactly one bucket."""
        samples = [make_sample(m, ok=m % 3 != 0) for m in range(0, 24 * 60, 7)]
        buckets = aggregate(samples, HOUR, BASE_TIME, WINDOW_END)
        assert sum(b.sample_count for b in buckets) == len(samples)
        assert sum(b.up_count for b in buckets) == sum(1 for s in samples if s.ok)
