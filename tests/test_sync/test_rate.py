"""Tests for the throughput rate calculator."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from syncdash.models.system import ConnectionTotal
from syncdash.sync.rate import ByteSample, in_out_rates, rate

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class TestRate:
    def test_bytes_per_second(self):
        before = ByteSample(1000, T0)
        after = ByteSample(11000, T0 + timedelta(seconds=10))
        assert rate(before, after) == 1000

    def test_no_prior_sample(self):
        after = ByteSample(5000, T0 + timedelta(seconds=10))
        assert rate(ByteSample(0, T0), after) == 0

    def test_same_instant(self):
        assert rate(ByteSample(1000, T0), ByteSample(5000, T0)) == 0

    def test_sub_second_gap_counts_as_zero(self):
        after = ByteSample(5000, T0 + timedelta(milliseconds=900))
        assert rate(ByteSample(1000, T0), after) == 0

    def test_whole_seconds_truncated(self):
        # 2.9 s elapsed is treated as 2 s.
        after = ByteSample(1000 + 3000, T0 + timedelta(seconds=2.9))
        assert rate(ByteSample(1000, T0), after) == 1500

    def test_result_truncated_toward_zero(self):
        after = ByteSample(1000 + 10, T0 + timedelta(seconds=3))
        assert rate(ByteSample(1000, T0), after) == 3

    def test_counter_reset_gives_negative(self):
        after = ByteSample(500, T0 + timedelta(seconds=5))
        assert rate(ByteSample(1000, T0), after) == -100


class TestInOutRates:
    def test_both_directions(self):
        before = ConnectionTotal(at=T0, in_bytes_total=1000, out_bytes_total=2000)
        after = ConnectionTotal(
            at=T0 + timedelta(seconds=10), in_bytes_total=11000, out_bytes_total=2500,
        )
        assert in_out_rates(before, after) == (1000, 50)

    def test_missing_sample(self):
        after = ConnectionTotal(at=T0, in_bytes_total=1000, out_bytes_total=1000)
        assert in_out_rates(None, after) == (0, 0)
        assert in_out_rates(after, None) == (0, 0)
