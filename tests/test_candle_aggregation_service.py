"""Tests for CandleAggregationService.

Covers:
- bucketing of samples inside / across candle boundaries
- continuity of every interval after arbitrary in-order updates
- count cap per interval
- late samples: coalesced into an existing bucket or skipped
"""

from __future__ import annotations

import random

from core.domain.intervals import DEFAULT_DATAPOINT_LIMIT, INTERVALS, MINUTE_MS
from core.services.candle_aggregation_service import CandleAggregationService

from tests.conftest import T0


def _assert_continuous(candles):
    for prev, curr in zip(candles, candles[1:]):
        assert curr.timestamp > prev.timestamp
        assert curr.open == prev.close


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------
def test_first_sample_opens_candle_at_bucket_start(aggregator, series):
    """The first sample opens a candle whose OHLC all equal the price."""
    aggregator.update(series, 10.0, T0 + 12_345)

    candle = series.candles["1m"][0]
    assert candle.timestamp == T0
    assert (candle.open, candle.high, candle.low, candle.close) == (10.0, 10.0, 10.0, 10.0)
    assert all(len(series.candles[i]) == 1 for i in INTERVALS)


def test_samples_across_minute_boundary(series):
    """(10,t0) (12,t0+30s) (9,t0+90s): the third sample lands in the next minute bucket."""
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})

    aggregator.update(series, 10.0, T0)
    aggregator.update(series, 12.0, T0 + 30_000)
    aggregator.update(series, 9.0, T0 + 90_000)

    first, second = series.candles["1m"]
    assert first.timestamp == T0
    assert (first.open, first.high, first.low, first.close) == (10.0, 12.0, 10.0, 12.0)
    assert second.timestamp == T0 + MINUTE_MS
    assert second.open == 12.0
    assert second.close == 9.0
    assert second.low == 9.0
    assert second.high == 12.0


def test_samples_within_one_minute_then_next_bucket(series):
    """Three samples in one bucket form one candle; the next bucket opens at the last close."""
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})

    aggregator.update(series, 10.0, T0)
    aggregator.update(series, 12.0, T0 + 30_000)
    aggregator.update(series, 9.0, T0 + 50_000)
    aggregator.update(series, 9.5, T0 + 65_000)

    first, second = series.candles["1m"]
    assert (first.open, first.high, first.low, first.close) == (10.0, 12.0, 9.0, 9.0)
    assert second.timestamp == T0 + MINUTE_MS
    assert second.open == 9.0


def test_gap_opens_candle_at_sample_bucket(series):
    """After a gap the new candle starts at the sample's bucket, no filler candles."""
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})

    aggregator.update(series, 10.0, T0)
    aggregator.update(series, 11.0, T0 + 10 * MINUTE_MS + 5_000)

    candles = series.candles["1m"]
    assert [c.timestamp for c in candles] == [T0, T0 + 10 * MINUTE_MS]
    assert candles[1].open == 10.0
    assert candles[1].low == 10.0
    assert candles[1].high == 11.0


def test_continuity_holds_after_random_walk(aggregator, series):
    """Every interval stays continuous and bounded by its cap."""
    rng = random.Random(7)
    price = 100.0
    ts = T0
    for _ in range(2_000):
        ts += rng.randint(1_000, 120_000)
        price = max(0.01, price * (1 + rng.uniform(-0.02, 0.02)))
        aggregator.update(series, price, ts)

    for interval in INTERVALS:
        candles = series.candles[interval]
        assert 1 <= len(candles) <= DEFAULT_DATAPOINT_LIMIT
        _assert_continuous(candles)
        for c in candles:
            assert c.low <= min(c.open, c.close)
            assert c.high >= max(c.open, c.close)


def test_count_cap_drops_oldest(series):
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS}, datapoint_limits={"1m": 5})

    for i in range(8):
        aggregator.update(series, 1.0 + i, T0 + i * MINUTE_MS)

    candles = series.candles["1m"]
    assert len(candles) == 5
    assert candles[0].timestamp == T0 + 3 * MINUTE_MS
    assert candles[-1].close == 8.0


# ---------------------------------------------------------------------------
# Late samples
# ---------------------------------------------------------------------------
def test_late_sample_widens_existing_bucket(series):
    """A late sample for an older bucket widens high/low only."""
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})
    aggregator.update(series, 10.0, T0)
    aggregator.update(series, 11.0, T0 + MINUTE_MS)

    applied = aggregator.update(series, 20.0, T0 + 30_000)

    first, second = series.candles["1m"]
    assert applied == 1
    assert first.high == 20.0
    assert first.close == 10.0
    assert second.open == first.close
    assert len(series.candles["1m"]) == 2


def test_late_sample_without_bucket_is_skipped(series):
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})
    aggregator.update(series, 10.0, T0 + 5 * MINUTE_MS)

    applied = aggregator.update(series, 99.0, T0)

    assert applied == 0
    assert len(series.candles["1m"]) == 1
    assert series.candles["1m"][0].high == 10.0


def test_late_sample_inside_current_bucket_updates_close(series):
    """A sample older than the last one but inside the current candle still updates it."""
    aggregator = CandleAggregationService(intervals={"1m": MINUTE_MS})
    aggregator.update(series, 10.0, T0 + 40_000)

    aggregator.update(series, 8.0, T0 + 10_000)

    candle = series.candles["1m"][0]
    assert candle.low == 8.0
    assert candle.close == 8.0
