# core/services/candle_aggregation_service.py
from __future__ import annotations

import logging
from bisect import bisect_left
from typing import Dict, List, Optional

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.intervals import DATAPOINT_LIMITS, DEFAULT_DATAPOINT_LIMIT, INTERVAL_WIDTHS_MS
from core.services.interval_service import IntervalService


class CandleAggregationService:
    """
    Folds price samples into the per-interval candle series of a pool.

    Behavior, per interval and independently:
      - First sample, or a sample at/after the end of the current candle:
        open a new candle at the sample's bucket start. Its open is the previous
        candle's close (or the sample price when there is none), so continuity
        holds by construction.
      - Sample inside the current candle: update high/low/close, never open.
      - Late sample (bucket older than the current candle): coalesced into the
        existing candle for that bucket by widening high/low only. If no candle
        exists for that bucket the sample is skipped for that interval.
      - The series is then truncated to the interval's datapoint cap (oldest first).
    """

    def __init__(
        self,
        *,
        intervals: Optional[Dict[str, int]] = None,
        datapoint_limits: Optional[Dict[str, int]] = None,
        logger: logging.Logger | None = None,
    ):
        self._intervals = dict(intervals or INTERVAL_WIDTHS_MS)
        self._limits = dict(datapoint_limits or DATAPOINT_LIMITS)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def intervals(self) -> Dict[str, int]:
        return dict(self._intervals)

    def limit_for(self, interval: str) -> int:
        return int(self._limits.get(interval, DEFAULT_DATAPOINT_LIMIT))

    def update(self, series: PriceSeriesEntity, price: float, timestamp: int) -> int:
        """
        Apply one sample to every configured interval of `series`.

        Returns:
            Number of intervals the sample was applied to.
        """
        applied = 0
        for interval, width in self._intervals.items():
            candles = series.candles.setdefault(interval, [])
            if self.apply_sample(candles, price, timestamp, width):
                applied += 1
            else:
                self._logger.debug(
                    "Skipping late sample interval=%s ts=%s (no candle for bucket %s)",
                    interval,
                    timestamp,
                    IntervalService.bucket_start(timestamp, width),
                )
            self.truncate(candles, self.limit_for(interval))
        return applied

    @staticmethod
    def apply_sample(candles: List[CandleEntity], price: float, timestamp: int, width_ms: int) -> bool:
        """
        Apply the bucketing rule to a single candle list in place.

        Returns:
            False when the sample was a late one with no matching bucket.
        """
        price = float(price)
        ts = int(timestamp)
        bucket = IntervalService.bucket_start(ts, width_ms)

        if not candles or ts >= candles[-1].timestamp + width_ms:
            open_price = candles[-1].close if candles else price
            candles.append(
                CandleEntity(
                    timestamp=bucket,
                    open=open_price,
                    high=max(open_price, price),
                    low=min(open_price, price),
                    close=price,
                )
            )
            return True

        current = candles[-1]
        if bucket >= current.timestamp:
            current.high = max(current.high, price)
            current.low = min(current.low, price)
            current.close = price
            return True

        idx = bisect_left(candles, bucket, key=lambda c: c.timestamp)
        if idx < len(candles) and candles[idx].timestamp == bucket:
            target = candles[idx]
            target.high = max(target.high, price)
            target.low = min(target.low, price)
            return True

        return False

    @staticmethod
    def truncate(candles: List[CandleEntity], limit: int) -> int:
        """Drop the oldest candles above `limit`. Returns how many were dropped."""
        excess = len(candles) - int(limit)
        if excess > 0:
            del candles[:excess]
            return excess
        return 0
