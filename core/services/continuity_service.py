# core/services/continuity_service.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.services.candle_aggregation_service import CandleAggregationService


class ContinuityService:
    """
    Enforces candle continuity and rebuilds short series from raw history.

    - validate_and_repair(): candle[i].open := candle[i-1].close wherever they
      differ. Runs on every snapshot load and before every save.
    - backfill(): replays the pool's raw history through the aggregation rule
      for an interval that holds fewer than 2 candles.
    """

    MIN_CANDLES = 2

    def __init__(
        self,
        *,
        aggregator: CandleAggregationService | None = None,
        logger: logging.Logger | None = None,
    ):
        self._aggregator = aggregator or CandleAggregationService()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def repair_candles(candles: List[CandleEntity]) -> int:
        """
        Repair continuity of a single candle list in place.

        When an open is rewritten, high/low are widened so the candle still
        contains its open.
        """
        fixes = 0
        for i in range(1, len(candles)):
            prev = candles[i - 1]
            curr = candles[i]
            if prev.close != curr.open:
                curr.open = prev.close
                curr.high = max(curr.high, curr.open)
                curr.low = min(curr.low, curr.open)
                fixes += 1
        return fixes

    def validate_and_repair(self, series: PriceSeriesEntity, *, pool_id: Optional[str] = None) -> int:
        """
        Repair every interval of `series`.

        Returns:
            Total number of candles whose open was rewritten.
        """
        total = 0
        per_interval: Dict[str, int] = {}
        for interval, candles in series.candles.items():
            fixes = self.repair_candles(candles)
            if fixes:
                per_interval[interval] = fixes
                total += fixes

        if total:
            self._logger.info(
                "Fixed %s OHLC continuity issues pool=%s intervals=%s",
                total,
                pool_id or series.display_id,
                per_interval,
            )
        return total

    def backfill(self, series: PriceSeriesEntity, interval: str) -> bool:
        """
        Rebuild one interval from raw history if it holds fewer than 2 candles.

        Returns:
            True if the interval was rebuilt, False if it was left untouched.
        """
        existing = series.candles.get(interval) or []
        if len(existing) >= self.MIN_CANDLES or not series.history:
            return False

        width = self._aggregator.intervals[interval]
        rebuilt: List[CandleEntity] = []
        for sample in sorted(series.history, key=lambda s: s.timestamp):
            self._aggregator.apply_sample(rebuilt, sample.price, sample.timestamp, width)

        self._aggregator.truncate(rebuilt, self._aggregator.limit_for(interval))
        series.candles[interval] = rebuilt

        self._logger.info("Backfilled %s candles for %s interval", len(rebuilt), interval)
        return True

    def backfill_all(self, series: PriceSeriesEntity) -> List[str]:
        """
        Backfill every configured interval.

        Returns:
            The intervals that were rebuilt.
        """
        return [interval for interval in self._aggregator.intervals if self.backfill(series, interval)]
