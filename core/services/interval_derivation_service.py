# core/services/interval_derivation_service.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.intervals import DATAPOINT_LIMITS, DEFAULT_DATAPOINT_LIMIT, INTERVAL_WIDTHS_MS
from core.services.interval_service import IntervalService


class IntervalDerivationService:
    """
    Builds coarser candles by re-bucketing an existing finer candle series.

    Raw history is never touched. Output is not continuity-corrected; run
    ContinuityService.validate_and_repair() afterwards.
    """

    def __init__(self, *, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def derive_interval(source_candles: Iterable[CandleEntity], target_width_ms: int) -> List[CandleEntity]:
        """
        Merge source candles into target buckets.

        Per target bucket: open from the chronologically first source candle,
        close from the chronologically last one, high=max(highs), low=min(lows).
        The source does not need to be sorted.
        """
        merged: Dict[int, CandleEntity] = {}
        first_ts: Dict[int, int] = {}
        last_ts: Dict[int, int] = {}

        for candle in source_candles:
            bucket = IntervalService.bucket_start(candle.timestamp, target_width_ms)
            target = merged.get(bucket)
            if target is None:
                merged[bucket] = CandleEntity(
                    timestamp=bucket,
                    open=candle.open,
                    high=candle.high,
                    low=candle.low,
                    close=candle.close,
                )
                first_ts[bucket] = last_ts[bucket] = candle.timestamp
                continue

            target.high = max(target.high, candle.high)
            target.low = min(target.low, candle.low)
            if candle.timestamp >= last_ts[bucket]:
                target.close = candle.close
                last_ts[bucket] = candle.timestamp
            if candle.timestamp < first_ts[bucket]:
                target.open = candle.open
                first_ts[bucket] = candle.timestamp

        return sorted(merged.values(), key=lambda c: c.timestamp)

    def derive_from_existing(self, series: PriceSeriesEntity) -> List[str]:
        """
        Populate 6h/12h from 1h, or 1h then 6h/12h from 5m when 1h is empty.

        A target is only replaced when the derived series is longer than what it
        already holds, so history accumulated live is never shortened.

        Returns:
            The intervals that were replaced.
        """
        replaced: List[str] = []

        if series.candles.get("1h"):
            source = "1h"
        elif series.candles.get("5m"):
            if self._replace_if_longer(series, "1h", self._derive(series.candles["5m"], "1h")):
                replaced.append("1h")
            source = "1h"
        else:
            return replaced

        for target in ("6h", "12h"):
            if self._replace_if_longer(series, target, self._derive(series.candles[source], target)):
                replaced.append(target)

        if replaced:
            self._logger.info(
                "Generated intervals %s from %s data (%s)",
                replaced,
                source,
                {k: len(series.candles[k]) for k in replaced},
            )
        return replaced

    def _derive(self, source: List[CandleEntity], target: str) -> List[CandleEntity]:
        derived = self.derive_interval(source, INTERVAL_WIDTHS_MS[target])
        limit = int(DATAPOINT_LIMITS.get(target, DEFAULT_DATAPOINT_LIMIT))
        return derived[-limit:]

    @staticmethod
    def _replace_if_longer(series: PriceSeriesEntity, interval: str, derived: List[CandleEntity]) -> bool:
        if len(derived) <= len(series.candles.get(interval) or []):
            return False
        series.candles[interval] = derived
        return True
