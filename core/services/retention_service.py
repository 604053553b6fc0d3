# core/services/retention_service.py
from __future__ import annotations

import logging
import time
from bisect import bisect_left
from typing import Dict, Optional

from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.intervals import DATAPOINT_LIMITS, DAY_MS, DEFAULT_DATAPOINT_LIMIT, MINUTE_MS

HISTORY_RETENTION_MS = DAY_MS + MINUTE_MS

# Time-based bounds. Intervals not listed here are bounded by count only.
CANDLE_MAX_AGE_MS: Dict[str, int] = {
    "1h": 7 * DAY_MS,
    "24h": 30 * DAY_MS,
    "1w": 2 * 365 * DAY_MS,
    "1M": 10 * 365 * DAY_MS,
}


class RetentionService:
    """
    Bounds a pool's memory footprint after each ingestion.

    - raw history: older than 24h + 1 minute is dropped
    - 1h / 24h / 1w / 1M candles: dropped past their max age
    - every interval: capped at its datapoint limit (oldest dropped)

    Lists are ascending, so everything is removed from the head.
    """

    def __init__(
        self,
        *,
        history_retention_ms: int = HISTORY_RETENTION_MS,
        candle_max_age_ms: Optional[Dict[str, int]] = None,
        datapoint_limits: Optional[Dict[str, int]] = None,
        logger: logging.Logger | None = None,
    ):
        self._history_retention_ms = int(history_retention_ms)
        self._max_age = dict(CANDLE_MAX_AGE_MS if candle_max_age_ms is None else candle_max_age_ms)
        self._limits = dict(datapoint_limits or DATAPOINT_LIMITS)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def prune(self, series: PriceSeriesEntity, now_ms: Optional[int] = None) -> int:
        """
        Prune `series` in place.

        Returns:
            Number of history samples and candles removed.
        """
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        removed = 0

        cutoff = now - self._history_retention_ms
        idx = bisect_left(series.history, cutoff, key=lambda s: s.timestamp)
        if idx:
            del series.history[:idx]
            removed += idx

        for interval, candles in series.candles.items():
            max_age = self._max_age.get(interval)
            if max_age is not None:
                idx = bisect_left(candles, now - max_age, key=lambda c: c.timestamp)
                if idx:
                    del candles[:idx]
                    removed += idx

            excess = len(candles) - int(self._limits.get(interval, DEFAULT_DATAPOINT_LIMIT))
            if excess > 0:
                del candles[:excess]
                removed += excess

        if removed:
            self._logger.debug("Pruned %s entries pool=%s", removed, series.display_id)
        return removed
