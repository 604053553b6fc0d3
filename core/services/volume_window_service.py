# core/services/volume_window_service.py
from __future__ import annotations

import logging
import time
from bisect import bisect_left, insort
from typing import Dict, Optional

from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.entities.volume_entity import VolumeSampleEntity, VolumeWindowsEntity
from core.domain.intervals import DAY_MS

VOLUME_WINDOWS_MS: Dict[str, int] = {
    "24h": DAY_MS,
    "7d": 7 * DAY_MS,
    "30d": 30 * DAY_MS,
}

VOLUME_LOG_RETENTION_MS = VOLUME_WINDOWS_MS["30d"]


class VolumeWindowService:
    """
    Tracks rolling USD volume per pool.

    Each event is inserted into the pool's volume log (kept ascending by
    timestamp so late events land in place), added to the running total, and
    the 24h/7d/30d windows are recomputed from the log from scratch. Entries
    older than 30 days are then evicted from the head of the log.
    """

    def __init__(self, *, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def record_volume(
        self,
        series: PriceSeriesEntity,
        amount: float,
        timestamp: int,
        now_ms: Optional[int] = None,
    ) -> VolumeWindowsEntity:
        sample = VolumeSampleEntity(amount=float(amount), timestamp=int(timestamp))
        insort(series.volume_log, sample, key=lambda s: s.timestamp)
        series.volume.total += sample.amount

        self.recompute(series, now_ms)
        return series.volume

    def recompute(self, series: PriceSeriesEntity, now_ms: Optional[int] = None) -> VolumeWindowsEntity:
        """
        Recompute the rolling windows from the log and evict expired entries.
        """
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        log = series.volume_log

        sums = {
            window: sum(s.amount for s in log if now - width <= s.timestamp <= now)
            for window, width in VOLUME_WINDOWS_MS.items()
        }
        series.volume.last_24h = sums["24h"]
        series.volume.last_7d = sums["7d"]
        series.volume.last_30d = sums["30d"]

        idx = bisect_left(log, now - VOLUME_LOG_RETENTION_MS, key=lambda s: s.timestamp)
        if idx:
            del log[:idx]
            self._logger.debug("Evicted %s volume entries pool=%s", idx, series.display_id)
        return series.volume
