# core/domain/entities/price_series_entity.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field, model_validator

from core.domain.entities.base_entity import BaseEntity
from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.domain.entities.volume_entity import VolumeSampleEntity, VolumeWindowsEntity
from core.domain.intervals import INTERVALS, empty_candle_map


class PriceSeriesEntity(BaseEntity):
    """
    Aggregation state of a single pool.

    - history: raw samples, ascending by timestamp, bounded to ~24h.
    - candles: interval tag -> candles ascending by bucket start ("ohlc" in snapshots).
    - volume: rolling USD aggregates.
    - volume_log: bounded event log backing the rolling aggregates. It is not
      dumped with the series; snapshots carry it in the top-level volumeHistory.
    """

    display_id: Optional[str] = Field(default=None, alias="pool")

    latest_price: Optional[float] = Field(default=None, alias="latestPrice")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")

    history: List[PriceSampleEntity] = Field(default_factory=list)
    candles: Dict[str, List[CandleEntity]] = Field(default_factory=empty_candle_map, alias="ohlc")

    volume: VolumeWindowsEntity = Field(default_factory=VolumeWindowsEntity)
    volume_log: List[VolumeSampleEntity] = Field(default_factory=list, exclude=True)

    @model_validator(mode="after")
    def _ensure_all_intervals(self) -> "PriceSeriesEntity":
        for interval in INTERVALS:
            self.candles.setdefault(interval, [])
        return self
