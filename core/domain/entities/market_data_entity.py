# core/domain/entities/market_data_entity.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from core.domain.entities.base_entity import BaseEntity
from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.domain.entities.volume_entity import VolumeWindowsEntity


class LatestPriceEntity(BaseEntity):
    pool: str
    price: float
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class CandleSeriesEntity(BaseEntity):
    """Result of a candle range query (already filtered and limited)."""

    interval: str
    from_timestamp: Optional[int] = None
    to_timestamp: Optional[int] = None
    candles: List[CandleEntity] = Field(default_factory=list)
    count: int = 0
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class PriceStatsEntity(BaseEntity):
    interval: str
    current_price: float = Field(alias="currentPrice")
    start_price: float = Field(alias="startPrice")
    price_change: float = Field(alias="priceChange")
    percentage_change: float = Field(alias="percentageChange")
    percentage_change_formatted: str = Field(alias="percentageChangeFormatted")
    volume_for_interval: float = Field(alias="volumeForInterval")
    volume: VolumeWindowsEntity
    timestamp: int
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class HistoryStatsEntity(BaseEntity):
    count: int = 0
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0


class HistorySamplesEntity(BaseEntity):
    """Raw-history fallback for intervals that have no candles yet."""

    interval: str
    from_timestamp: Optional[int] = None
    to_timestamp: Optional[int] = None
    data_points: List[PriceSampleEntity] = Field(default_factory=list, alias="dataPoints")
    stats: HistoryStatsEntity = Field(default_factory=HistoryStatsEntity)
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class PoolDebugEntity(BaseEntity):
    pool: str
    normalized_pool: str = Field(alias="normalizedPool")
    has_data: bool = Field(alias="hasData")
    initializing: bool = False
    latest_price: Optional[float] = Field(default=None, alias="latestPrice")
    history_length: int = Field(default=0, alias="historyLength")
    ohlc_data_lengths: Dict[str, int] = Field(default_factory=dict, alias="ohlcDataLengths")
    volume: VolumeWindowsEntity = Field(default_factory=VolumeWindowsEntity)
    volume_log_length: int = Field(default=0, alias="volumeLogLength")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")
    all_pool_keys: List[str] = Field(default_factory=list, alias="allPoolKeys")
