from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AliasedOutDTO(BaseModel):
    """
    Output DTO whose camelCase aliases are used in responses while still
    accepting snake_case field names (model_validate(entity.model_dump())).
    """

    model_config = ConfigDict(populate_by_name=True)


class CandleOutDTO(BaseModel):
    timestamp: int
    open: float
    high: float
    low: float
    close: float


class PriceSampleOutDTO(BaseModel):
    price: float
    timestamp: int


class LatestPriceOutDTO(AliasedOutDTO):
    pool: str
    latest: float
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class CandleSeriesOutDTO(AliasedOutDTO):
    """
    Candles of one interval after range filtering and limiting.
    """

    interval: str
    from_timestamp: Optional[int] = None
    to_timestamp: Optional[int] = None
    count: int = 0
    candles: List[CandleOutDTO] = Field(default_factory=list, alias="ohlc")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class AllCandlesOutDTO(AliasedOutDTO):
    pool: str
    ohlc: Dict[str, List[CandleOutDTO]] = Field(default_factory=dict)
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class IntervalsOutDTO(AliasedOutDTO):
    """
    One list per interval: candles when the interval has any, else sampled raw history.
    """

    intervals: Dict[str, List[Union[CandleOutDTO, PriceSampleOutDTO]]] = Field(default_factory=dict)
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class HistoryStatsOutDTO(BaseModel):
    count: int = 0
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0


class HistorySamplesOutDTO(AliasedOutDTO):
    interval: str
    from_timestamp: Optional[int] = None
    to_timestamp: Optional[int] = None
    data_points: List[PriceSampleOutDTO] = Field(default_factory=list, alias="dataPoints")
    stats: HistoryStatsOutDTO = Field(default_factory=HistoryStatsOutDTO)
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class VolumeWindowsOutDTO(AliasedOutDTO):
    last_24h: float = Field(default=0.0, alias="24h")
    last_7d: float = Field(default=0.0, alias="7d")
    last_30d: float = Field(default=0.0, alias="30d")
    total: float = 0.0
    last_reset: Optional[int] = Field(default=None, alias="lastReset")


class VolumeOutDTO(BaseModel):
    pool: str
    volume: VolumeWindowsOutDTO


class PriceStatsOutDTO(AliasedOutDTO):
    interval: str
    current_price: float = Field(alias="currentPrice")
    start_price: float = Field(alias="startPrice")
    price_change: float = Field(alias="priceChange")
    percentage_change: float = Field(alias="percentageChange")
    percentage_change_formatted: str = Field(alias="percentageChangeFormatted")
    volume_for_interval: float = Field(alias="volumeForInterval")
    volume: VolumeWindowsOutDTO
    timestamp: int
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")


class PoolDebugOutDTO(AliasedOutDTO):
    pool: str
    normalized_pool: str = Field(alias="normalizedPool")
    has_data: bool = Field(alias="hasData")
    initializing: bool = False
    latest_price: Optional[float] = Field(default=None, alias="latestPrice")
    history_length: int = Field(default=0, alias="historyLength")
    ohlc_data_lengths: Dict[str, int] = Field(default_factory=dict, alias="ohlcDataLengths")
    volume: VolumeWindowsOutDTO = Field(default_factory=VolumeWindowsOutDTO)
    volume_log_length: int = Field(default=0, alias="volumeLogLength")
    last_updated: Optional[int] = Field(default=None, alias="lastUpdated")
    all_pool_keys: List[str] = Field(default_factory=list, alias="allPoolKeys")
