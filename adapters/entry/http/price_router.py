from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from core.domain.errors import NotFoundError
from core.domain.intervals import INTERVALS
from core.services.interval_service import IntervalService
from core.usecases.query_market_data_use_case import QueryMarketDataUseCase
from workers.pool_supervisor import PoolSupervisor

from .deps import get_pool_address, get_supervisor
from .dtos.price_dtos import (
    AllCandlesOutDTO,
    CandleSeriesOutDTO,
    HistorySamplesOutDTO,
    IntervalsOutDTO,
    LatestPriceOutDTO,
    PoolDebugOutDTO,
    PriceStatsOutDTO,
    VolumeOutDTO,
)

router = APIRouter(prefix="/api", tags=["price"])


def get_query_uc(supervisor: PoolSupervisor = Depends(get_supervisor)) -> QueryMarketDataUseCase:
    return supervisor.query_uc


async def _latest(pool: str, query_uc: QueryMarketDataUseCase) -> LatestPriceOutDTO:
    latest = await query_uc.get_latest(pool)
    return LatestPriceOutDTO(pool=pool, latest=latest.price, last_updated=latest.last_updated)


async def _candle_series(
    pool: str,
    interval: Optional[str],
    from_timestamp: Optional[int],
    to_timestamp: Optional[int],
    limit: Optional[int],
    query_uc: QueryMarketDataUseCase,
) -> CandleSeriesOutDTO:
    series = await query_uc.get_candles(
        pool,
        interval,
        from_ts=from_timestamp,
        to_ts=to_timestamp,
        limit=limit,
    )
    return CandleSeriesOutDTO.model_validate(series.model_dump())


async def _intervals(pool: str, query_uc: QueryMarketDataUseCase) -> IntervalsOutDTO:
    """
    Candles per interval; intervals without candles fall back to sampled raw history.
    """
    candles = await query_uc.get_all_intervals(pool)
    result: Dict[str, List[Dict[str, Any]]] = {}
    for interval in INTERVALS:
        if candles.get(interval):
            result[interval] = [c.model_dump() for c in candles[interval]]
            continue
        samples = await query_uc.get_history_samples(pool, interval)
        result[interval] = [s.model_dump() for s in samples.data_points]

    debug = await query_uc.get_debug(pool)
    return IntervalsOutDTO(intervals=result, last_updated=debug.last_updated)


@router.get("/price", response_model=LatestPriceOutDTO)
async def get_price(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> LatestPriceOutDTO:
    """
    Latest price of a pool.
    """
    return await _latest(pool, query_uc)


@router.get("/price/latest", response_model=LatestPriceOutDTO)
async def get_latest_price(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> LatestPriceOutDTO:
    return await _latest(pool, query_uc)


@router.get("/price/ohlc", response_model=CandleSeriesOutDTO)
async def get_ohlc(
    interval: Optional[str] = Query(None, description="e.g. 1m, 5m, 1h, 24h, 1w, 1M"),
    from_timestamp: Optional[int] = Query(None, description="Unix ms, inclusive"),
    to_timestamp: Optional[int] = Query(None, description="Unix ms, inclusive"),
    limit: Optional[int] = Query(None, description="Most recent candles to keep (default 100)"),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> CandleSeriesOutDTO:
    """
    Candles of one interval filtered by time range.
    """
    return await _candle_series(pool, interval, from_timestamp, to_timestamp, limit, query_uc)


@router.get("/price/query", response_model=CandleSeriesOutDTO)
async def query_price(
    interval: Optional[str] = Query(None),
    from_timestamp: Optional[int] = Query(None),
    to_timestamp: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> CandleSeriesOutDTO:
    return await _candle_series(pool, interval, from_timestamp, to_timestamp, limit, query_uc)


@router.get("/price/ohlc/all", response_model=AllCandlesOutDTO)
async def get_all_ohlc(
    limit: Optional[int] = Query(None),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> AllCandlesOutDTO:
    candles = await query_uc.get_all_intervals(pool, limit=limit)
    debug = await query_uc.get_debug(pool)
    return AllCandlesOutDTO(
        pool=pool,
        ohlc={k: [c.model_dump() for c in v] for k, v in candles.items()},
        last_updated=debug.last_updated,
    )


@router.get("/price/all", response_model=IntervalsOutDTO)
async def get_all_prices(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> IntervalsOutDTO:
    return await _intervals(pool, query_uc)


@router.get("/price/intervals/all", response_model=IntervalsOutDTO)
async def get_all_intervals(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> IntervalsOutDTO:
    return await _intervals(pool, query_uc)


@router.get("/price/ohlc/{interval}", response_model=CandleSeriesOutDTO)
async def get_ohlc_for_interval(
    interval: str,
    from_timestamp: Optional[int] = Query(None),
    to_timestamp: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> CandleSeriesOutDTO:
    """
    Candles of one interval; 404 when nothing matches.
    """
    series = await _candle_series(pool, interval, from_timestamp, to_timestamp, limit, query_uc)
    if not series.count:
        raise NotFoundError(
            "No data available for the specified interval and time range",
            details={
                "interval": series.interval,
                "from_timestamp": from_timestamp,
                "to_timestamp": to_timestamp,
            },
        )
    return series


@router.get("/price/{interval}", response_model=None)
async def get_price_for_interval(
    interval: str,
    from_timestamp: Optional[int] = Query(None),
    to_timestamp: Optional[int] = Query(None),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> Dict[str, Any]:
    """
    Legacy endpoint: candles when the interval has any, else sampled raw history with stats.
    """
    key = IntervalService.require(interval)
    newest = await query_uc.get_candles(pool, key, limit=1)
    if newest.count:
        out = await _candle_series(pool, key, from_timestamp, to_timestamp, None, query_uc)
        return out.model_dump(mode="json", by_alias=True)

    samples = await query_uc.get_history_samples(pool, key, from_ts=from_timestamp, to_ts=to_timestamp)
    return HistorySamplesOutDTO.model_validate(samples.model_dump()).model_dump(mode="json", by_alias=True)


@router.get("/volume", response_model=VolumeOutDTO)
async def get_volume(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> VolumeOutDTO:
    volume = await query_uc.get_volume(pool)
    return VolumeOutDTO.model_validate({"pool": pool, "volume": volume.model_dump()})


@router.get("/stats", response_model=PriceStatsOutDTO)
async def get_stats(
    interval: Optional[str] = Query(None, description="1m..24h, 1d, 7d, 14d, 30d"),
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> PriceStatsOutDTO:
    """
    Price change (and volume) over a trailing window.

    503 while the pool has no price yet, 404 when no start price can be anchored.
    """
    stats = await query_uc.get_stats(pool, interval)
    return PriceStatsOutDTO.model_validate(stats.model_dump())


@router.get("/debug/pool", response_model=PoolDebugOutDTO)
async def debug_pool(
    pool: str = Depends(get_pool_address),
    query_uc: QueryMarketDataUseCase = Depends(get_query_uc),
) -> PoolDebugOutDTO:
    debug = await query_uc.get_debug(pool)
    return PoolDebugOutDTO.model_validate(debug.model_dump())
