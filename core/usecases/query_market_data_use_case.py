# core/usecases/query_market_data_use_case.py
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.market_data_entity import (
    CandleSeriesEntity,
    HistorySamplesEntity,
    HistoryStatsEntity,
    LatestPriceEntity,
    PoolDebugEntity,
    PriceStatsEntity,
)
from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.domain.entities.volume_entity import VolumeWindowsEntity
from core.domain.errors import NoDataError, NotFoundError, PendingError, ValidationError
from core.domain.intervals import DAY_MS, DEFAULT_DATAPOINT_LIMIT, HOUR_MS, INTERVAL_WIDTHS_MS, INTERVALS
from core.services.interval_service import IntervalService
from core.services.pool_registry import PoolRegistry, PoolState
from core.services.volume_window_service import VolumeWindowService

# Stats window token -> (window width in ms, candle interval used as anchor source)
STATS_WINDOWS: Dict[str, Tuple[int, Optional[str]]] = {
    **{interval: (width, interval) for interval, width in INTERVAL_WIDTHS_MS.items() if interval not in ("1w", "1M")},
    "1d": (DAY_MS, "24h"),
    "7d": (7 * DAY_MS, "1w"),
    "14d": (14 * DAY_MS, None),
    "30d": (30 * DAY_MS, "1M"),
}

HISTORY_ANCHOR_TOLERANCE = 0.1
LONG_WINDOW_MS = INTERVAL_WIDTHS_MS["1w"]


class QueryMarketDataUseCase:
    """
    Read side of the service.

    Every read takes the pool's lock and returns copies, so callers always see
    a consistent snapshot even while ingestion is running.
    """

    def __init__(
        self,
        *,
        registry: PoolRegistry,
        volume_service: Optional[VolumeWindowService] = None,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._volume = volume_service or VolumeWindowService()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def _state(self, pool_id: str) -> PoolState:
        state = self._registry.get(pool_id)
        if state is None:
            raise NoDataError(f"No data for pool {pool_id}", details={"pool": pool_id})
        return state

    async def get_latest(self, pool_id: str) -> LatestPriceEntity:
        state = self._state(pool_id)
        async with state.lock:
            series = state.series
            if series.latest_price is None:
                raise NoDataError(f"No price data available for pool {pool_id} yet", details={"pool": pool_id})
            return LatestPriceEntity(pool=pool_id, price=series.latest_price, last_updated=series.last_updated)

    async def get_candles(
        self,
        pool_id: str,
        interval: Optional[str],
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> CandleSeriesEntity:
        """
        Candles of one interval inside the inclusive [from_ts, to_ts] range,
        keeping the `limit` most recent.
        """
        key = IntervalService.require(interval)
        limit = self._validate_limit(limit)
        self._validate_range(from_ts, to_ts)

        state = self._state(pool_id)
        async with state.lock:
            selected = self._select(state.series.candles.get(key) or [], from_ts, to_ts, limit)
            return CandleSeriesEntity(
                interval=key,
                from_timestamp=from_ts,
                to_timestamp=to_ts,
                candles=selected,
                count=len(selected),
                last_updated=state.series.last_updated,
            )

    async def get_all_intervals(self, pool_id: str, *, limit: Optional[int] = None) -> Dict[str, List[CandleEntity]]:
        limit = self._validate_limit(limit)
        state = self._state(pool_id)
        async with state.lock:
            return {
                interval: self._select(state.series.candles.get(interval) or [], None, None, limit)
                for interval in INTERVALS
            }

    async def get_volume(self, pool_id: str, *, now_ms: Optional[int] = None) -> VolumeWindowsEntity:
        state = self._state(pool_id)
        async with state.lock:
            return self._volume.recompute(state.series, now_ms).model_copy()

    async def get_stats(self, pool_id: str, interval: Optional[str], *, now_ms: Optional[int] = None) -> PriceStatsEntity:
        """
        Price change over a trailing window.

        The start price is the open of the candle containing (now - window),
        else the close of the nearest candle within one window, else the raw
        history sample nearest to (now - window) within 10% of the window.
        """
        token, width, anchor_interval = self._resolve_stats_window(interval)
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        cutoff = now - width

        state = self._state(pool_id)
        async with state.lock:
            series = state.series
            if series.latest_price is None:
                status = "initializing" if self._registry.is_initializing(pool_id) else "no_data"
                raise PendingError(
                    f"Current price not available for pool {pool_id}",
                    details={"pool": pool_id, "status": status},
                )
            current = float(series.latest_price)

            start: Optional[float] = None
            if anchor_interval is not None:
                start = self._anchor_from_candles(series.candles.get(anchor_interval) or [], cutoff, width)
            if start is None:
                start = self._anchor_from_history(series.history, cutoff, width)

            if start is None or start == 0:
                raise NotFoundError(
                    f"No historical data available for {token} interval",
                    details={"interval": token, "currentPrice": current},
                )

            change = current - start
            pct = change / start * 100
            volume = self._volume.recompute(series, now).model_copy()
            return PriceStatsEntity(
                interval=token,
                current_price=current,
                start_price=start,
                price_change=change,
                percentage_change=pct,
                percentage_change_formatted=f"{'+' if pct >= 0 else ''}{pct:.2f}%",
                volume_for_interval=self._volume_for_window(volume, width),
                volume=volume,
                timestamp=now,
                last_updated=series.last_updated,
            )

    async def get_history_samples(
        self,
        pool_id: str,
        interval: Optional[str],
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        now_ms: Optional[int] = None,
    ) -> HistorySamplesEntity:
        """
        Raw samples within the interval's trailing window, evenly sampled down to
        the datapoint limit (always keeping the newest sample). Used when an
        interval has no candles yet.
        """
        key = IntervalService.require(interval)
        self._validate_range(from_ts, to_ts)
        width = INTERVAL_WIDTHS_MS[key]
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)

        state = self._state(pool_id)
        async with state.lock:
            history = [s.model_copy() for s in state.series.history]
            last_updated = state.series.last_updated

        points = [s for s in history if s.timestamp >= now - width]
        if not points and width >= LONG_WINDOW_MS:
            points = history
        points = self.sample_evenly(points, DEFAULT_DATAPOINT_LIMIT)
        points = [
            s for s in points
            if (from_ts is None or s.timestamp >= from_ts) and (to_ts is None or s.timestamp <= to_ts)
        ]

        prices = [s.price for s in points]
        stats = HistoryStatsEntity(
            count=len(prices),
            avg=sum(prices) / len(prices) if prices else 0.0,
            min=min(prices) if prices else 0.0,
            max=max(prices) if prices else 0.0,
        )
        return HistorySamplesEntity(
            interval=key,
            from_timestamp=from_ts,
            to_timestamp=to_ts,
            data_points=points,
            stats=stats,
            last_updated=last_updated,
        )

    async def get_debug(self, pool_id: str) -> PoolDebugEntity:
        key = PoolRegistry.normalize(pool_id)
        state = self._registry.get(key)
        base = dict(
            pool=pool_id,
            normalized_pool=key,
            has_data=state is not None,
            initializing=self._registry.is_initializing(key),
            all_pool_keys=self._registry.ids(),
        )
        if state is None:
            return PoolDebugEntity(**base)

        async with state.lock:
            series = state.series
            return PoolDebugEntity(
                **base,
                latest_price=series.latest_price,
                history_length=len(series.history),
                ohlc_data_lengths={k: len(v) for k, v in series.candles.items()},
                volume=series.volume.model_copy(),
                volume_log_length=len(series.volume_log),
                last_updated=series.last_updated,
            )

    @staticmethod
    def sample_evenly(points: List[PriceSampleEntity], limit: int) -> List[PriceSampleEntity]:
        if len(points) <= limit:
            return list(points)
        step = len(points) // limit
        sampled = [points[i * step] for i in range(limit - 1)]
        sampled.append(points[-1])
        return sampled

    @staticmethod
    def _select(
        candles: List[CandleEntity],
        from_ts: Optional[int],
        to_ts: Optional[int],
        limit: int,
    ) -> List[CandleEntity]:
        filtered = [
            c for c in candles
            if (from_ts is None or c.timestamp >= from_ts) and (to_ts is None or c.timestamp <= to_ts)
        ]
        return [c.model_copy() for c in filtered[-limit:]]

    @staticmethod
    def _validate_limit(limit: Optional[int]) -> int:
        if limit is None:
            return DEFAULT_DATAPOINT_LIMIT
        if int(limit) < 1:
            raise ValidationError(f"limit must be >= 1, got {limit}", code="INVALID_LIMIT")
        return int(limit)

    @staticmethod
    def _validate_range(from_ts: Optional[int], to_ts: Optional[int]) -> None:
        if from_ts is not None and to_ts is not None and from_ts > to_ts:
            raise ValidationError(
                "from_timestamp cannot be greater than to_timestamp",
                code="INVALID_RANGE",
                details={"from_timestamp": from_ts, "to_timestamp": to_ts},
            )

    @staticmethod
    def _resolve_stats_window(interval: Optional[str]) -> Tuple[str, int, Optional[str]]:
        if interval is None or not str(interval).strip():
            raise ValidationError(
                "Missing required parameter: interval",
                code="MISSING_INTERVAL",
                details={"validIntervals": list(STATS_WINDOWS)},
            )
        token = str(interval).strip()
        if token in STATS_WINDOWS:
            width, anchor = STATS_WINDOWS[token]
            return token, width, anchor

        key = IntervalService.normalize(token)
        if key is None:
            raise ValidationError(
                f"Invalid interval parameter: {token!r}",
                code="INVALID_INTERVAL",
                details={"provided": token, "validIntervals": list(STATS_WINDOWS)},
            )
        return key, INTERVAL_WIDTHS_MS[key], key

    @staticmethod
    def _anchor_from_candles(candles: List[CandleEntity], cutoff: int, width: int) -> Optional[float]:
        closest: Optional[CandleEntity] = None
        closest_diff: Optional[int] = None
        for candle in candles:
            if candle.timestamp <= cutoff < candle.timestamp + width:
                return candle.open
            diff = abs(candle.timestamp - cutoff)
            if closest_diff is None or diff < closest_diff:
                closest, closest_diff = candle, diff

        if closest is not None and closest_diff is not None and closest_diff <= width:
            return closest.close
        return None

    @staticmethod
    def _anchor_from_history(history: List[PriceSampleEntity], cutoff: int, width: int) -> Optional[float]:
        if not history:
            return None
        nearest = min(history, key=lambda s: abs(s.timestamp - cutoff))
        if abs(nearest.timestamp - cutoff) <= width * HISTORY_ANCHOR_TOLERANCE:
            return nearest.price
        return None

    @staticmethod
    def _volume_for_window(volume: VolumeWindowsEntity, width: int) -> float:
        if width == DAY_MS:
            return volume.last_24h
        if width == 7 * DAY_MS:
            return volume.last_7d
        if width == 30 * DAY_MS:
            return volume.last_30d
        return volume.last_24h / 24 * (width / HOUR_MS)
