# core/usecases/ingest_price_sample_use_case.py
from __future__ import annotations

import logging
import math
import time
from bisect import insort
from typing import Optional

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.errors import ValidationError
from core.services.candle_aggregation_service import CandleAggregationService
from core.services.pool_registry import PoolRegistry
from core.services.retention_service import RetentionService


class IngestPriceSampleUseCase:
    """
    Applies one price sample to a pool.

    Behavior (under the pool's lock):
      - latestPrice/lastUpdated move forward only (a late sample does not
        overwrite a newer price)
      - the sample is inserted into raw history in timestamp order
      - every interval's candles are updated
      - retention is applied
    """

    def __init__(
        self,
        *,
        registry: PoolRegistry,
        aggregator: CandleAggregationService,
        retention: RetentionService,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._aggregator = aggregator
        self._retention = retention
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        *,
        pool_id: str,
        price: float,
        timestamp: Optional[int] = None,
        now_ms: Optional[int] = None,
    ) -> PriceSeriesEntity:
        price = self._validate_price(price)
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        ts = now if timestamp is None else self._validate_timestamp(timestamp)

        state = self._registry.get_or_create(pool_id)
        async with state.lock:
            self.apply(state.series, price, ts, now)
        self._logger.debug("Updated price pool=%s price=%s ts=%s", state.pool_id, price, ts)
        return state.series

    def apply(self, series: PriceSeriesEntity, price: float, timestamp: int, now_ms: int) -> None:
        if series.last_updated is None or timestamp >= series.last_updated:
            series.latest_price = price
            series.last_updated = timestamp

        insort(series.history, PriceSampleEntity(price=price, timestamp=timestamp), key=lambda s: s.timestamp)
        self._aggregator.update(series, price, timestamp)
        self._retention.prune(series, now_ms)

    @staticmethod
    def _validate_price(price: float) -> float:
        try:
            value = float(price)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid price: {price!r}", code="INVALID_PRICE") from exc
        if not math.isfinite(value) or value <= 0:
            raise ValidationError(f"Invalid price: {price!r}", code="INVALID_PRICE")
        return value

    @staticmethod
    def _validate_timestamp(timestamp: int) -> int:
        try:
            ts = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid timestamp: {timestamp!r}", code="INVALID_TIMESTAMP") from exc
        if ts <= 0:
            raise ValidationError(f"Invalid timestamp: {timestamp!r}", code="INVALID_TIMESTAMP")
        return ts
