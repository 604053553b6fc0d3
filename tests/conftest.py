"""Shared pytest fixtures.

- T0: a unix-ms timestamp aligned to every interval up to 24h (and to 30 days)
- registry / services: fresh aggregation core per test
- memory_repo: in-memory SnapshotRepository that can be told to fail
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

import pytest

from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.errors import PersistenceError
from core.domain.intervals import DAY_MS
from core.repositories.snapshot_repository import SnapshotRepository
from core.services.candle_aggregation_service import CandleAggregationService
from core.services.continuity_service import ContinuityService
from core.services.interval_derivation_service import IntervalDerivationService
from core.services.pool_registry import PoolRegistry
from core.services.retention_service import RetentionService
from core.services.volume_window_service import VolumeWindowService
from core.usecases.ingest_price_sample_use_case import IngestPriceSampleUseCase
from core.usecases.ingest_volume_use_case import IngestVolumeUseCase
from core.usecases.query_market_data_use_case import QueryMarketDataUseCase
from core.usecases.snapshot_use_case import SnapshotUseCase

T0 = 656 * 30 * DAY_MS  # 2023-11-19T00:00:00Z
POOL = "0x5F9a6E5b4B8c9D0e1F2a3B4c5D6e7F8a9B0c1D2e"
POOL_KEY = POOL.lower()


class MemorySnapshotRepository(SnapshotRepository):
    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.document = copy.deepcopy(document)
        self.saves: List[Dict[str, Any]] = []
        self.fail_load = False
        self.fail_save = False

    async def load(self) -> Optional[Dict[str, Any]]:
        if self.fail_load:
            raise PersistenceError("load failed")
        return copy.deepcopy(self.document)

    async def save(self, document: Dict[str, Any]) -> None:
        if self.fail_save:
            raise PersistenceError("save failed")
        self.document = copy.deepcopy(document)
        self.saves.append(self.document)


def make_candles(start: int, width: int, closes: List[float], first_open: Optional[float] = None) -> List[CandleEntity]:
    """Continuous candles: each open is the previous close."""
    candles: List[CandleEntity] = []
    prev = closes[0] if first_open is None else first_open
    for i, close in enumerate(closes):
        candles.append(
            CandleEntity(
                timestamp=start + i * width,
                open=prev,
                high=max(prev, close),
                low=min(prev, close),
                close=close,
            )
        )
        prev = close
    return candles


@pytest.fixture
def series() -> PriceSeriesEntity:
    return PriceSeriesEntity(display_id=POOL)


@pytest.fixture
def registry() -> PoolRegistry:
    return PoolRegistry()


@pytest.fixture
def aggregator() -> CandleAggregationService:
    return CandleAggregationService()


@pytest.fixture
def continuity(aggregator: CandleAggregationService) -> ContinuityService:
    return ContinuityService(aggregator=aggregator)


@pytest.fixture
def derivation() -> IntervalDerivationService:
    return IntervalDerivationService()


@pytest.fixture
def retention() -> RetentionService:
    return RetentionService()


@pytest.fixture
def volume_service() -> VolumeWindowService:
    return VolumeWindowService()


@pytest.fixture
def ingest_price_uc(registry, aggregator, retention) -> IngestPriceSampleUseCase:
    return IngestPriceSampleUseCase(registry=registry, aggregator=aggregator, retention=retention)


@pytest.fixture
def ingest_volume_uc(registry, volume_service) -> IngestVolumeUseCase:
    return IngestVolumeUseCase(registry=registry, volume_service=volume_service)


@pytest.fixture
def query_uc(registry, volume_service) -> QueryMarketDataUseCase:
    return QueryMarketDataUseCase(registry=registry, volume_service=volume_service)


@pytest.fixture
def memory_repo() -> MemorySnapshotRepository:
    return MemorySnapshotRepository()


@pytest.fixture
def snapshot_uc(memory_repo, registry, continuity, derivation, retention) -> SnapshotUseCase:
    return SnapshotUseCase(
        repository=memory_repo,
        registry=registry,
        continuity=continuity,
        derivation=derivation,
        retention=retention,
    )
