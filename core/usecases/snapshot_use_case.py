# core/usecases/snapshot_use_case.py
from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.entities.snapshot_entity import (
    SNAPSHOT_VERSION,
    VOLUME_HISTORY_CAP,
    SnapshotDocumentEntity,
    SnapshotLoadReportEntity,
)
from core.domain.entities.volume_entity import VolumeSampleEntity
from core.domain.errors import PersistenceError
from core.repositories.snapshot_repository import SnapshotRepository
from core.services.continuity_service import ContinuityService
from core.services.interval_derivation_service import IntervalDerivationService
from core.services.pool_registry import PoolRegistry
from core.services.retention_service import RetentionService

DERIVATION_SOURCES = ("1h", "5m")


class SnapshotUseCase:
    """
    Loads and saves the pool snapshot.

    Load (never fails the boot; any error means empty state):
      - a document without "pools" is a legacy v1 file: ignored on purpose,
        per-pool history is not migrated
      - volumeHistory is split back into per-pool volume logs
      - per pool: backfill short intervals from raw history, re-derive 6h/12h
        when their 1h/5m source was rebuilt, repair continuity, prune

    Save (best effort):
      - continuity is repaired under each pool's lock before copying
      - failures are logged and reported as False, in-memory state is untouched
    """

    def __init__(
        self,
        *,
        repository: SnapshotRepository,
        registry: PoolRegistry,
        continuity: ContinuityService,
        derivation: IntervalDerivationService,
        retention: RetentionService,
        logger: logging.Logger | None = None,
    ):
        self._repo = repository
        self._registry = registry
        self._continuity = continuity
        self._derivation = derivation
        self._retention = retention
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def load(self, *, now_ms: Optional[int] = None) -> SnapshotLoadReportEntity:
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        report = SnapshotLoadReportEntity()

        try:
            raw = await self._repo.load()
        except PersistenceError as exc:
            self._logger.exception("Error loading snapshot, starting from empty state: %s", exc)
            return report

        if raw is None:
            self._logger.info("No snapshot found, starting from empty state")
            return report

        if "pools" not in raw:
            self._logger.warning(
                "Old format snapshot detected (no 'pools' key). Starting from empty state; "
                "per-pool history is not migrated."
            )
            report.legacy = True
            return report

        try:
            doc = SnapshotDocumentEntity.model_validate(raw)
        except PydanticValidationError as exc:
            self._logger.exception("Snapshot document is invalid, starting from empty state: %s", exc)
            return report

        volume_logs: Dict[str, List[VolumeSampleEntity]] = defaultdict(list)
        for sample in doc.volume_history:
            if sample.pool:
                volume_logs[sample.pool.lower()].append(
                    VolumeSampleEntity(amount=sample.amount, timestamp=sample.timestamp)
                )

        for pool_id, series in doc.pools.items():
            series.volume_log = sorted(volume_logs.get(pool_id.lower(), []), key=lambda s: s.timestamp)
            series.history.sort(key=lambda s: s.timestamp)
            for candles in series.candles.values():
                candles.sort(key=lambda c: c.timestamp)

            rebuilt, repairs = self.restore_series(series, pool_id=pool_id, now_ms=now)
            self._registry.load(pool_id, series)

            report.pools_loaded += 1
            report.repairs += repairs
            if rebuilt:
                report.rebuilt[pool_id.lower()] = rebuilt

        self._logger.info(
            "Loaded %s pools from snapshot (version=%s, repairs=%s)",
            report.pools_loaded,
            doc.version,
            report.repairs,
        )
        return report

    def restore_series(self, series: PriceSeriesEntity, *, pool_id: str, now_ms: int) -> tuple[List[str], int]:
        """
        Bring a restored series back to its invariants.

        Returns:
            (intervals rebuilt or derived, continuity repairs)
        """
        rebuilt = self._continuity.backfill_all(series)
        if any(src in rebuilt for src in DERIVATION_SOURCES):
            rebuilt += [i for i in self._derivation.derive_from_existing(series) if i not in rebuilt]

        repairs = self._continuity.validate_and_repair(series, pool_id=pool_id)
        self._retention.prune(series, now_ms)
        return rebuilt, repairs

    async def save(self, *, now_ms: Optional[int] = None) -> bool:
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)

        pools: Dict[str, PriceSeriesEntity] = {}
        volume_history: List[VolumeSampleEntity] = []

        for pool_id, state in self._registry.items():
            async with state.lock:
                self._continuity.validate_and_repair(state.series, pool_id=pool_id)
                pools[pool_id] = state.series.model_copy(deep=True)
                volume_history.extend(
                    VolumeSampleEntity(amount=s.amount, timestamp=s.timestamp, pool=pool_id)
                    for s in state.series.volume_log
                )

        volume_history.sort(key=lambda s: s.timestamp)
        doc = SnapshotDocumentEntity(
            version=SNAPSHOT_VERSION,
            last_saved=now,
            pools=pools,
            volume_history=volume_history[-VOLUME_HISTORY_CAP:],
        )

        try:
            await self._repo.save(doc.to_dict())
        except PersistenceError as exc:
            self._logger.exception("Error saving snapshot (will retry on next tick): %s", exc)
            return False

        self._logger.debug("Saved snapshot pools=%s", len(pools))
        return True
