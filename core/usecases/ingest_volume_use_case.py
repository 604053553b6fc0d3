# core/usecases/ingest_volume_use_case.py
from __future__ import annotations

import logging
import math
import time
from typing import Iterable, Optional

from core.domain.entities.volume_entity import VolumeSampleEntity, VolumeWindowsEntity
from core.domain.errors import ValidationError
from core.services.pool_registry import PoolRegistry
from core.services.volume_window_service import VolumeWindowService


class IngestVolumeUseCase:
    """
    Records swap-volume events for a pool and refreshes its rolling windows.
    """

    def __init__(
        self,
        *,
        registry: PoolRegistry,
        volume_service: VolumeWindowService,
        logger: logging.Logger | None = None,
    ):
        self._registry = registry
        self._volume = volume_service
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        *,
        pool_id: str,
        events: Iterable[VolumeSampleEntity],
        now_ms: Optional[int] = None,
    ) -> VolumeWindowsEntity:
        now = int(now_ms) if now_ms is not None else int(time.time() * 1000)
        valid = [e for e in events if self._is_valid(e)]

        state = self._registry.get_or_create(pool_id)
        async with state.lock:
            for event in valid:
                self._volume.record_volume(state.series, event.amount, event.timestamp, now)
            self._volume.recompute(state.series, now)
            volume = state.series.volume.model_copy()

        if valid:
            self._logger.info(
                "Pool %s: processed %s swap events, volume 24h=$%.2f",
                state.pool_id,
                len(valid),
                volume.last_24h,
            )
        return volume

    def _is_valid(self, event: VolumeSampleEntity) -> bool:
        if not math.isfinite(event.amount) or event.amount < 0 or event.timestamp <= 0:
            self._logger.warning("Dropping invalid volume event %s", event.to_dict())
            return False
        return True

    async def record(self, *, pool_id: str, amount: float, timestamp: Optional[int] = None) -> VolumeWindowsEntity:
        """
        Record a single event; raises ValidationError on a bad amount.
        """
        try:
            value = float(amount)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid volume amount: {amount!r}", code="INVALID_AMOUNT") from exc
        if not math.isfinite(value) or value < 0:
            raise ValidationError(f"Invalid volume amount: {amount!r}", code="INVALID_AMOUNT")

        ts = int(timestamp) if timestamp is not None else int(time.time() * 1000)
        return await self.execute(pool_id=pool_id, events=[VolumeSampleEntity(amount=value, timestamp=ts)])
