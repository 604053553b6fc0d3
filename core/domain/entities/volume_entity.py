# core/domain/entities/volume_entity.py
from __future__ import annotations

import time
from typing import Optional

from pydantic import AliasChoices, Field

from core.domain.entities.base_entity import BaseEntity


def _now_ms() -> int:
    return int(time.time() * 1000)


class VolumeSampleEntity(BaseEntity):
    """
    One swap-volume event in USD.

    Older snapshot files stored the amount under "volume"; both keys are accepted.
    `pool` is only set on entries written to the snapshot's flat volumeHistory.
    """

    amount: float = Field(validation_alias=AliasChoices("amount", "volume"))
    timestamp: int
    pool: Optional[str] = None


class VolumeWindowsEntity(BaseEntity):
    """
    Rolling USD volume aggregates for a pool.

    24h/7d/30d are recomputed from the volume log on every update;
    total only ever grows.
    """

    last_24h: float = Field(default=0.0, alias="24h")
    last_7d: float = Field(default=0.0, alias="7d")
    last_30d: float = Field(default=0.0, alias="30d")
    total: float = 0.0
    last_reset: int = Field(default_factory=_now_ms, alias="lastReset")
