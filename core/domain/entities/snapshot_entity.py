# core/domain/entities/snapshot_entity.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from core.domain.entities.base_entity import BaseEntity
from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.entities.volume_entity import VolumeSampleEntity

SNAPSHOT_VERSION = 2
VOLUME_HISTORY_CAP = 1000


class SnapshotDocumentEntity(BaseEntity):
    """
    Versioned snapshot of every tracked pool.

    Layout:
      { version, lastSaved, pools: {pool_id: PriceSeries}, volumeHistory: [...] }

    volumeHistory is flat across pools (each entry tagged with `pool`) and
    capped to the last VOLUME_HISTORY_CAP entries.
    """

    version: int = SNAPSHOT_VERSION
    last_saved: Optional[int] = Field(default=None, alias="lastSaved")
    pools: Dict[str, PriceSeriesEntity] = Field(default_factory=dict)
    volume_history: List[VolumeSampleEntity] = Field(default_factory=list, alias="volumeHistory")


class SnapshotLoadReportEntity(BaseEntity):
    """Outcome of a snapshot load, mostly for logging and tests."""

    pools_loaded: int = 0
    repairs: int = 0
    rebuilt: Dict[str, List[str]] = Field(default_factory=dict)
    legacy: bool = False
