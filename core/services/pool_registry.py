# core/services/pool_registry.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from core.domain.entities.price_series_entity import PriceSeriesEntity
from core.domain.errors import ValidationError


@dataclass
class PoolState:
    """
    A pool's series plus the lock serializing its writers.

    Every mutation and every consistent read of `series` happens under `lock`.
    """

    pool_id: str
    series: PriceSeriesEntity
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class PoolRegistry:
    """
    Maps a pool identifier to its aggregation state.

    Rules:
    - Keys are case-insensitive: normalized to lowercase for lookup, the
      first-seen spelling is kept as the series' display_id.
    - get_or_create() allocates an empty series on first reference; it does not
      start any producer. Callers detect a miss with contains() first.
    - Tracks which pools are still initializing so queries can tell
      "pending" apart from "no data".
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._pools: Dict[str, PoolState] = {}
        self._initializing: Set[str] = set()

    @staticmethod
    def normalize(pool_id: Optional[str]) -> str:
        key = (pool_id or "").strip().lower()
        if not key:
            raise ValidationError("pool identifier is required", code="INVALID_POOL")
        return key

    def __len__(self) -> int:
        return len(self._pools)

    def contains(self, pool_id: str) -> bool:
        return self.normalize(pool_id) in self._pools

    def get(self, pool_id: str) -> Optional[PoolState]:
        return self._pools.get(self.normalize(pool_id))

    def get_or_create(self, pool_id: str) -> PoolState:
        key = self.normalize(pool_id)
        state = self._pools.get(key)
        if state is None:
            state = PoolState(pool_id=key, series=PriceSeriesEntity(display_id=pool_id.strip()))
            self._pools[key] = state
            self._logger.info("Registered new pool %s", key)
        return state

    def load(self, pool_id: str, series: PriceSeriesEntity) -> PoolState:
        """
        Register (or replace) the state of a pool restored from a snapshot.
        """
        key = self.normalize(pool_id)
        if series.display_id is None:
            series.display_id = pool_id
        state = PoolState(pool_id=key, series=series)
        self._pools[key] = state
        return state

    def ids(self) -> List[str]:
        return list(self._pools)

    def items(self) -> Iterator[Tuple[str, PoolState]]:
        return iter(list(self._pools.items()))

    def mark_initializing(self, pool_id: str) -> None:
        self._initializing.add(self.normalize(pool_id))

    def mark_initialized(self, pool_id: str) -> None:
        self._initializing.discard(self.normalize(pool_id))

    def is_initializing(self, pool_id: str) -> bool:
        return self.normalize(pool_id) in self._initializing
