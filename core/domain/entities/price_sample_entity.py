from __future__ import annotations

from core.domain.entities.base_entity import BaseEntity


class PriceSampleEntity(BaseEntity):
    """Raw price observation kept in a pool's short-lived history (~24h)."""

    price: float
    timestamp: int  # unix ms
