# core/domain/entities/candle_entity.py
from __future__ import annotations

from core.domain.entities.base_entity import BaseEntity


class CandleEntity(BaseEntity):
    """
    OHLC summary of the price samples inside one interval bucket.

    timestamp is the inclusive bucket start in unix ms, i.e.
    floor(sample_ts / interval_width) * interval_width.

    At rest, a candle series for one interval keeps:
      - strictly increasing timestamps, one bucket per width
      - candle[i].open == candle[i-1].close
      - low <= open, close <= high
    """

    timestamp: int

    open: float
    high: float
    low: float
    close: float
