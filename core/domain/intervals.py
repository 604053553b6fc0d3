# core/domain/intervals.py
from __future__ import annotations

from typing import Dict, List

MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# Fixed candle intervals tracked for every pool, in display order.
INTERVAL_WIDTHS_MS: Dict[str, int] = {
    "1m": MINUTE_MS,
    "5m": 5 * MINUTE_MS,
    "15m": 15 * MINUTE_MS,
    "30m": 30 * MINUTE_MS,
    "1h": HOUR_MS,
    "6h": 6 * HOUR_MS,
    "12h": 12 * HOUR_MS,
    "24h": DAY_MS,
    "1w": 7 * DAY_MS,
    "1M": 30 * DAY_MS,
}

INTERVALS = tuple(INTERVAL_WIDTHS_MS)

DEFAULT_DATAPOINT_LIMIT = 100

# Max candles kept per interval (count-based bound).
DATAPOINT_LIMITS: Dict[str, int] = {interval: DEFAULT_DATAPOINT_LIMIT for interval in INTERVALS}


def empty_candle_map() -> Dict[str, List]:
    return {interval: [] for interval in INTERVALS}
