# core/services/interval_service.py
from __future__ import annotations

from typing import Dict, Optional

from core.domain.errors import ValidationError
from core.domain.intervals import INTERVAL_WIDTHS_MS, INTERVALS


class IntervalService:
    """
    Normalizes interval tokens coming from callers.

    Rules:
    - Canonical tags: 1m, 5m, 15m, 30m, 1h, 6h, 12h, 24h, 1w, 1M (case-sensitive,
      "1m" is a minute and "1M" a month).
    - Minute aliases: "1", "5", "15", "30", "60", "360", "720", "1440", "10080", "43200".
    - Hour aliases: "6", "12", "24".
    - Words (case-insensitive): "1hour", "week", "month".
    """

    _ALIASES: Dict[str, str] = {
        "1": "1m",
        "5": "5m",
        "15": "15m",
        "30": "30m",
        "60": "1h",
        "360": "6h",
        "6": "6h",
        "720": "12h",
        "12": "12h",
        "1440": "24h",
        "24": "24h",
        "10080": "1w",
        "43200": "1M",
    }

    _WORDS: Dict[str, str] = {
        "1hour": "1h",
        "week": "1w",
        "month": "1M",
    }

    @classmethod
    def normalize(cls, token: Optional[str]) -> Optional[str]:
        """
        Return the canonical interval tag for `token`, or None if it does not map.
        """
        if token is None:
            return None
        tok = str(token).strip()
        if tok in INTERVAL_WIDTHS_MS:
            return tok
        if tok in cls._ALIASES:
            return cls._ALIASES[tok]
        return cls._WORDS.get(tok.lower())

    @classmethod
    def require(cls, token: Optional[str]) -> str:
        """
        Like normalize(), but raises ValidationError(INVALID_INTERVAL) on failure.
        """
        interval = cls.normalize(token)
        if interval is None:
            raise ValidationError(
                f"Invalid interval parameter: {token!r}",
                code="INVALID_INTERVAL",
                details={"provided": token, "validIntervals": list(INTERVALS)},
            )
        return interval

    @staticmethod
    def width_ms(interval: str) -> int:
        return INTERVAL_WIDTHS_MS[interval]

    @staticmethod
    def bucket_start(timestamp: int, width_ms: int) -> int:
        return (int(timestamp) // int(width_ms)) * int(width_ms)
