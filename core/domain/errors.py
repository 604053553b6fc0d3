# core/domain/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class MarketDataError(Exception):
    """
    Base error for the pool price service.

    Every error carries a stable machine-readable `code` so the HTTP layer can
    map it to a status without parsing messages.
    """

    code: str = "MARKET_DATA_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        payload.update(self.details)
        return payload


class ValidationError(MarketDataError):
    """Bad interval token, timestamp, range or limit. Never retried."""

    code = "VALIDATION_ERROR"


class PendingError(MarketDataError):
    """Pool is registered but has no price yet. Callers may poll and retry."""

    code = "PENDING"


class NotFoundError(MarketDataError):
    code = "NOT_FOUND"


class NoDataError(NotFoundError):
    """Pool is unknown or has not produced any price sample."""

    code = "NO_DATA"


class UpstreamError(MarketDataError):
    """Producer fetch failed (RPC node, subgraph). The tick is skipped."""

    code = "UPSTREAM_ERROR"


class PersistenceError(MarketDataError):
    """Snapshot read or write failed. In-memory state is unaffected."""

    code = "PERSISTENCE_ERROR"
