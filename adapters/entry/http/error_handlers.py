from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.domain.errors import (
    MarketDataError,
    NotFoundError,
    PendingError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger("HttpErrors")


def status_for(exc: MarketDataError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, PendingError):
        return 503
    if isinstance(exc, UpstreamError):
        return 502
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """
    Map domain errors to HTTP responses with an {error, message, ...} body.
    """

    @app.exception_handler(MarketDataError)
    async def _market_data_error(request: Request, exc: MarketDataError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500 and not isinstance(exc, PendingError):
            logger.error("Request failed path=%s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # e.g. from_timestamp=abc; answered as 400 like every other bad parameter
        return JSONResponse(
            status_code=400,
            content={
                "error": "INVALID_PARAMETER",
                "message": "Invalid query parameter",
                "details": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in exc.errors()
                ],
            },
        )
