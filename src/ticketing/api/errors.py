"""HTTP mapping for domain errors.

Protean's handlers cover plain validation errors; the ticketing taxonomy
gets explicit status codes so callers can tell a sold-out cart from a
gateway outage.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from ticketing.errors import (
    GatewayUnavailableError,
    InvalidStateError,
    StockUnavailableError,
    WebhookSignatureError,
)

logger = structlog.get_logger(__name__)


async def _stock_unavailable(request: Request, exc: StockUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "stock_unavailable", "shortages": exc.shortages})


async def _invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "invalid_state", "current_status": exc.current_status, "messages": exc.messages},
    )


async def _gateway_unavailable(request: Request, exc: GatewayUnavailableError) -> JSONResponse:
    logger.warning("Gateway unavailable", operation=exc.operation, reason=exc.reason, path=request.url.path)
    return JSONResponse(
        status_code=502,
        content={"error": "gateway_unavailable", "message": "Payment gateway error, please try again later"},
    )


async def _webhook_signature(request: Request, exc: WebhookSignatureError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "invalid_signature"})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


def register_ticketing_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(StockUnavailableError, _stock_unavailable)
    app.add_exception_handler(InvalidStateError, _invalid_state)
    app.add_exception_handler(GatewayUnavailableError, _gateway_unavailable)
    app.add_exception_handler(WebhookSignatureError, _webhook_signature)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
