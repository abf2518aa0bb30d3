"""Ticketing FastAPI application.

Web server that processes commands synchronously via HTTP. Every request
runs inside the ticketing domain context with its request id and caller
bound to the log context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - default      → command/event processing "sync" (issuance runs inline)
#   - "production" → "async" (issuance and projectors run via the Engine)
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticketing.domain import ticketing
from ticketing.utils.logging import add_context, clear_context, get_logger

ticketing.init()

logger = get_logger(__name__)

_DOMAIN_PREFIXES = ("/payments", "/tickets")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Ticketing API",
    description="Event ticketing — payments, webhooks, ticket issuance and refunds",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ticketing domain context and bind request-scoped log fields."""
    if not request.url.path.startswith(_DOMAIN_PREFIXES):
        # Health check, docs, etc.
        return await call_next(request)

    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    add_context(request_id=request_id, owner_id=request.headers.get("x-owner-id"), path=request.url.path)
    try:
        with ticketing.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["x-request-id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ticketing.api import (  # noqa: E402
    payment_router,
    register_ticketing_exception_handlers,
    ticket_router,
)

app.include_router(payment_router)
app.include_router(ticket_router)
register_ticketing_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"ticketing": {"name": ticketing.name}},
        }
    )
