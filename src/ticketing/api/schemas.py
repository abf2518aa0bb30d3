"""Pydantic request/response schemas for the Ticketing API.

These are external contracts (anti-corruption layer), kept apart from the
Protean commands they are translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class CreatePaymentRequest(BaseModel):
    cart_id: str
    method: str = "stripe"

    model_config = {"json_schema_extra": {"examples": [{"cart_id": "cart-001", "method": "stripe"}]}}


class RefundRequest(BaseModel):
    amount: float = Field(gt=0)


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"


# ---------------------------------------------------------------------------
# Ticket Request Schemas
# ---------------------------------------------------------------------------
class ChangeTicketStatusRequest(BaseModel):
    status: str  # Used, Refunded, Cancelled


class ComplimentaryTicketsRequest(BaseModel):
    owner_id: str
    owner_email: str
    owner_name: str = ""
    product_id: str
    quantity: int = Field(ge=1)
    locale: str = "en"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PaymentInitiationResponse(BaseModel):
    payment_id: str
    status: str
    amount: float
    currency: str
    client_secret: str | None = None


class PaymentStatusResponse(BaseModel):
    payment_id: str
    status: str
    amount: float
    refunded_amount: float
    paid_at: datetime | None = None


class RefundResponse(BaseModel):
    payment_id: str
    refunded_now: float
    refunded_amount: float
    status: str
    refunded_at: datetime | None = None


class PaymentSummary(BaseModel):
    payment_id: str
    owner_id: str
    amount: float
    currency: str
    method: str | None = None
    status: str
    refunded_amount: float = 0.0
    ticket_count: int = 0
    created_at: datetime | None = None


class RefundDiscrepancyResponse(BaseModel):
    payment_id: str
    transaction_id: str
    local_refunded: float
    gateway_refunded: float
    difference: float


class TicketResponse(BaseModel):
    ticket_id: str
    token: str
    status: str
    payment_id: str
    product_id: str
    used_at: datetime | None = None
    refunded_at: datetime | None = None
    cancelled_at: datetime | None = None


class TicketHolder(BaseModel):
    name: str
    email: str


class TicketEvent(BaseModel):
    name: str
    category: str
    date: str | None = None
    time: str | None = None
    location: str | None = None


class TicketInfoResponse(BaseModel):
    token: str
    status: str
    holder: TicketHolder
    event: TicketEvent


class SalesStatsResponse(BaseModel):
    product_id: str
    product_name: str | None = None
    category: str | None = None
    issued_count: int
    used_count: int
    refunded_count: int
    cancelled_count: int
    revenue: float


class PaymentIdResponse(BaseModel):
    payment_id: str


class StatusResponse(BaseModel):
    status: str


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
