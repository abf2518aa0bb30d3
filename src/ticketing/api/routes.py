"""FastAPI routes for the Ticketing domain — payments and tickets."""

import os

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from protean.utils.globals import current_domain
from starlette.concurrency import run_in_threadpool

from ticketing.api.schemas import (
    ChangeTicketStatusRequest,
    ComplimentaryTicketsRequest,
    ConfigureGatewayRequest,
    CreatePaymentRequest,
    GatewayConfigResponse,
    PaymentIdResponse,
    PaymentInitiationResponse,
    PaymentStatusResponse,
    PaymentSummary,
    RefundDiscrepancyResponse,
    RefundRequest,
    RefundResponse,
    SalesStatsResponse,
    StatusResponse,
    TicketEvent,
    TicketHolder,
    TicketInfoResponse,
    TicketResponse,
)
from ticketing.context import RequestContext
from ticketing.gateway import get_gateway
from ticketing.gateway.fake_adapter import FakeGateway
from ticketing.payment.checkout import create_payment, issue_complimentary_tickets
from ticketing.payment.reconciliation import refund_discrepancies
from ticketing.payment.refund import RefundPayment
from ticketing.payment.status import get_payment_status
from ticketing.payment.sync import sync_payment
from ticketing.payment.webhook import handle_gateway_event
from ticketing.projections.payment_status import PaymentStatusView
from ticketing.projections.ticket_sales import sales_stats
from ticketing.ticket.delivery import ResendTickets
from ticketing.ticket.lifecycle import ChangeTicketStatus, ScanTicket
from ticketing.ticket.lookup import ticket_info, tickets_for_owner
from ticketing.utils.query import fetch_all


def request_context(
    x_owner_id: str = Header(),
    x_owner_email: str = Header(default=""),
    x_owner_name: str = Header(default=""),
    accept_language: str = Header(default="en"),
) -> RequestContext:
    """Caller identity as forwarded by the authenticating gateway."""
    locale = accept_language.split(",")[0].split("-")[0].strip().lower() or "en"
    return RequestContext(
        owner_id=x_owner_id,
        owner_email=x_owner_email,
        owner_name=x_owner_name,
        locale=locale,
    )


def _ticket_response(ticket) -> TicketResponse:
    return TicketResponse(
        ticket_id=str(ticket.id),
        token=ticket.token,
        status=ticket.status,
        payment_id=str(ticket.payment_id),
        product_id=str(ticket.product_id),
        used_at=ticket.used_at,
        refunded_at=ticket.refunded_at,
        cancelled_at=ticket.cancelled_at,
    )


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
# Handlers that reach the gateway or the mail transport block on I/O; they
# are plain functions so FastAPI runs them in its threadpool.
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("", status_code=201, response_model=PaymentInitiationResponse)
def initiate_payment(
    body: CreatePaymentRequest,
    context: RequestContext = Depends(request_context),
) -> PaymentInitiationResponse:
    """Open a checkout for a cart and return the gateway client secret."""
    payment = create_payment(context, body.cart_id, body.method)
    return PaymentInitiationResponse(
        payment_id=str(payment.id),
        status=payment.status,
        amount=payment.amount,
        currency=payment.currency,
        client_secret=payment.handshake_token,
    )


@payment_router.get("", response_model=list[PaymentSummary])
async def list_payments(status: str | None = None) -> list[PaymentSummary]:
    """Admin listing of payments, newest first."""
    query = current_domain.repository_for(PaymentStatusView)._dao.query
    if status:
        query = query.filter(status=status)
    views = sorted(fetch_all(query, order_by="payment_id"), key=lambda v: v.created_at, reverse=True)
    return [
        PaymentSummary(
            payment_id=str(v.payment_id),
            owner_id=str(v.owner_id),
            amount=v.amount,
            currency=v.currency,
            method=v.method,
            status=v.status,
            refunded_amount=v.refunded_amount or 0.0,
            ticket_count=v.ticket_count or 0,
            created_at=v.created_at,
        )
        for v in views
    ]


@payment_router.post("/webhook", response_model=StatusResponse)
async def process_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
    x_gateway_signature: str = Header(default=""),
) -> StatusResponse:
    """Process a payment gateway webhook callback.

    The signature is checked against the raw body, so the body is read
    as bytes and never re-serialized.
    """
    raw_body = await request.body()
    outcome = await run_in_threadpool(handle_gateway_event, raw_body, stripe_signature or x_gateway_signature)
    return StatusResponse(status=outcome)


@payment_router.get("/discrepancies", response_model=list[RefundDiscrepancyResponse])
def list_refund_discrepancies() -> list[RefundDiscrepancyResponse]:
    return [
        RefundDiscrepancyResponse(
            payment_id=d.payment_id,
            transaction_id=d.transaction_id,
            local_refunded=d.local_refunded,
            gateway_refunded=d.gateway_refunded,
            difference=d.difference,
        )
        for d in refund_discrepancies()
    ]


@payment_router.get("/{payment_id}/status", response_model=PaymentStatusResponse)
async def payment_status(
    payment_id: str,
    context: RequestContext = Depends(request_context),
) -> PaymentStatusResponse:
    info = get_payment_status(payment_id, context.owner_id)
    return PaymentStatusResponse(
        payment_id=info.payment_id,
        status=info.status,
        amount=info.amount,
        refunded_amount=info.refunded_amount,
        paid_at=info.paid_at,
    )


@payment_router.post("/{payment_id}/refund", response_model=RefundResponse)
def refund_payment(payment_id: str, body: RefundRequest) -> RefundResponse:
    """Refund part or all of a paid payment; the amount is capped."""
    payment = current_domain.process(RefundPayment(payment_id=payment_id, amount=body.amount), asynchronous=False)
    return RefundResponse(
        payment_id=str(payment.id),
        refunded_now=payment.last_refund.amount,
        refunded_amount=payment.refunded_amount,
        status=payment.status,
        refunded_at=payment.refunded_at,
    )


@payment_router.post("/{payment_id}/sync", response_model=StatusResponse)
def sync_with_gateway(payment_id: str) -> StatusResponse:
    """Poll the gateway for a payment whose webhook is late."""
    payment = sync_payment(payment_id)
    return StatusResponse(status=payment.status)


@payment_router.post("/{payment_id}/tickets/resend", response_model=StatusResponse)
def resend_tickets(payment_id: str) -> StatusResponse:
    sent = current_domain.process(ResendTickets(payment_id=payment_id), asynchronous=False)
    return StatusResponse(status="sent" if sent else "not_sent")


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    This endpoint is only available when PROTEAN_ENV is not 'production'.
    It allows toggling success/failure behavior for manual API testing.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


# ---------------------------------------------------------------------------
# Ticket Router
# ---------------------------------------------------------------------------
ticket_router = APIRouter(prefix="/tickets", tags=["tickets"])


@ticket_router.get("", response_model=list[TicketResponse])
async def my_tickets(
    status: str | None = None,
    context: RequestContext = Depends(request_context),
) -> list[TicketResponse]:
    return [_ticket_response(t) for t in tickets_for_owner(context.owner_id, status)]


@ticket_router.get("/stats", response_model=list[SalesStatsResponse])
async def ticket_sales_stats() -> list[SalesStatsResponse]:
    return [
        SalesStatsResponse(
            product_id=str(r.product_id),
            product_name=r.product_name,
            category=r.category,
            issued_count=r.issued_count or 0,
            used_count=r.used_count or 0,
            refunded_count=r.refunded_count or 0,
            cancelled_count=r.cancelled_count or 0,
            revenue=r.revenue or 0.0,
        )
        for r in sales_stats()
    ]


@ticket_router.get("/scan/{token}", response_model=TicketInfoResponse)
async def lookup_ticket(token: str) -> TicketInfoResponse:
    """Resolve a scanned QR token without using the ticket."""
    info = ticket_info(token)
    return TicketInfoResponse(
        token=info.ticket.token,
        status=info.ticket.status,
        holder=TicketHolder(
            name=info.payment.owner_name or "",
            email=info.payment.owner_email or "",
        ),
        event=TicketEvent(
            name=info.product.name,
            category=info.product.category,
            date=info.product.event_date.isoformat() if info.product.event_date else None,
            time=info.product.event_time,
            location=info.product.location,
        ),
    )


@ticket_router.post("/scan/{token}", response_model=TicketResponse)
async def scan_ticket(token: str) -> TicketResponse:
    """Admit the holder; a second scan is refused with 409."""
    ticket = current_domain.process(ScanTicket(token=token), asynchronous=False)
    return _ticket_response(ticket)


@ticket_router.put("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(ticket_id: str, body: ChangeTicketStatusRequest) -> TicketResponse:
    ticket = current_domain.process(
        ChangeTicketStatus(ticket_id=ticket_id, status=body.status),
        asynchronous=False,
    )
    return _ticket_response(ticket)


@ticket_router.post("/complimentary", status_code=201, response_model=PaymentIdResponse)
def grant_complimentary_tickets(body: ComplimentaryTicketsRequest) -> PaymentIdResponse:
    recipient = RequestContext(
        owner_id=body.owner_id,
        owner_email=body.owner_email,
        owner_name=body.owner_name,
        locale=body.locale,
    )
    payment = issue_complimentary_tickets(recipient, body.product_id, body.quantity)
    return PaymentIdResponse(payment_id=str(payment.id))
