"""Ticket issuance: turns a Paid payment into tickets, exactly once.

One seat of the cart snapshot becomes one Ticket, identified by a
deterministic seat key (payment, line, seat). Issuance runs in a single unit
of work touching the Payment (its issuance marker), the Stock counters and
the new Tickets, so an observer sees either every ticket of the batch or
none. A re-run after a crash only fills in the seats that are missing.

Issuance is requested through ``enqueue_issuance``: with synchronous command
processing it runs inline, otherwise the Engine picks the command up.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ticketing.artifacts import get_blob_store, get_renderer
from ticketing.artifacts.renderer_port import TicketDocument
from ticketing.domain import ticketing
from ticketing.errors import InvalidStateError
from ticketing.payment.payment import Payment, PaymentStatus
from ticketing.payment.snapshot import SnapshotLine
from ticketing.stock.stock import Stock
from ticketing.ticket.ticket import (
    Ticket,
    mint_token,
    pdf_filename_for,
    qr_filename_for,
    seat_key_for,
)

logger = structlog.get_logger(__name__)

MAX_TOKEN_ATTEMPTS = 5


@ticketing.command(part_of="Payment")
class IssueTickets:
    """Issue every ticket owed by a Paid payment."""

    payment_id = Identifier(required=True)


def enqueue_issuance(payment_id: str):
    """Submit the issuance task for ``payment_id``."""
    logger.info("Enqueuing ticket issuance", payment_id=payment_id)
    return current_domain.process(IssueTickets(payment_id=payment_id))


def _unique_token(ticket_repo, minted: set[str]) -> str:
    for _ in range(MAX_TOKEN_ATTEMPTS):
        token = mint_token()
        if token not in minted and not ticket_repo.token_exists(token):
            minted.add(token)
            return token
    raise InvalidStateError("token", "Could not mint a unique ticket token")


def _render_and_store(payment: Payment, line: SnapshotLine, token: str) -> tuple[str, str]:
    """Write the QR and PDF artifacts for one ticket; returns their keys."""
    renderer = get_renderer()
    store = get_blob_store()

    qr_png = renderer.render_qr(token)
    qr_key = store.put(qr_filename_for(token), qr_png, "image/png")

    pdf = renderer.render_ticket_pdf(
        TicketDocument(
            token=token,
            attendee_name=payment.owner_name or "",
            attendee_email=payment.owner_email or "",
            product_name=line.product_name,
            category=line.category,
            event_date=line.event_date,
            event_time=line.event_time,
            location=line.location,
            unit_price=line.discounted_price,
            locale=payment.locale or "en",
            qr_png=qr_png,
        )
    )
    pdf_key = store.put(pdf_filename_for(token), pdf, "application/pdf")
    return qr_key, pdf_key


@ticketing.command_handler(part_of=Payment)
class TicketIssuer:
    @handle(IssueTickets)
    def issue_tickets(self, command) -> list[Ticket]:
        payment_repo = current_domain.repository_for(Payment)
        ticket_repo = current_domain.repository_for(Ticket)
        stock_repo = current_domain.repository_for(Stock)

        payment = payment_repo.get(command.payment_id)
        payment_id = str(payment.id)
        snapshot = payment.snapshot
        existing = {t.seat_key: t for t in ticket_repo.for_payment(payment_id)}

        if payment.tickets_issued_at and len(existing) >= snapshot.seat_count:
            logger.info("Tickets already issued, skipping", payment_id=payment_id, tickets=len(existing))
            return sorted(existing.values(), key=lambda t: t.seat_key)

        if payment.status != PaymentStatus.PAID.value:
            raise InvalidStateError(
                "status",
                f"Tickets can only be issued for a Paid payment, not {payment.status}",
                current_status=payment.status,
            )

        now = datetime.now(UTC)
        minted: set[str] = set()
        issued: list[Ticket] = []

        for line_index, line in enumerate(snapshot.lines):
            missing = [
                seat_key_for(payment_id, line_index, seat)
                for seat in range(line.quantity)
                if seat_key_for(payment_id, line_index, seat) not in existing
            ]
            if not missing:
                continue

            stock = stock_repo.get(line.product_id)
            shortfall = stock.commit(len(missing), payment_id)
            if shortfall:
                logger.warning(
                    "Issuing tickets beyond available stock",
                    payment_id=payment_id,
                    product_id=line.product_id,
                    shortfall=shortfall,
                )
            stock_repo.add(stock)

            for seat_key in missing:
                token = _unique_token(ticket_repo, minted)
                qr_key, pdf_key = _render_and_store(payment, line, token)
                ticket = Ticket.issue(
                    token=token,
                    seat_key=seat_key,
                    line=line,
                    owner_id=str(payment.owner_id),
                    payment_id=payment_id,
                    qr_filename=qr_key,
                    pdf_filename=pdf_key,
                    now=now,
                )
                ticket_repo.add(ticket)
                issued.append(ticket)

        tickets = sorted([*existing.values(), *issued], key=lambda t: t.seat_key)
        payment.mark_tickets_issued([str(t.id) for t in tickets], now)
        payment_repo.add(payment)

        logger.info(
            "Tickets issued",
            payment_id=payment_id,
            issued=len(issued),
            total=len(tickets),
        )
        return tickets
