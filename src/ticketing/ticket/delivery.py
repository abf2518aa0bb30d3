"""Ticket delivery: one email per issuance batch, best effort.

Runs after the issuance unit of work has committed, so a delivery failure
never touches the tickets. Failures are logged and leave
``tickets_notified_at`` unset; ``ResendTickets`` tries again.
"""

import json
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ticketing.artifacts import get_blob_store
from ticketing.channel import Attachment, get_email_channel
from ticketing.domain import ticketing
from ticketing.payment.events import TicketsIssued
from ticketing.payment.payment import Payment
from ticketing.ticket.ticket import Ticket

logger = structlog.get_logger(__name__)

_SUBJECTS = {
    "en": "Your tickets",
    "fr": "Vos billets",
    "de": "Ihre Tickets",
}


def _compose(payment: Payment, tickets: list[Ticket]) -> tuple[str, str]:
    subject = _SUBJECTS.get(payment.locale or "en", _SUBJECTS["en"])
    lines = [f"Hello {payment.owner_name or payment.owner_email},", ""]
    for ticket in tickets:
        product = ticket.product
        lines.append(f"- {product['product_name']} ({product['category']}): {ticket.token}")
    lines.append("")
    lines.append(f"Order reference: {payment.id}")
    return subject, "\n".join(lines)


def deliver_tickets(payment_id: str) -> bool:
    """Send all tickets of a payment in one message. Returns True when sent."""
    payment_repo = current_domain.repository_for(Payment)
    payment = payment_repo.get(payment_id)
    tickets = sorted(current_domain.repository_for(Ticket).for_payment(payment_id), key=lambda t: t.seat_key)

    if not payment.owner_email:
        logger.warning("No email address for ticket delivery", payment_id=payment_id)
        return False
    if not tickets:
        logger.warning("No tickets to deliver", payment_id=payment_id)
        return False

    subject, body = _compose(payment, tickets)
    store = get_blob_store()
    try:
        attachments = [Attachment(t.pdf_filename, store.get(t.pdf_filename)) for t in tickets]
        result = get_email_channel().send(
            to=payment.owner_email,
            subject=subject,
            body=body,
            attachments=attachments,
        )
    except Exception as exc:
        logger.error("Ticket delivery failed", payment_id=payment_id, error=str(exc))
        return False

    if result.get("status") != "sent":
        logger.error("Ticket delivery failed", payment_id=payment_id, error=result.get("error"))
        return False

    payment.mark_tickets_notified(datetime.now(UTC))
    payment_repo.add(payment)
    logger.info("Tickets delivered", payment_id=payment_id, message_id=result.get("message_id"))
    return True


@ticketing.event_handler(part_of=Payment)
class TicketDeliveryHandler:
    @handle(TicketsIssued)
    def on_tickets_issued(self, event: TicketsIssued) -> None:
        ticket_ids = json.loads(event.ticket_ids)
        logger.info("Delivering tickets", payment_id=str(event.payment_id), tickets=len(ticket_ids))
        deliver_tickets(str(event.payment_id))


@ticketing.command(part_of="Payment")
class ResendTickets:
    payment_id = Identifier(required=True)


@ticketing.command_handler(part_of=Payment)
class ResendTicketsHandler:
    @handle(ResendTickets)
    def resend_tickets(self, command) -> bool:
        return deliver_tickets(str(command.payment_id))
