"""Read paths over tickets: token resolution and listings."""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ticketing.catalog.product import Product
from ticketing.payment.payment import Payment
from ticketing.ticket.ticket import Ticket


@dataclass(frozen=True)
class TicketInfo:
    ticket: Ticket
    payment: Payment
    product: Product


def ticket_info(token: str) -> TicketInfo:
    """Resolve a scanned token to its ticket, payment and product."""
    ticket = current_domain.repository_for(Ticket).by_token(token)
    if ticket is None:
        raise ObjectNotFoundError("Ticket not found")
    return TicketInfo(
        ticket=ticket,
        payment=current_domain.repository_for(Payment).get(str(ticket.payment_id)),
        product=current_domain.repository_for(Product).get(str(ticket.product_id)),
    )


def tickets_for_owner(owner_id: str, status: str | None = None) -> list[Ticket]:
    tickets = current_domain.repository_for(Ticket).for_owner(owner_id)
    if status:
        tickets = [t for t in tickets if t.status == status]
    return sorted(tickets, key=lambda t: t.issued_at)


def tickets_for_payment(payment_id: str) -> list[Ticket]:
    return sorted(current_domain.repository_for(Ticket).for_payment(payment_id), key=lambda t: t.seat_key)
