"""Ticket status changes after issuance.

Scanning at the venue uses a ticket; it never touches stock. Refunding or
cancelling a ticket gives its seat back to the stock counter in the same
unit of work. Financial refunds are separate: see ``payment/refund.py``.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.stock.stock import Stock
from ticketing.ticket.ticket import SEAT_RELEASING_STATUSES, Ticket, TicketStatus

logger = structlog.get_logger(__name__)


@ticketing.command(part_of="Ticket")
class ScanTicket:
    token = String(max_length=64, required=True)


@ticketing.command(part_of="Ticket")
class ChangeTicketStatus:
    ticket_id = Identifier(required=True)
    status = String(choices=TicketStatus, required=True)


@ticketing.command_handler(part_of=Ticket)
class TicketLifecycleHandler:
    @handle(ScanTicket)
    def scan_ticket(self, command) -> Ticket:
        repo = current_domain.repository_for(Ticket)
        ticket = repo.by_token(command.token)
        if ticket is None:
            raise ObjectNotFoundError("Ticket not found")

        ticket.scan(datetime.now(UTC))
        repo.add(ticket)
        logger.info("Ticket scanned", ticket_id=str(ticket.id), payment_id=str(ticket.payment_id))
        return ticket

    @handle(ChangeTicketStatus)
    def change_ticket_status(self, command) -> Ticket:
        repo = current_domain.repository_for(Ticket)
        ticket = repo.get(command.ticket_id)
        target = TicketStatus(command.status)

        ticket.change_status(target, datetime.now(UTC))
        repo.add(ticket)

        if target in SEAT_RELEASING_STATUSES:
            stock_repo = current_domain.repository_for(Stock)
            stock = stock_repo.get(str(ticket.product_id))
            stock.release(ticket_id=str(ticket.id), reason=target.value)
            stock_repo.add(stock)

        logger.info("Ticket status changed", ticket_id=str(ticket.id), status=target.value)
        return ticket
