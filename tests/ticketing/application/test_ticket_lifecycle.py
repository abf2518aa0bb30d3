"""Scanning and withdrawing tickets after issuance."""

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ticketing.errors import InvalidStateError
from ticketing.stock.stock import Stock
from ticketing.ticket.lifecycle import ChangeTicketStatus, ScanTicket
from ticketing.ticket.lookup import ticket_info, tickets_for_owner, tickets_for_payment
from ticketing.ticket.ticket import TicketStatus


def _first_ticket(payment):
    return tickets_for_payment(str(payment.id))[0]


def _available(product_id):
    return current_domain.repository_for(Stock).get(product_id).available


class TestScan:
    def test_first_scan_uses_the_ticket(self, paid_payment):
        ticket = _first_ticket(paid_payment)
        scanned = current_domain.process(ScanTicket(token=ticket.token), asynchronous=False)
        assert scanned.status == TicketStatus.USED.value
        assert scanned.used_at is not None

    def test_second_scan_is_refused(self, paid_payment):
        ticket = _first_ticket(paid_payment)
        current_domain.process(ScanTicket(token=ticket.token), asynchronous=False)

        with pytest.raises(InvalidStateError):
            current_domain.process(ScanTicket(token=ticket.token), asynchronous=False)

    def test_scanning_does_not_touch_stock(self, paid_payment, festival):
        before = _available(festival)
        current_domain.process(ScanTicket(token=_first_ticket(paid_payment).token), asynchronous=False)
        assert _available(festival) == before

    def test_unknown_token(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ScanTicket(token="no-such-token"), asynchronous=False)


class TestStatusChange:
    @pytest.mark.parametrize("status", ["Cancelled", "Refunded"])
    def test_withdrawing_a_ticket_returns_its_seat(self, paid_payment, festival, status):
        ticket = _first_ticket(paid_payment)
        before = _available(festival)

        changed = current_domain.process(
            ChangeTicketStatus(ticket_id=str(ticket.id), status=status), asynchronous=False
        )

        assert changed.status == status
        assert _available(festival) == before + 1

    def test_cancelling_one_leaves_the_others_issued(self, paid_payment):
        first, *others = tickets_for_payment(str(paid_payment.id))
        current_domain.process(ChangeTicketStatus(ticket_id=str(first.id), status="Cancelled"), asynchronous=False)

        remaining = [t for t in tickets_for_payment(str(paid_payment.id)) if t.id != first.id]
        assert [t.status for t in remaining] == [TicketStatus.ISSUED.value] * len(others)

    def test_used_ticket_cannot_be_cancelled(self, paid_payment, festival):
        ticket = _first_ticket(paid_payment)
        current_domain.process(ScanTicket(token=ticket.token), asynchronous=False)
        before = _available(festival)

        with pytest.raises(InvalidStateError):
            current_domain.process(
                ChangeTicketStatus(ticket_id=str(ticket.id), status="Cancelled"), asynchronous=False
            )
        assert _available(festival) == before

    def test_unknown_status_is_rejected(self, paid_payment):
        ticket = _first_ticket(paid_payment)
        with pytest.raises(ValidationError):
            current_domain.process(
                ChangeTicketStatus(ticket_id=str(ticket.id), status="Lost"), asynchronous=False
            )


class TestLookup:
    def test_ticket_info_resolves_holder_and_event(self, paid_payment):
        info = ticket_info(_first_ticket(paid_payment).token)
        assert info.payment.owner_name == "Ada Lovelace"
        assert info.product.name == "Summer Festival"
        assert info.ticket.status == TicketStatus.ISSUED.value

    def test_ticket_info_for_unknown_token(self):
        with pytest.raises(ObjectNotFoundError):
            ticket_info("missing")

    def test_tickets_for_owner_filters_by_status(self, paid_payment, customer):
        ticket = _first_ticket(paid_payment)
        current_domain.process(ScanTicket(token=ticket.token), asynchronous=False)

        assert len(tickets_for_owner(customer.owner_id)) == 3
        used = tickets_for_owner(customer.owner_id, status="Used")
        assert [t.token for t in used] == [ticket.token]
