"""Issuance: exactly one ticket per paid seat, stock committed once."""

from datetime import UTC, datetime

import pytest
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.utils.globals import current_domain

from ticketing.context import RequestContext
from ticketing.errors import InvalidStateError
from ticketing.payment.checkout import create_payment
from ticketing.payment.payment import Payment
from ticketing.stock.stock import Stock
from ticketing.ticket.issuance import IssueTickets, enqueue_issuance
from ticketing.ticket.ticket import Ticket, TicketStatus, mint_token


def _tickets(payment_id):
    return current_domain.repository_for(Ticket).for_payment(str(payment_id))


class TestIssuance:
    def test_one_ticket_per_seat(self, paid_payment):
        tickets = _tickets(paid_payment.id)
        assert len(tickets) == 3
        assert {t.status for t in tickets} == {TicketStatus.ISSUED.value}
        assert len({t.token for t in tickets}) == 3
        assert sorted(t.seat_key for t in tickets) == [f"{paid_payment.id}:0:{i}" for i in range(3)]

    def test_stock_is_committed_for_every_seat(self, paid_payment, festival):
        assert current_domain.repository_for(Stock).get(festival).available == 7

    def test_running_issuance_again_is_a_no_op(self, paid_payment, festival):
        again = current_domain.process(IssueTickets(payment_id=str(paid_payment.id)), asynchronous=False)

        assert len(again) == 3
        assert len(_tickets(paid_payment.id)) == 3
        assert current_domain.repository_for(Stock).get(festival).available == 7

    def test_payment_records_issuance(self, paid_payment):
        payment = current_domain.repository_for(Payment).get(str(paid_payment.id))
        assert payment.tickets_issued_at is not None
        assert payment.ticket_count == 3

    def test_artifacts_are_stored_under_ticket_filenames(self, paid_payment, blob_store):
        for ticket in _tickets(paid_payment.id):
            assert ticket.qr_filename == f"qr_{ticket.token}.png"
            assert ticket.pdf_filename == f"ticket_{ticket.token}.pdf"
            assert blob_store.exists(ticket.qr_filename)
            assert blob_store.get(ticket.pdf_filename).startswith(b"%PDF")

    def test_ticket_pdf_shows_holder_and_event(self, paid_payment, blob_store):
        ticket = _tickets(paid_payment.id)[0]
        pdf = blob_store.get(ticket.pdf_filename).decode()
        assert "Ada Lovelace" in pdf
        assert "Summer Festival" in pdf
        assert "Parc des Expositions" in pdf

    def test_pending_payment_cannot_be_issued(self, pending_payment):
        with pytest.raises(InvalidStateError):
            current_domain.process(IssueTickets(payment_id=str(pending_payment.id)), asynchronous=False)
        assert _tickets(pending_payment.id) == []

    def test_renderer_failure_issues_nothing(self, pending_payment, renderer, deliver_webhook, festival):
        renderer.fail_with = RuntimeError("renderer down")
        with pytest.raises(RuntimeError):
            deliver_webhook("payment_intent.succeeded", pending_payment.transaction_id)

        assert _tickets(pending_payment.id) == []
        assert current_domain.repository_for(Stock).get(festival).available == 10

        # Payment stayed Paid; a retry fills the seats in
        renderer.fail_with = None
        enqueue_issuance(str(pending_payment.id))
        assert len(_tickets(pending_payment.id)) == 3


class TestOversell:
    def test_paid_seats_are_honored_beyond_stock(
        self, customer, register_product, make_cart, deliver_webhook
    ):
        product_id = register_product(stock=3)
        other = RequestContext(owner_id="cust-002", owner_email="grace@example.com")

        # Both checkouts pass the advisory stock check before either is paid
        first = create_payment(customer, make_cart(customer.owner_id, [(product_id, 3)]), "stripe")
        second = create_payment(other, make_cart(other.owner_id, [(product_id, 2)]), "stripe")

        deliver_webhook("payment_intent.succeeded", first.transaction_id)
        deliver_webhook("payment_intent.succeeded", second.transaction_id)

        assert len(_tickets(first.id)) == 3
        assert len(_tickets(second.id)) == 2
        assert current_domain.repository_for(Stock).get(product_id).available == 0


class TestIssuanceGuards:
    def test_stale_payment_cannot_record_a_second_issuance(self, pending_payment, deliver_webhook):
        # Two workers load the payment before either records issuance
        repo = current_domain.repository_for(Payment)
        deliver_webhook("payment_intent.succeeded", pending_payment.transaction_id)
        first = repo.get(str(pending_payment.id))
        second = repo.get(str(pending_payment.id))
        now = datetime.now(UTC)

        first.mark_tickets_issued(["t-1"], now)
        repo.add(first)

        second.mark_tickets_issued(["t-2"], now)
        with pytest.raises(ExpectedVersionError):
            repo.add(second)

    def test_seat_key_cannot_be_issued_twice(self, paid_payment):
        existing = _tickets(paid_payment.id)[0]
        line = paid_payment.snapshot.lines[0]

        duplicate = Ticket.issue(
            token=mint_token(),
            seat_key=existing.seat_key,
            line=line,
            owner_id=str(paid_payment.owner_id),
            payment_id=str(paid_payment.id),
            qr_filename="qr_duplicate.png",
            pdf_filename="ticket_duplicate.pdf",
            now=datetime.now(UTC),
        )
        with pytest.raises(ValidationError):
            current_domain.repository_for(Ticket).add(duplicate)

        assert len(_tickets(paid_payment.id)) == 3
