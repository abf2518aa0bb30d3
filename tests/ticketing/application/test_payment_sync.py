"""Polling the gateway when a webhook is late or lost."""

import pytest
from protean.utils.globals import current_domain

from ticketing.payment.payment import Payment, PaymentStatus
from ticketing.payment.sync import sync_payment
from ticketing.ticket.lookup import tickets_for_payment


class TestSyncPayment:
    def test_pending_intent_stays_pending(self, pending_payment):
        assert sync_payment(str(pending_payment.id)).status == PaymentStatus.PENDING.value

    def test_succeeded_intent_confirms_and_issues(self, pending_payment, gateway):
        gateway.settle(pending_payment.transaction_id, succeeded=True)

        payment = sync_payment(str(pending_payment.id))

        assert payment.status == PaymentStatus.PAID.value
        assert len(tickets_for_payment(str(payment.id))) == 3

    def test_failed_intent_fails_payment(self, pending_payment, gateway):
        gateway.settle(pending_payment.transaction_id, succeeded=False, failure_reason="Expired card")

        payment = sync_payment(str(pending_payment.id))

        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == "Expired card"

    def test_sync_then_webhook_issues_once(self, pending_payment, gateway, deliver_webhook):
        gateway.settle(pending_payment.transaction_id, succeeded=True)
        sync_payment(str(pending_payment.id))
        deliver_webhook("payment_intent.succeeded", pending_payment.transaction_id)

        assert len(tickets_for_payment(str(pending_payment.id))) == 3

    def test_paid_payment_without_tickets_is_requeued(self, pending_payment, renderer, deliver_webhook):
        renderer.fail_with = RuntimeError("renderer down")
        with pytest.raises(RuntimeError):
            deliver_webhook("payment_intent.succeeded", pending_payment.transaction_id)
        renderer.fail_with = None

        payment = sync_payment(str(pending_payment.id))

        assert payment.tickets_issued_at is not None
        assert len(tickets_for_payment(str(payment.id))) == 3

    def test_settled_payment_is_left_alone(self, paid_payment, gateway):
        calls_before = len(gateway.calls)
        payment = sync_payment(str(paid_payment.id))
        assert payment.status == PaymentStatus.PAID.value
        assert len(gateway.calls) == calls_before
        assert current_domain.repository_for(Payment).get(str(paid_payment.id)).ticket_count == 3
