"""Operator report for refunds booked at the gateway but not locally."""

from protean.utils.globals import current_domain

from ticketing.errors import GatewayUnavailableError
from ticketing.payment.checkout import create_payment
from ticketing.payment.reconciliation import refund_discrepancies
from ticketing.payment.refund import RefundPayment


class TestRefundDiscrepancies:
    def test_consistent_refunds_report_nothing(self, paid_payment):
        current_domain.process(RefundPayment(payment_id=str(paid_payment.id), amount=20.0), asynchronous=False)
        assert refund_discrepancies() == []

    def test_refund_missing_locally_is_reported(self, paid_payment, gateway):
        # Gateway refunded, local commit never happened
        gateway.create_refund(paid_payment.transaction_id, 25.0)

        [discrepancy] = refund_discrepancies()

        assert discrepancy.payment_id == str(paid_payment.id)
        assert discrepancy.local_refunded == 0.0
        assert discrepancy.gateway_refunded == 25.0
        assert discrepancy.difference == 25.0

    def test_pending_payments_are_not_checked(self, pending_payment, gateway):
        gateway.create_refund(pending_payment.transaction_id, 5.0)
        assert refund_discrepancies() == []

    def test_unreachable_transaction_is_skipped(self, customer, festival, make_cart, deliver_webhook, gateway, monkeypatch):
        first = create_payment(customer, make_cart(customer.owner_id, [(festival, 1)]), "stripe")
        second = create_payment(customer, make_cart(customer.owner_id, [(festival, 1)]), "stripe")
        for payment in (first, second):
            deliver_webhook("payment_intent.succeeded", payment.transaction_id)
            gateway.create_refund(payment.transaction_id, 10.0)

        real_refunded_total = gateway.refunded_total

        def flaky_refunded_total(transaction_id):
            if transaction_id == first.transaction_id:
                raise GatewayUnavailableError("refunded_total", "timeout")
            return real_refunded_total(transaction_id)

        monkeypatch.setattr(gateway, "refunded_total", flaky_refunded_total)

        assert [d.payment_id for d in refund_discrepancies()] == [str(second.id)]
