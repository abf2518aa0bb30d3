"""Integration tests for the gateway webhook endpoint."""

from protean.utils.globals import current_domain

from ticketing.payment.payment import Payment, PaymentStatus
from ticketing.ticket.lookup import tickets_for_payment


class TestWebhookEndpoint:
    def test_success_webhook(self, post_webhook, pending_payment):
        response = post_webhook("payment_intent.succeeded", pending_payment.transaction_id)

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        payment = current_domain.repository_for(Payment).get(str(pending_payment.id))
        assert payment.status == PaymentStatus.PAID.value
        assert len(tickets_for_payment(str(payment.id))) == 3

    def test_failure_webhook(self, post_webhook, pending_payment):
        response = post_webhook(
            "payment_intent.payment_failed",
            pending_payment.transaction_id,
            failure_reason="Card declined",
        )
        assert response.json()["status"] == "failed"

    def test_replay_is_acknowledged(self, post_webhook, pending_payment):
        post_webhook("payment_intent.succeeded", pending_payment.transaction_id, event_id="evt_1")
        response = post_webhook("payment_intent.succeeded", pending_payment.transaction_id, event_id="evt_1")

        assert response.status_code == 200
        assert len(tickets_for_payment(str(pending_payment.id))) == 3

    def test_invalid_signature_is_401(self, client, gateway, pending_payment):
        body = gateway.build_event("payment_intent.succeeded", pending_payment.transaction_id)
        response = client.post(
            "/payments/webhook",
            content=body,
            headers={"Stripe-Signature": "forged"},
        )
        assert response.status_code == 401
        payment = current_domain.repository_for(Payment).get(str(pending_payment.id))
        assert payment.status == PaymentStatus.PENDING.value

    def test_missing_signature_is_401(self, client, gateway, pending_payment):
        body = gateway.build_event("payment_intent.succeeded", pending_payment.transaction_id)
        assert client.post("/payments/webhook", content=body).status_code == 401

    def test_legacy_signature_header_is_accepted(self, client, gateway, pending_payment):
        body = gateway.build_event("payment_intent.succeeded", pending_payment.transaction_id)
        response = client.post("/payments/webhook", content=body, headers={"X-Gateway-Signature": gateway.sign(body)})
        assert response.json()["status"] == "confirmed"

    def test_unknown_event_is_ignored(self, post_webhook, pending_payment):
        response = post_webhook("customer.created", pending_payment.transaction_id)
        assert response.json()["status"] == "ignored"

    def test_unmatched_transaction_is_acknowledged(self, post_webhook):
        response = post_webhook("payment_intent.succeeded", "pi_stranger")
        assert response.status_code == 200
        assert response.json()["status"] == "unmatched"
