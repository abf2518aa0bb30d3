"""Configurable fake payment gateway for development and testing.

Keeps intents in memory, signs webhook bodies with HMAC-SHA256 and can be
switched to fail at runtime through ``/payments/gateway/configure``. The
helpers ``build_event`` and ``sign`` let tests and local tooling produce
webhook deliveries exactly as the real processor would send them.
"""

import hashlib
import hmac
import json
from uuid import uuid4

from ticketing.gateway.port import IntentResult, IntentStatus, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    """In-memory gateway that behaves like a PaymentIntent processor."""

    def __init__(self, webhook_secret: str = "whsec_test") -> None:
        self.webhook_secret = webhook_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        self.intents: dict[str, dict] = {}
        self._by_idempotency_key: dict[str, str] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_intent(
        self,
        amount: float,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> IntentResult:
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        if not self.should_succeed:
            return IntentResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

        transaction_id = self._by_idempotency_key.get(idempotency_key)
        if transaction_id is None:
            transaction_id = f"pi_fake_{uuid4().hex[:16]}"
            self._by_idempotency_key[idempotency_key] = transaction_id
            self.intents[transaction_id] = {
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
                "status": "requires_payment_method",
                "refunded": 0.0,
                "client_secret": f"{transaction_id}_secret_{uuid4().hex[:12]}",
            }

        intent = self.intents[transaction_id]
        return IntentResult(
            success=True,
            transaction_id=transaction_id,
            handshake_token=intent["client_secret"],
            gateway_status=intent["status"],
        )

    def create_refund(
        self,
        transaction_id: str,
        amount: float,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "transaction_id": transaction_id,
                "amount": amount,
                "idempotency_key": idempotency_key,
            }
        )
        if not self.should_succeed:
            return RefundResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

        intent = self.intents.get(transaction_id)
        if intent is not None:
            intent["refunded"] = round(intent["refunded"] + amount, 2)
        return RefundResult(success=True, refund_id=f"re_fake_{uuid4().hex[:16]}", gateway_status="succeeded")

    def retrieve_intent(self, transaction_id: str) -> IntentStatus:
        self.calls.append({"method": "retrieve_intent", "transaction_id": transaction_id})
        intent = self.intents.get(transaction_id)
        if intent is None:
            return IntentStatus(transaction_id=transaction_id, status="failed", failure_reason="No such intent")
        status = {"succeeded": "succeeded", "payment_failed": "failed", "canceled": "failed"}.get(
            intent["status"], "pending"
        )
        return IntentStatus(transaction_id=transaction_id, status=status, failure_reason=intent.get("failure_reason"))

    def refunded_total(self, transaction_id: str) -> float:
        intent = self.intents.get(transaction_id)
        return intent["refunded"] if intent else 0.0

    # -------------------------------------------------------------------
    # Simulation helpers
    # -------------------------------------------------------------------
    def settle(self, transaction_id: str, succeeded: bool = True, failure_reason: str | None = None) -> None:
        """Move an intent to its final gateway-side status without a webhook."""
        intent = self.intents[transaction_id]
        intent["status"] = "succeeded" if succeeded else "payment_failed"
        intent["failure_reason"] = None if succeeded else (failure_reason or self.failure_reason)

    def build_event(
        self,
        event_type: str,
        transaction_id: str,
        payment_id: str | None = None,
        failure_reason: str | None = None,
        event_id: str | None = None,
    ) -> bytes:
        """Serialize a webhook body for ``transaction_id``."""
        intent = self.intents.get(transaction_id, {})
        metadata = dict(intent.get("metadata", {}))
        if payment_id is not None:
            metadata["payment_uuid"] = payment_id
        obj = {"id": transaction_id, "object": "payment_intent", "metadata": metadata}
        if failure_reason:
            obj["last_payment_error"] = {"message": failure_reason}
        body = {"id": event_id or f"evt_fake_{uuid4().hex[:16]}", "type": event_type, "data": {"object": obj}}
        return json.dumps(body).encode("utf-8")

    def sign(self, payload: bytes) -> str:
        return hmac.new(self.webhook_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.sign(payload), signature)
