"""Stripe payment gateway adapter.

Uses the stripe-python SDK: PaymentIntents for checkout, Refunds against the
intent, and ``stripe.Webhook.construct_event`` for signature checks. Amounts
cross the boundary in minor units (cents). Network-level retries and the
request timeout are SDK settings; business-level retries never happen here.
"""

from decimal import ROUND_HALF_UP, Decimal

import stripe
import structlog

from ticketing.errors import GatewayUnavailableError
from ticketing.gateway.port import IntentResult, IntentStatus, PaymentGateway, RefundResult

logger = structlog.get_logger(__name__)


def to_minor_units(amount: float) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> float:
    return float(Decimal(amount) / 100)


class StripeGateway(PaymentGateway):
    """Production gateway backed by Stripe PaymentIntents."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        timeout: float = 10.0,
        max_network_retries: int = 2,
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.max_network_retries = max_network_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def create_intent(
        self,
        amount: float,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> IntentResult:
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=f"intent_{idempotency_key}",
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe intent creation failed", error=str(exc), error_type=type(exc).__name__)
            return IntentResult(success=False, gateway_status="failed", failure_reason=str(exc))

        return IntentResult(
            success=True,
            transaction_id=intent.id,
            handshake_token=intent.client_secret,
            gateway_status=intent.status,
        )

    def create_refund(
        self,
        transaction_id: str,
        amount: float,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        params = {
            "payment_intent": transaction_id,
            "amount": to_minor_units(amount),
            "api_key": self.api_key,
        }
        if idempotency_key:
            params["idempotency_key"] = f"refund_{idempotency_key}"
        try:
            refund = stripe.Refund.create(**params)
        except stripe.StripeError as exc:
            logger.error("Stripe refund failed", transaction_id=transaction_id, error=str(exc))
            return RefundResult(success=False, gateway_status="failed", failure_reason=str(exc))

        return RefundResult(success=True, refund_id=refund.id, gateway_status=refund.status)

    def retrieve_intent(self, transaction_id: str) -> IntentStatus:
        try:
            intent = stripe.PaymentIntent.retrieve(transaction_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            logger.error("Stripe intent lookup failed", transaction_id=transaction_id, error=str(exc))
            raise GatewayUnavailableError("retrieve_intent", str(exc)) from exc

        if intent.status == "succeeded":
            return IntentStatus(transaction_id=transaction_id, status="succeeded")
        if intent.status == "canceled":
            return IntentStatus(transaction_id=transaction_id, status="failed", failure_reason="canceled")
        error = intent.get("last_payment_error")
        if intent.status == "requires_payment_method" and error:
            return IntentStatus(transaction_id=transaction_id, status="failed", failure_reason=error.get("message"))
        return IntentStatus(transaction_id=transaction_id, status="pending")

    def refunded_total(self, transaction_id: str) -> float:
        try:
            refunds = stripe.Refund.list(payment_intent=transaction_id, limit=100, api_key=self.api_key)
            cents = sum(r.amount for r in refunds.auto_paging_iter() if r.status in ("succeeded", "pending"))
        except stripe.StripeError as exc:
            logger.error("Stripe refund listing failed", transaction_id=transaction_id, error=str(exc))
            raise GatewayUnavailableError("refunded_total", str(exc)) from exc
        return from_minor_units(cents)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("Stripe webhook signature invalid", error=str(exc))
            return False
        return True
