"""Payment gateway port (abstract interface).

Adapters speak to a PaymentIntent-style processor: an intent is created for
an amount, the processor later confirms or fails it through a signed
webhook, and refunds are issued against the intent's transaction id. The
webhook payload shape is shared by every adapter, so event parsing lives
here.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class IntentResult:
    """Result of creating a transaction intent."""

    success: bool
    transaction_id: str | None = None
    handshake_token: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class IntentStatus:
    """Gateway-side view of an intent, used by the poll path."""

    transaction_id: str
    status: str  # succeeded, failed, pending
    failure_reason: str | None = None


class GatewayEventType(Enum):
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    UNKNOWN = "unknown"


_EVENT_TYPES = {
    "payment_intent.succeeded": GatewayEventType.PAYMENT_SUCCEEDED,
    "checkout.session.completed": GatewayEventType.PAYMENT_SUCCEEDED,
    "payment_intent.payment_failed": GatewayEventType.PAYMENT_FAILED,
}


@dataclass(frozen=True)
class GatewayEvent:
    """A verified webhook notification, normalized for the reconciler."""

    event_id: str
    event_type: GatewayEventType
    raw_type: str
    transaction_id: str | None = None
    payment_id: str | None = None
    failure_reason: str | None = None


def parse_intent_event(data: dict) -> GatewayEvent:
    """Normalize a PaymentIntent-style webhook document."""
    raw_type = data.get("type", "")
    obj = (data.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}

    # Checkout sessions reference the intent rather than being one
    if obj.get("object") == "checkout.session":
        transaction_id = obj.get("payment_intent")
    else:
        transaction_id = obj.get("id")

    last_error = obj.get("last_payment_error") or {}
    return GatewayEvent(
        event_id=data.get("id", ""),
        event_type=_EVENT_TYPES.get(raw_type, GatewayEventType.UNKNOWN),
        raw_type=raw_type,
        transaction_id=transaction_id,
        payment_id=metadata.get("payment_uuid"),
        failure_reason=last_error.get("message"),
    )


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(
        self,
        amount: float,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> IntentResult:
        """Create a transaction intent for ``amount`` in major units."""
        ...

    @abstractmethod
    def create_refund(
        self,
        transaction_id: str,
        amount: float,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Refund part or all of a confirmed intent."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Check that ``payload`` (the raw request body) came from the gateway."""
        ...

    @abstractmethod
    def retrieve_intent(self, transaction_id: str) -> IntentStatus:
        """Current gateway-side status. Raises GatewayUnavailableError when unreachable."""
        ...

    @abstractmethod
    def refunded_total(self, transaction_id: str) -> float:
        """Total refunded on the gateway side for an intent, in major units.

        Raises GatewayUnavailableError when the gateway cannot be reached.
        """
        ...

    def parse_event(self, payload: bytes) -> GatewayEvent:
        """Parse a raw body that already passed signature verification."""
        return parse_intent_event(json.loads(payload))
