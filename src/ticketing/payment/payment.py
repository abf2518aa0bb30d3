"""Payment aggregate (CQRS): one checkout attempt and its money movement.

The payment embeds a frozen snapshot of the cart it was created from, so
later catalog edits never change what was sold or what it cost.

State Machine:
    PENDING → PAID → REFUNDED
    PENDING → FAILED

Partial refunds keep the payment PAID until the refunded total is within a
cent of the amount.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ticketing.catalog.product import round_money
from ticketing.domain import ticketing
from ticketing.errors import InvalidStateError
from ticketing.payment.events import (
    PaymentConfirmed,
    PaymentCreated,
    PaymentFailed,
    PaymentIntentAttached,
    PaymentRefunded,
    TicketsIssued,
)
from ticketing.payment.snapshot import CartSnapshot
from ticketing.utils.query import fetch_all

REFUND_EPSILON = 0.01


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    FREE = "free"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}


@ticketing.entity(part_of="Payment")
class Refund:
    """One refund confirmed by the gateway."""

    amount = Float(required=True)
    gateway_refund_id = String(max_length=255)
    refunded_at = DateTime(required=True)


@ticketing.aggregate
class Payment:
    owner_id = Identifier(required=True)
    owner_email = String(max_length=255)
    owner_name = String(max_length=255)
    cart_id = Identifier()
    cart_snapshot = Text(required=True)  # JSON array of snapshot lines
    locale = String(max_length=10, default="en")
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="eur")
    method = String(choices=PaymentMethod, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    handshake_token = String(max_length=255)
    failure_reason = String(max_length=500)
    paid_at = DateTime()
    refunded_at = DateTime()
    refunded_amount = Float(default=0.0)
    refunds = HasMany(Refund)
    tickets_issued_at = DateTime()
    ticket_count = Integer(default=0)
    tickets_notified_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refunds_never_exceed_amount(self):
        if (self.refunded_amount or 0.0) > (self.amount or 0.0) + REFUND_EPSILON:
            raise ValidationError({"refunded_amount": ["Refunded amount cannot exceed the payment amount"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        owner_id: str,
        snapshot: CartSnapshot,
        method: str,
        currency: str,
        now: datetime,
        cart_id: str | None = None,
        owner_email: str = "",
        owner_name: str = "",
    ):
        """Open a Pending payment priced from the snapshot."""
        if not snapshot.lines:
            raise ValidationError({"cart": ["Cart is empty"]})

        payment = cls(
            owner_id=owner_id,
            owner_email=owner_email,
            owner_name=owner_name,
            cart_id=cart_id,
            cart_snapshot=snapshot.to_json(),
            locale=snapshot.locale,
            amount=float(snapshot.total),
            currency=currency,
            method=method,
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentCreated(
                payment_id=str(payment.id),
                owner_id=owner_id,
                cart_id=cart_id,
                amount=payment.amount,
                currency=currency,
                method=method,
                seat_count=snapshot.seat_count,
                created_at=now,
            )
        )
        return payment

    @classmethod
    def create_complimentary(
        cls,
        owner_id: str,
        snapshot: CartSnapshot,
        currency: str,
        now: datetime,
        owner_email: str = "",
        owner_name: str = "",
    ):
        """A zero-amount payment that is Paid from the start."""
        if snapshot.total != 0:
            raise ValidationError({"amount": ["Complimentary payments must be free"]})
        payment = cls.create(
            owner_id=owner_id,
            snapshot=snapshot,
            method=PaymentMethod.FREE.value,
            currency=currency,
            now=now,
            owner_email=owner_email,
            owner_name=owner_name,
        )
        payment.confirm(now)
        return payment

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def snapshot(self) -> CartSnapshot:
        return CartSnapshot.from_json(self.cart_snapshot, locale=self.locale or "en")

    @property
    def remaining_refundable(self) -> float:
        return float(round_money(Decimal(str(self.amount)) - Decimal(str(self.refunded_amount or 0.0))))

    def _assert_can_transition(self, target_status: PaymentStatus) -> None:
        current = PaymentStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateError(
                "status",
                f"Cannot transition from {current.value} to {target_status.value}",
                current_status=current.value,
            )

    # -------------------------------------------------------------------
    # Gateway lifecycle
    # -------------------------------------------------------------------
    def attach_intent(self, transaction_id: str, handshake_token: str | None, now: datetime) -> None:
        if self.status != PaymentStatus.PENDING.value:
            raise InvalidStateError(
                "status", "Gateway intent can only be attached to a Pending payment", current_status=self.status
            )
        self.transaction_id = transaction_id
        self.handshake_token = handshake_token
        self.updated_at = now
        self.raise_(PaymentIntentAttached(payment_id=str(self.id), transaction_id=transaction_id, attached_at=now))

    def confirm(self, now: datetime, transaction_id: str | None = None) -> bool:
        """Pending → Paid. Returns False when the payment is already past Paid.

        A confirmation for a Failed payment is not a replay: it contradicts
        what the gateway said earlier and is refused.
        """
        if self.status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            return False
        self._assert_can_transition(PaymentStatus.PAID)

        if transaction_id and not self.transaction_id:
            self.transaction_id = transaction_id
        self.status = PaymentStatus.PAID.value
        self.paid_at = now
        self.updated_at = now
        self.raise_(
            PaymentConfirmed(
                payment_id=str(self.id),
                owner_id=str(self.owner_id),
                amount=self.amount,
                currency=self.currency,
                method=self.method,
                transaction_id=self.transaction_id,
                paid_at=now,
            )
        )
        return True

    def fail(self, reason: str, now: datetime) -> bool:
        """Pending → Failed. Terminal payments ignore late failure notices."""
        if self.status != PaymentStatus.PENDING.value:
            return False
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now
        self.raise_(PaymentFailed(payment_id=str(self.id), owner_id=str(self.owner_id), reason=reason, failed_at=now))
        return True

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    def refundable(self, requested: float) -> float:
        """Cap ``requested`` to what is left to refund."""
        if requested is None or requested <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if self.status != PaymentStatus.PAID.value:
            raise InvalidStateError(
                "status", f"Cannot refund a {self.status} payment", current_status=self.status
            )
        remaining = self.remaining_refundable
        if remaining <= 0:
            raise InvalidStateError("amount", "Nothing left to refund", current_status=self.status)
        return min(float(round_money(Decimal(str(requested)))), remaining)

    def record_refund(self, amount: float, gateway_refund_id: str | None, now: datetime) -> None:
        """Book a refund the gateway already executed."""
        if self.status != PaymentStatus.PAID.value:
            raise InvalidStateError("status", f"Cannot refund a {self.status} payment", current_status=self.status)

        new_total = float(round_money(Decimal(str(self.refunded_amount or 0.0)) + Decimal(str(amount))))
        refund_id = str(uuid4())
        self.add_refunds(Refund(id=refund_id, amount=amount, gateway_refund_id=gateway_refund_id, refunded_at=now))
        self.refunded_amount = new_total
        self.refunded_at = now
        self.updated_at = now

        fully_refunded = abs(new_total - self.amount) < REFUND_EPSILON
        if fully_refunded:
            self._assert_can_transition(PaymentStatus.REFUNDED)
            self.status = PaymentStatus.REFUNDED.value

        self.raise_(
            PaymentRefunded(
                payment_id=str(self.id),
                refund_id=refund_id,
                gateway_refund_id=gateway_refund_id,
                amount=amount,
                refunded_total=new_total,
                fully_refunded=fully_refunded,
                refunded_at=now,
            )
        )

    @property
    def last_refund(self) -> Refund | None:
        refunds = sorted(self.refunds or [], key=lambda r: r.refunded_at)
        return refunds[-1] if refunds else None

    # -------------------------------------------------------------------
    # Issuance
    # -------------------------------------------------------------------
    def mark_tickets_issued(self, ticket_ids: list[str], now: datetime) -> None:
        self.tickets_issued_at = now
        self.ticket_count = len(ticket_ids)
        self.updated_at = now
        self.raise_(
            TicketsIssued(
                payment_id=str(self.id),
                owner_id=str(self.owner_id),
                owner_email=self.owner_email,
                ticket_ids=json.dumps(ticket_ids),
                ticket_count=len(ticket_ids),
                issued_at=now,
            )
        )

    def mark_tickets_notified(self, now: datetime) -> None:
        self.tickets_notified_at = now
        self.updated_at = now


@ticketing.repository(part_of=Payment)
class PaymentRepository:
    """Named queries over payments; every relation is fetched explicitly."""

    def pending_for(self, owner_id: str, cart_id: str) -> Payment | None:
        results = self._dao.query.filter(
            owner_id=owner_id,
            cart_id=cart_id,
            status=PaymentStatus.PENDING.value,
        ).all()
        return results.items[0] if results.items else None

    def by_transaction(self, transaction_id: str) -> Payment | None:
        results = self._dao.query.filter(transaction_id=transaction_id).all()
        return results.items[0] if results.items else None

    def for_owner(self, owner_id: str) -> list[Payment]:
        return fetch_all(self._dao.query.filter(owner_id=owner_id))

    def with_status(self, status: str) -> list[Payment]:
        return fetch_all(self._dao.query.filter(status=status))
