"""Checkout: from cart to a Pending payment with a gateway intent.

``create_payment`` is the orchestrator. It runs three short units of work
around the gateway call instead of one long one:

1. ``OpenCheckout`` reuses the Pending payment for (owner, cart) or creates
   one from a fresh snapshot, and commits it.
2. The gateway is asked for an intent, keyed by the payment id so a retried
   call returns the same intent.
3. ``AttachGatewayIntent`` or ``RecordIntentFailure`` records the outcome.

A crash between steps leaves a committed Pending payment. The next checkout
for the same cart, a webhook or a poll picks it up again.
"""

from dataclasses import replace
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ticketing.cart.cart import Cart, CartStatus
from ticketing.catalog.product import Product
from ticketing.config import get_settings
from ticketing.context import RequestContext
from ticketing.domain import ticketing
from ticketing.errors import GatewayUnavailableError, InvalidStateError, StockUnavailableError
from ticketing.gateway import get_gateway
from ticketing.payment.payment import Payment, PaymentMethod
from ticketing.payment.snapshot import CartSnapshot, SnapshotLine
from ticketing.stock.stock import Stock
from ticketing.ticket.issuance import enqueue_issuance

logger = structlog.get_logger(__name__)

CHECKOUT_METHODS = {PaymentMethod.STRIPE.value, PaymentMethod.PAYPAL.value}


def check_availability(requested: dict[str, int]) -> None:
    """Advisory stock check; raises StockUnavailableError listing every shortage."""
    stock_repo = current_domain.repository_for(Stock)
    shortages = {}
    for product_id, quantity in requested.items():
        try:
            available = stock_repo.get(product_id).available
        except ObjectNotFoundError:
            available = 0
        if quantity > available:
            shortages[product_id] = {"requested": quantity, "available": available}
    if shortages:
        raise StockUnavailableError(shortages)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@ticketing.command(part_of="Payment")
class OpenCheckout:
    owner_id = Identifier(required=True)
    owner_email = String(max_length=255)
    owner_name = String(max_length=255)
    cart_id = Identifier(required=True)
    method = String(choices=PaymentMethod, required=True)
    locale = String(max_length=10, default="en")
    requested_at = DateTime()


@ticketing.command(part_of="Payment")
class AttachGatewayIntent:
    payment_id = Identifier(required=True)
    transaction_id = String(max_length=255, required=True)
    handshake_token = String(max_length=255)


@ticketing.command(part_of="Payment")
class RecordIntentFailure:
    payment_id = Identifier(required=True)
    reason = String(max_length=500, required=True)


@ticketing.command(part_of="Payment")
class IssueComplimentaryPayment:
    """Admin grant: a free, already-Paid payment for ``quantity`` seats."""

    owner_id = Identifier(required=True)
    owner_email = String(max_length=255)
    owner_name = String(max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    locale = String(max_length=10, default="en")
    requested_at = DateTime()


@ticketing.command_handler(part_of=Payment)
class CheckoutHandler:
    @handle(OpenCheckout)
    def open_checkout(self, command) -> str:
        if command.method not in CHECKOUT_METHODS:
            raise ValidationError({"method": [f"Unsupported checkout method: {command.method}"]})

        payment_repo = current_domain.repository_for(Payment)
        existing = payment_repo.pending_for(str(command.owner_id), str(command.cart_id))
        if existing is not None:
            logger.info("Reusing pending payment", payment_id=str(existing.id), cart_id=str(command.cart_id))
            return str(existing.id)

        cart = current_domain.repository_for(Cart).get(command.cart_id)
        if str(cart.owner_id) != str(command.owner_id):
            raise ObjectNotFoundError("Cart not found")
        if cart.status != CartStatus.ACTIVE.value:
            raise InvalidStateError("cart", "Cart has already been checked out", current_status=cart.status)
        if not cart.lines:
            raise ValidationError({"cart": ["Cart is empty"]})

        requested: dict[str, int] = {}
        for line in cart.lines:
            requested[str(line.product_id)] = requested.get(str(line.product_id), 0) + line.quantity
        check_availability(requested)

        product_repo = current_domain.repository_for(Product)
        snapshot = CartSnapshot(
            locale=command.locale or "en",
            lines=tuple(
                SnapshotLine.from_product(product_repo.get(str(line.product_id)), line.quantity)
                for line in cart.lines
            ),
        )

        payment = Payment.create(
            owner_id=str(command.owner_id),
            owner_email=command.owner_email or "",
            owner_name=command.owner_name or "",
            cart_id=str(command.cart_id),
            snapshot=snapshot,
            method=command.method,
            currency=get_settings().currency,
            now=command.requested_at or datetime.now(UTC),
        )
        payment_repo.add(payment)
        logger.info(
            "Payment opened",
            payment_id=str(payment.id),
            owner_id=str(command.owner_id),
            amount=payment.amount,
        )
        return str(payment.id)

    @handle(AttachGatewayIntent)
    def attach_gateway_intent(self, command) -> None:
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.attach_intent(command.transaction_id, command.handshake_token, datetime.now(UTC))
        repo.add(payment)

    @handle(RecordIntentFailure)
    def record_intent_failure(self, command) -> None:
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.fail(command.reason, datetime.now(UTC))
        repo.add(payment)

    @handle(IssueComplimentaryPayment)
    def issue_complimentary_payment(self, command) -> str:
        check_availability({str(command.product_id): command.quantity})

        product = current_domain.repository_for(Product).get(command.product_id)
        paid_line = SnapshotLine.from_product(product, command.quantity)
        free_line = replace(paid_line, discount_rate=1.0, discounted_price=0.0)
        payment = Payment.create_complimentary(
            owner_id=str(command.owner_id),
            owner_email=command.owner_email or "",
            owner_name=command.owner_name or "",
            snapshot=CartSnapshot(locale=command.locale or "en", lines=(free_line,)),
            currency=get_settings().currency,
            now=command.requested_at or datetime.now(UTC),
        )
        current_domain.repository_for(Payment).add(payment)
        logger.info(
            "Complimentary payment created",
            payment_id=str(payment.id),
            product_id=str(command.product_id),
            quantity=command.quantity,
        )
        return str(payment.id)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
def create_payment(context: RequestContext, cart_id: str, method: str) -> Payment:
    """Open (or resume) the checkout for ``cart_id`` and obtain a gateway intent.

    Raises StockUnavailableError before anything is written, and
    GatewayUnavailableError after the payment has been marked Failed.
    """
    payment_id = current_domain.process(
        OpenCheckout(
            owner_id=context.owner_id,
            owner_email=context.owner_email,
            owner_name=context.owner_name,
            cart_id=cart_id,
            method=method,
            locale=context.locale,
            requested_at=context.now(),
        ),
        asynchronous=False,
    )
    repo = current_domain.repository_for(Payment)
    payment = repo.get(payment_id)
    if payment.transaction_id:
        return payment

    result = get_gateway().create_intent(
        amount=payment.amount,
        currency=payment.currency,
        metadata={"payment_uuid": payment_id, "cart_id": str(cart_id), "owner_id": context.owner_id},
        idempotency_key=payment_id,
    )
    if not result.success:
        logger.error("Gateway refused payment intent", payment_id=payment_id, reason=result.failure_reason)
        current_domain.process(
            RecordIntentFailure(payment_id=payment_id, reason=result.failure_reason or "Gateway error"),
            asynchronous=False,
        )
        raise GatewayUnavailableError("create_intent", result.failure_reason)

    current_domain.process(
        AttachGatewayIntent(
            payment_id=payment_id,
            transaction_id=result.transaction_id,
            handshake_token=result.handshake_token,
        ),
        asynchronous=False,
    )
    return repo.get(payment_id)


def issue_complimentary_tickets(recipient: RequestContext, product_id: str, quantity: int) -> Payment:
    """Grant free tickets to ``recipient`` and queue their issuance."""
    payment_id = current_domain.process(
        IssueComplimentaryPayment(
            owner_id=recipient.owner_id,
            owner_email=recipient.owner_email,
            owner_name=recipient.owner_name,
            product_id=product_id,
            quantity=quantity,
            locale=recipient.locale,
            requested_at=recipient.now(),
        ),
        asynchronous=False,
    )
    enqueue_issuance(payment_id)
    return current_domain.repository_for(Payment).get(payment_id)
