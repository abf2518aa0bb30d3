"""Gateway webhook reconciliation.

Gateways deliver notifications at least once, late and in any order, and
redeliver whenever they do not get a timely 2xx. Everything here is
therefore safe to replay: transitions that already happened are no-ops and
issuance has its own guard. The signature is checked against the raw body
before anything is parsed.

Domain errors (an event for an unknown payment, a success for a payment we
already failed) are logged and acknowledged, because redelivery cannot fix
them. Anything else propagates so the gateway retries.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ticketing.cart.cart import Cart
from ticketing.domain import ticketing
from ticketing.errors import WebhookSignatureError
from ticketing.gateway import get_gateway
from ticketing.gateway.port import GatewayEventType
from ticketing.payment.payment import Payment, PaymentStatus
from ticketing.ticket.issuance import enqueue_issuance

logger = structlog.get_logger(__name__)


def _locate(transaction_id: str | None, payment_id: str | None) -> Payment:
    repo = current_domain.repository_for(Payment)
    if transaction_id:
        payment = repo.by_transaction(transaction_id)
        if payment is not None:
            return payment
    if payment_id:
        return repo.get(payment_id)
    raise ObjectNotFoundError(f"No payment for transaction {transaction_id}")


def _convert_cart(cart_id: str) -> None:
    # Carts are ephemeral; one that is already gone needs no conversion
    cart_repo = current_domain.repository_for(Cart)
    try:
        cart = cart_repo.get(cart_id)
    except ObjectNotFoundError:
        logger.info("Cart no longer exists", cart_id=cart_id)
        return
    cart.mark_converted()
    cart_repo.add(cart)


@ticketing.command(part_of="Payment")
class ConfirmPayment:
    transaction_id = String(max_length=255)
    payment_id = Identifier()


@ticketing.command(part_of="Payment")
class FailPayment:
    transaction_id = String(max_length=255)
    payment_id = Identifier()
    reason = String(max_length=500)


@ticketing.command_handler(part_of=Payment)
class PaymentConfirmationHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command) -> str:
        """Pending → Paid; returns the payment id."""
        repo = current_domain.repository_for(Payment)
        payment = _locate(command.transaction_id, command.payment_id)

        if payment.confirm(datetime.now(UTC), transaction_id=command.transaction_id):
            repo.add(payment)
            if payment.cart_id:
                _convert_cart(str(payment.cart_id))
            logger.info("Payment confirmed", payment_id=str(payment.id))
        else:
            logger.info("Payment already confirmed", payment_id=str(payment.id), status=payment.status)
        return str(payment.id)

    @handle(FailPayment)
    def fail_payment(self, command) -> str:
        repo = current_domain.repository_for(Payment)
        payment = _locate(command.transaction_id, command.payment_id)

        if payment.fail(command.reason or "Payment failed at gateway", datetime.now(UTC)):
            repo.add(payment)
            logger.info("Payment failed", payment_id=str(payment.id), reason=command.reason)
        else:
            logger.info("Ignoring failure for settled payment", payment_id=str(payment.id), status=payment.status)
        return str(payment.id)


def confirm_and_issue(transaction_id: str | None, payment_id: str | None = None) -> str:
    """Record a gateway success, then make sure tickets are on their way."""
    confirmed_id = current_domain.process(
        ConfirmPayment(transaction_id=transaction_id, payment_id=payment_id),
        asynchronous=False,
    )
    payment = current_domain.repository_for(Payment).get(confirmed_id)
    if payment.status == PaymentStatus.PAID.value and not payment.tickets_issued_at:
        enqueue_issuance(confirmed_id)
    return confirmed_id


def handle_gateway_event(raw_body: bytes, signature: str) -> str:
    """Verify, parse and apply one webhook delivery.

    Returns the outcome: ``confirmed``, ``failed``, ``ignored`` or
    ``unmatched``. Raises WebhookSignatureError for unauthenticated bodies.
    """
    gateway = get_gateway()
    if not gateway.verify_webhook_signature(raw_body, signature):
        logger.warning("Rejected webhook with invalid signature")
        raise WebhookSignatureError("Invalid webhook signature")

    event = gateway.parse_event(raw_body)
    log = logger.bind(event_id=event.event_id, event_type=event.raw_type, transaction_id=event.transaction_id)

    try:
        if event.event_type == GatewayEventType.PAYMENT_SUCCEEDED:
            payment_id = confirm_and_issue(event.transaction_id, event.payment_id)
            log.info("Webhook reconciled", payment_id=payment_id, outcome="confirmed")
            return "confirmed"

        if event.event_type == GatewayEventType.PAYMENT_FAILED:
            payment_id = current_domain.process(
                FailPayment(
                    transaction_id=event.transaction_id,
                    payment_id=event.payment_id,
                    reason=event.failure_reason,
                ),
                asynchronous=False,
            )
            log.info("Webhook reconciled", payment_id=payment_id, outcome="failed")
            return "failed"
    except (ObjectNotFoundError, ValidationError) as exc:
        log.warning("Webhook could not be reconciled", error=str(exc))
        return "unmatched"

    log.info("Ignoring unhandled webhook event")
    return "ignored"
