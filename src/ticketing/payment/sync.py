"""Poll path: ask the gateway where a payment stands.

Used when a webhook is late or was lost. Applies the same transitions as
the webhook reconciler and re-queues issuance for a Paid payment that has
no tickets yet (for example after a crash between confirmation and
issuance).
"""

import structlog
from protean.utils.globals import current_domain

from ticketing.gateway import get_gateway
from ticketing.payment.payment import Payment, PaymentStatus
from ticketing.payment.webhook import FailPayment, confirm_and_issue
from ticketing.ticket.issuance import enqueue_issuance

logger = structlog.get_logger(__name__)


def sync_payment(payment_id: str) -> Payment:
    repo = current_domain.repository_for(Payment)
    payment = repo.get(payment_id)

    if payment.status == PaymentStatus.PAID.value and not payment.tickets_issued_at:
        logger.info("Re-queuing issuance for paid payment without tickets", payment_id=payment_id)
        enqueue_issuance(payment_id)
        return repo.get(payment_id)

    if payment.status != PaymentStatus.PENDING.value or not payment.transaction_id:
        return payment

    intent = get_gateway().retrieve_intent(payment.transaction_id)
    logger.info("Polled gateway intent", payment_id=payment_id, gateway_status=intent.status)

    if intent.status == "succeeded":
        confirm_and_issue(payment.transaction_id, payment_id)
    elif intent.status == "failed":
        current_domain.process(
            FailPayment(
                transaction_id=payment.transaction_id,
                payment_id=payment_id,
                reason=intent.failure_reason or "Payment failed at gateway",
            ),
            asynchronous=False,
        )
    return repo.get(payment_id)
