"""Refund orchestration — command and handler.

The gateway refund runs before anything is saved. If it fails the unit of
work is abandoned and the payment is untouched. If the process dies after
the gateway refunded but before the commit, the payment under-reports its
refunds; ``refund_discrepancies`` surfaces those for an operator.

Ticket statuses are left alone: refunding money and invalidating tickets
are separate administrative actions.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.errors import GatewayUnavailableError
from ticketing.gateway import get_gateway
from ticketing.payment.payment import Payment

logger = structlog.get_logger(__name__)


@ticketing.command(part_of="Payment")
class RefundPayment:
    """Refund up to ``amount``; capped at what is left to refund."""

    payment_id = Identifier(required=True)
    amount = Float(required=True)


@ticketing.command_handler(part_of=Payment)
class RefundHandler:
    @handle(RefundPayment)
    def refund_payment(self, command) -> Payment:
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        capped = payment.refundable(command.amount)

        refund_key = f"{payment.id}_{len(payment.refunds or [])}"
        result = get_gateway().create_refund(payment.transaction_id, capped, idempotency_key=refund_key)
        if not result.success:
            logger.error(
                "Gateway refund failed",
                payment_id=str(payment.id),
                amount=capped,
                reason=result.failure_reason,
            )
            raise GatewayUnavailableError("refund", result.failure_reason)

        payment.record_refund(capped, result.refund_id, datetime.now(UTC))
        repo.add(payment)
        logger.info(
            "Payment refunded",
            payment_id=str(payment.id),
            requested=command.amount,
            refunded=capped,
            refunded_total=payment.refunded_amount,
            status=payment.status,
        )
        return payment
