"""Operator report: refunds the gateway knows about but we do not.

Compares, per paid or refunded payment, the gateway-side refunded total
with the locally booked ``refunded_amount``. A gap means a refund went
through at the gateway and the local commit never happened.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from ticketing.errors import GatewayError
from ticketing.gateway import get_gateway
from ticketing.payment.payment import REFUND_EPSILON, Payment, PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RefundDiscrepancy:
    payment_id: str
    transaction_id: str
    local_refunded: float
    gateway_refunded: float

    @property
    def difference(self) -> float:
        return round(self.gateway_refunded - self.local_refunded, 2)


def refund_discrepancies() -> list[RefundDiscrepancy]:
    repo = current_domain.repository_for(Payment)
    gateway = get_gateway()

    candidates = repo.with_status(PaymentStatus.PAID.value) + repo.with_status(PaymentStatus.REFUNDED.value)
    discrepancies = []
    for payment in candidates:
        if payment.method == PaymentMethod.FREE.value or not payment.transaction_id:
            continue
        try:
            gateway_refunded = gateway.refunded_total(payment.transaction_id)
        except GatewayError as exc:
            logger.warning(
                "Skipping refund check, gateway unavailable",
                payment_id=str(payment.id),
                transaction_id=payment.transaction_id,
                error=str(exc),
            )
            continue
        local_refunded = payment.refunded_amount or 0.0
        if abs(gateway_refunded - local_refunded) >= REFUND_EPSILON:
            discrepancies.append(
                RefundDiscrepancy(
                    payment_id=str(payment.id),
                    transaction_id=payment.transaction_id,
                    local_refunded=local_refunded,
                    gateway_refunded=gateway_refunded,
                )
            )

    if discrepancies:
        logger.warning("Refund discrepancies found", count=len(discrepancies))
    return discrepancies
