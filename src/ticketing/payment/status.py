"""Owner-facing payment status lookup."""

from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ticketing.payment.payment import Payment


@dataclass(frozen=True)
class PaymentStatusInfo:
    payment_id: str
    status: str
    amount: float
    refunded_amount: float
    paid_at: datetime | None
    client_secret: str | None


def get_payment_status(payment_id: str, owner_id: str) -> PaymentStatusInfo:
    """Status of one of the caller's payments; other owners' payments look absent."""
    payment = current_domain.repository_for(Payment).get(payment_id)
    if str(payment.owner_id) != str(owner_id):
        raise ObjectNotFoundError("Payment not found")
    return PaymentStatusInfo(
        payment_id=str(payment.id),
        status=payment.status,
        amount=payment.amount,
        refunded_amount=payment.refunded_amount or 0.0,
        paid_at=payment.paid_at,
        client_secret=payment.handshake_token,
    )
