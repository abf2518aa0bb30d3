"""Refund report — finance view of every booked refund."""

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.payment.events import PaymentRefunded
from ticketing.payment.payment import Payment


@ticketing.projection
class RefundReport:
    refund_id = Identifier(identifier=True, required=True)
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_total = Float(required=True)
    gateway_refund_id = String()
    payment_status = String(required=True)  # Paid (partial) or Refunded
    refunded_at = DateTime()


@ticketing.projector(projector_for=RefundReport, aggregates=[Payment])
class RefundReportProjector:
    @on(PaymentRefunded)
    def on_payment_refunded(self, event):
        current_domain.repository_for(RefundReport).add(
            RefundReport(
                refund_id=event.refund_id,
                payment_id=event.payment_id,
                amount=event.amount,
                refunded_total=event.refunded_total,
                gateway_refund_id=event.gateway_refund_id,
                payment_status="Refunded" if event.fully_refunded else "Paid",
                refunded_at=event.refunded_at,
            )
        )
