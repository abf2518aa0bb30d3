"""Payment status — admin listing of payments and where they stand."""

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.payment.events import (
    PaymentConfirmed,
    PaymentCreated,
    PaymentFailed,
    PaymentIntentAttached,
    PaymentRefunded,
    TicketsIssued,
)
from ticketing.payment.payment import Payment


@ticketing.projection
class PaymentStatusView:
    payment_id = Identifier(identifier=True, required=True)
    owner_id = Identifier(required=True)
    amount = Float()
    currency = String(default="eur")
    method = String()
    status = String(required=True)
    transaction_id = String()
    failure_reason = String()
    refunded_amount = Float(default=0.0)
    ticket_count = Integer(default=0)
    created_at = DateTime()
    paid_at = DateTime()
    updated_at = DateTime()


@ticketing.projector(projector_for=PaymentStatusView, aggregates=[Payment])
class PaymentStatusProjector:
    @on(PaymentCreated)
    def on_payment_created(self, event):
        current_domain.repository_for(PaymentStatusView).add(
            PaymentStatusView(
                payment_id=event.payment_id,
                owner_id=event.owner_id,
                amount=event.amount,
                currency=event.currency,
                method=event.method,
                status="Pending",
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    @on(PaymentIntentAttached)
    def on_intent_attached(self, event):
        repo = current_domain.repository_for(PaymentStatusView)
        view = repo.get(event.payment_id)
        view.transaction_id = event.transaction_id
        view.updated_at = event.attached_at
        repo.add(view)

    @on(PaymentConfirmed)
    def on_payment_confirmed(self, event):
        repo = current_domain.repository_for(PaymentStatusView)
        view = repo.get(event.payment_id)
        view.status = "Paid"
        view.transaction_id = event.transaction_id or view.transaction_id
        view.paid_at = event.paid_at
        view.updated_at = event.paid_at
        repo.add(view)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        repo = current_domain.repository_for(PaymentStatusView)
        view = repo.get(event.payment_id)
        view.status = "Failed"
        view.failure_reason = event.reason
        view.updated_at = event.failed_at
        repo.add(view)

    @on(PaymentRefunded)
    def on_payment_refunded(self, event):
        repo = current_domain.repository_for(PaymentStatusView)
        view = repo.get(event.payment_id)
        view.refunded_amount = event.refunded_total
        if event.fully_refunded:
            view.status = "Refunded"
        view.updated_at = event.refunded_at
        repo.add(view)

    @on(TicketsIssued)
    def on_tickets_issued(self, event):
        repo = current_domain.repository_for(PaymentStatusView)
        view = repo.get(event.payment_id)
        view.ticket_count = event.ticket_count
        view.updated_at = event.issued_at
        repo.add(view)
