"""Invoice generation: reacts to payment confirmation and refunds.

Renders the PDF into the blob store under the invoice filename, then saves
the Invoice. A refund voids the current revision and issues the next one.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.utils.globals import current_domain

from ticketing.artifacts import get_blob_store, get_renderer
from ticketing.artifacts.renderer_port import InvoiceDocument
from ticketing.domain import ticketing
from ticketing.invoice.invoice import Invoice
from ticketing.payment.events import PaymentConfirmed, PaymentRefunded
from ticketing.payment.payment import Payment

logger = structlog.get_logger(__name__)


def _render(invoice: Invoice, payment: Payment) -> None:
    document = InvoiceDocument(
        invoice_number=invoice.invoice_number,
        payment_id=str(payment.id),
        customer_name=payment.owner_name or "",
        customer_email=payment.owner_email or "",
        lines=[
            {
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total": item.total,
            }
            for item in invoice.line_items
        ],
        total=invoice.total,
        refunded_amount=invoice.refunded_amount,
        currency=invoice.currency,
        locale=payment.locale or "en",
        issued_at=invoice.issued_at.isoformat(),
    )
    pdf = get_renderer().render_invoice_pdf(document)
    get_blob_store().put(invoice.filename, pdf, "application/pdf")


def issue_invoice(payment_id: str) -> Invoice:
    """Issue the next invoice revision for a payment, voiding the current one."""
    payment = current_domain.repository_for(Payment).get(payment_id)
    repo = current_domain.repository_for(Invoice)
    now = datetime.now(UTC)

    revisions = repo.for_payment(payment_id)
    current = repo.current_for(payment_id)
    if current is not None:
        current.void("Superseded after refund", now)
        repo.add(current)

    invoice = Invoice.issue(
        payment_id=payment_id,
        owner_id=str(payment.owner_id),
        snapshot=payment.snapshot,
        total=payment.amount,
        currency=payment.currency,
        now=now,
        revision=len(revisions),
        refunded_amount=payment.refunded_amount or 0.0,
    )
    _render(invoice, payment)
    repo.add(invoice)
    logger.info("Invoice issued", payment_id=payment_id, filename=invoice.filename, revision=invoice.revision)
    return invoice


@ticketing.event_handler(part_of=Invoice, stream_category="ticketing::payment")
class InvoiceGenerationHandler:
    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        if current_domain.repository_for(Invoice).for_payment(str(event.payment_id)):
            logger.info("Invoice already issued", payment_id=str(event.payment_id))
            return
        issue_invoice(str(event.payment_id))

    @handle(PaymentRefunded)
    def on_payment_refunded(self, event: PaymentRefunded) -> None:
        issue_invoice(str(event.payment_id))
