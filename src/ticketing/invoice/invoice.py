"""Invoice aggregate (CQRS): the billing document for a payment.

An invoice is issued when a payment is confirmed. Each refund voids the
current invoice and issues a new revision that shows the refunded amount,
under a new filename; earlier files stay as they were.

State Machine:
    ISSUED → VOIDED
"""

from datetime import datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ticketing.domain import ticketing
from ticketing.invoice.events import InvoiceIssued, InvoiceVoided
from ticketing.payment.snapshot import CartSnapshot
from ticketing.utils.query import fetch_all


class InvoiceStatus(Enum):
    ISSUED = "Issued"
    VOIDED = "Voided"


def invoice_filename_for(payment_id: str, revision: int) -> str:
    if revision == 0:
        return f"invoice_{payment_id}.pdf"
    return f"invoice_{payment_id}_r{revision}.pdf"


@ticketing.entity(part_of="Invoice")
class InvoiceLineItem:
    description = String(required=True, max_length=500)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    total = Float(required=True)


@ticketing.aggregate
class Invoice:
    payment_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    filename = String(required=True, max_length=255, unique=True)
    revision = Integer(default=0)
    line_items = HasMany(InvoiceLineItem)
    total = Float(default=0.0)
    refunded_amount = Float(default=0.0)
    currency = String(max_length=3, default="eur")
    status = String(choices=InvoiceStatus, default=InvoiceStatus.ISSUED.value)
    issued_at = DateTime()
    voided_at = DateTime()
    void_reason = String(max_length=255)

    @classmethod
    def issue(
        cls,
        payment_id: str,
        owner_id: str,
        snapshot: CartSnapshot,
        total: float,
        currency: str,
        now: datetime,
        revision: int = 0,
        refunded_amount: float = 0.0,
    ):
        invoice_number = f"INV-{payment_id[:8].upper()}-{revision}"
        filename = invoice_filename_for(payment_id, revision)
        invoice = cls(
            payment_id=payment_id,
            owner_id=owner_id,
            invoice_number=invoice_number,
            filename=filename,
            revision=revision,
            total=total,
            refunded_amount=refunded_amount,
            currency=currency,
            issued_at=now,
        )
        for line in snapshot.lines:
            invoice.add_line_items(
                InvoiceLineItem(
                    description=f"{line.product_name} ({line.category})",
                    quantity=line.quantity,
                    unit_price=line.discounted_price,
                    total=float(line.line_total),
                )
            )

        invoice.raise_(
            InvoiceIssued(
                invoice_id=str(invoice.id),
                payment_id=payment_id,
                invoice_number=invoice_number,
                filename=filename,
                revision=revision,
                total=total,
                refunded_amount=refunded_amount,
                issued_at=now,
            )
        )
        return invoice

    def void(self, reason: str, now: datetime) -> None:
        if self.status == InvoiceStatus.VOIDED.value:
            raise ValidationError({"status": ["Invoice is already voided"]})
        self.status = InvoiceStatus.VOIDED.value
        self.voided_at = now
        self.void_reason = reason
        self.raise_(
            InvoiceVoided(invoice_id=str(self.id), payment_id=str(self.payment_id), reason=reason, voided_at=now)
        )


@ticketing.repository(part_of=Invoice)
class InvoiceRepository:
    def for_payment(self, payment_id: str) -> list[Invoice]:
        return sorted(fetch_all(self._dao.query.filter(payment_id=payment_id)), key=lambda i: i.revision)

    def current_for(self, payment_id: str) -> Invoice | None:
        issued = [i for i in self.for_payment(payment_id) if i.status == InvoiceStatus.ISSUED.value]
        return issued[-1] if issued else None
