"""Domain events for the Invoice aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ticketing.domain import ticketing


@ticketing.event(part_of="Invoice")
class InvoiceIssued:
    __version__ = 1

    invoice_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    invoice_number = String(required=True)
    filename = String(required=True)
    revision = Integer(required=True)
    total = Float(required=True)
    refunded_amount = Float(default=0.0)
    issued_at = DateTime(required=True)


@ticketing.event(part_of="Invoice")
class InvoiceVoided:
    __version__ = 1

    invoice_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    reason = String(required=True)
    voided_at = DateTime(required=True)
