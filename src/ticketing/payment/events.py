"""Domain events for the Payment aggregate.

Versioned, immutable facts about a payment. Projections and the invoice
and notification handlers react to them.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ticketing.domain import ticketing


@ticketing.event(part_of="Payment")
class PaymentCreated:
    """A Pending payment was opened for a checkout."""

    __version__ = 1

    payment_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    cart_id = Identifier()
    amount = Float(required=True)
    currency = String(required=True)
    method = String(required=True)
    seat_count = Integer(required=True)
    created_at = DateTime(required=True)


@ticketing.event(part_of="Payment")
class PaymentIntentAttached:
    """The gateway accepted a transaction intent for the payment."""

    __version__ = 1

    payment_id = Identifier(required=True)
    transaction_id = String(required=True)
    attached_at = DateTime(required=True)


@ticketing.event(part_of="Payment")
class PaymentConfirmed:
    """Money was captured; tickets are now owed."""

    __version__ = 1

    payment_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    method = String(required=True)
    transaction_id = String()
    paid_at = DateTime(required=True)


@ticketing.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@ticketing.event(part_of="Payment")
class PaymentRefunded:
    """A (possibly partial) refund went through at the gateway."""

    __version__ = 1

    payment_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    gateway_refund_id = String()
    amount = Float(required=True)
    refunded_total = Float(required=True)
    fully_refunded = Boolean(default=False)
    refunded_at = DateTime(required=True)


@ticketing.event(part_of="Payment")
class TicketsIssued:
    """All tickets for the payment exist; sent once per issuance batch."""

    __version__ = 1

    payment_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    owner_email = String()
    ticket_ids = Text(required=True)  # JSON array of ticket ids
    ticket_count = Integer(required=True)
    issued_at = DateTime(required=True)
