"""Domain events for the Ticket aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ticketing.domain import ticketing


@ticketing.event(part_of="Ticket")
class TicketIssued:
    __version__ = 1

    ticket_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    product_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    product_name = String(required=True)
    category = String()
    price = Float(required=True)  # discounted unit price actually paid
    issued_at = DateTime(required=True)


@ticketing.event(part_of="Ticket")
class TicketStatusChanged:
    """Issued ticket moved to Used, Refunded or Cancelled."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    price = Float()
    changed_at = DateTime(required=True)
