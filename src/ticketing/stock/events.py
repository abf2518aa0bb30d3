"""Domain events for the Stock ledger."""

from protean.fields import DateTime, Identifier, Integer, String

from ticketing.domain import ticketing


@ticketing.event(part_of="Stock")
class StockOpened:
    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    opened_at = DateTime(required=True)


@ticketing.event(part_of="Stock")
class StockCommitted:
    """Seats left the ledger because tickets were issued for them."""

    __version__ = 1

    product_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)
    committed_at = DateTime(required=True)


@ticketing.event(part_of="Stock")
class StockOverrunDetected:
    """Issuance committed more seats than were available; floor clamped at zero."""

    __version__ = 1

    product_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    requested = Integer(required=True)
    available = Integer(required=True)
    shortfall = Integer(required=True)
    detected_at = DateTime(required=True)


@ticketing.event(part_of="Stock")
class StockReleased:
    __version__ = 1

    product_id = Identifier(required=True)
    ticket_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(max_length=50, required=True)
    new_available = Integer(required=True)
    released_at = DateTime(required=True)
