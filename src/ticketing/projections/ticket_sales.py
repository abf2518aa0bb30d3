"""Ticket sales — per-product counts and revenue for the sales dashboard."""

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.ticket.events import TicketIssued, TicketStatusChanged
from ticketing.ticket.ticket import Ticket
from ticketing.utils.query import fetch_all

_COUNTERS = {
    "Used": "used_count",
    "Refunded": "refunded_count",
    "Cancelled": "cancelled_count",
}


@ticketing.projection
class TicketSales:
    product_id = Identifier(identifier=True, required=True)
    product_name = String()
    category = String()
    issued_count = Integer(default=0)
    used_count = Integer(default=0)
    refunded_count = Integer(default=0)
    cancelled_count = Integer(default=0)
    revenue = Float(default=0.0)
    updated_at = DateTime()


@ticketing.projector(projector_for=TicketSales, aggregates=[Ticket])
class TicketSalesProjector:
    @on(TicketIssued)
    def on_ticket_issued(self, event):
        repo = current_domain.repository_for(TicketSales)
        records = repo._dao.query.filter(product_id=str(event.product_id)).all().items
        if records:
            record = records[0]
        else:
            record = TicketSales(
                product_id=event.product_id,
                product_name=event.product_name,
                category=event.category,
            )
        record.issued_count = (record.issued_count or 0) + 1
        record.revenue = round((record.revenue or 0.0) + event.price, 2)
        record.updated_at = event.issued_at
        repo.add(record)

    @on(TicketStatusChanged)
    def on_ticket_status_changed(self, event):
        counter = _COUNTERS.get(event.new_status)
        if counter is None:
            return
        repo = current_domain.repository_for(TicketSales)
        record = repo.get(event.product_id)
        setattr(record, counter, (getattr(record, counter) or 0) + 1)
        if event.new_status in ("Refunded", "Cancelled"):
            record.revenue = round((record.revenue or 0.0) - (event.price or 0.0), 2)
        record.updated_at = event.changed_at
        repo.add(record)


def sales_stats() -> list[TicketSales]:
    records = fetch_all(current_domain.repository_for(TicketSales)._dao.query, order_by="product_id")
    return sorted(records, key=lambda r: r.issued_count or 0, reverse=True)
