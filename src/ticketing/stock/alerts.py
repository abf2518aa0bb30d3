"""Inventory overrun reporting.

An overrun means two checkouts raced for the last seats and both got paid.
Both sets of tickets are honored; operations hear about it here.
"""

import structlog
from protean import handle

from ticketing.domain import ticketing
from ticketing.stock.events import StockOverrunDetected
from ticketing.stock.stock import Stock

logger = structlog.get_logger(__name__)


@ticketing.event_handler(part_of=Stock)
class StockAlertHandler:
    @handle(StockOverrunDetected)
    def on_overrun(self, event: StockOverrunDetected) -> None:
        logger.warning(
            "Inventory overrun at ticket issuance",
            product_id=str(event.product_id),
            payment_id=str(event.payment_id),
            requested=event.requested,
            available=event.available,
            shortfall=event.shortfall,
        )
