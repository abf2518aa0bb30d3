"""Stock aggregate: the per-product available-seat counter.

Checkout only reads it (advisory). Issuance commits against it and must
honor seats that are already paid for, so a commit never fails: it clamps
at zero and reports the overrun instead. Concurrent commits on the same
product are serialized by the aggregate version check on save.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer

from ticketing.domain import ticketing
from ticketing.stock.events import StockCommitted, StockOpened, StockOverrunDetected, StockReleased


@ticketing.aggregate
class Stock:
    product_id = Identifier(identifier=True, required=True)
    available = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def available_is_never_negative(self):
        if self.available is not None and self.available < 0:
            raise ValidationError({"available": ["Available stock cannot be negative"]})

    @classmethod
    def open(cls, product_id: str, quantity: int):
        if quantity < 0:
            raise ValidationError({"quantity": ["Initial stock cannot be negative"]})
        now = datetime.now(UTC)
        stock = cls(product_id=product_id, available=quantity, created_at=now, updated_at=now)
        stock.raise_(StockOpened(product_id=product_id, quantity=quantity, opened_at=now))
        return stock

    def can_supply(self, quantity: int) -> bool:
        return quantity <= self.available

    def commit(self, quantity: int, payment_id: str) -> int:
        """Take ``quantity`` seats for a paid payment; returns the shortfall."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        previous = self.available
        shortfall = max(0, quantity - previous)
        self.available = max(0, previous - quantity)
        self.updated_at = now

        if shortfall:
            self.raise_(
                StockOverrunDetected(
                    product_id=self.product_id,
                    payment_id=payment_id,
                    requested=quantity,
                    available=previous,
                    shortfall=shortfall,
                    detected_at=now,
                )
            )
        self.raise_(
            StockCommitted(
                product_id=self.product_id,
                payment_id=payment_id,
                quantity=quantity,
                previous_available=previous,
                new_available=self.available,
                committed_at=now,
            )
        )
        return shortfall

    def release(self, ticket_id: str, reason: str, quantity: int = 1) -> None:
        """Return seats from a refunded or cancelled ticket."""
        now = datetime.now(UTC)
        self.available += quantity
        self.updated_at = now
        self.raise_(
            StockReleased(
                product_id=self.product_id,
                ticket_id=ticket_id,
                quantity=quantity,
                reason=reason,
                new_available=self.available,
                released_at=now,
            )
        )
