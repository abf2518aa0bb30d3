"""Cart aggregate, as far as checkout needs it.

Carts are edited elsewhere; this context only reads their lines to build a
payment snapshot and marks them converted once the payment is confirmed.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ticketing.domain import ticketing


class CartStatus(Enum):
    ACTIVE = "Active"
    CONVERTED = "Converted"


@ticketing.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ticketing.aggregate
class Cart:
    owner_id = Identifier(required=True)
    lines = HasMany(CartLine)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, owner_id: str):
        now = datetime.now(UTC)
        return cls(owner_id=owner_id, created_at=now, updated_at=now)

    def add_item(self, product_id: str, quantity: int) -> None:
        if self.status != CartStatus.ACTIVE.value:
            raise ValidationError({"status": ["Cart has already been converted"]})
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        existing = next((line for line in (self.lines or []) if str(line.product_id) == str(product_id)), None)
        if existing:
            existing.quantity += quantity
        else:
            self.add_lines(CartLine(product_id=product_id, quantity=quantity))
        self.updated_at = datetime.now(UTC)

    def mark_converted(self) -> None:
        self.status = CartStatus.CONVERTED.value
        self.updated_at = datetime.now(UTC)
