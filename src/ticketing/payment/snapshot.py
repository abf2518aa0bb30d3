"""Cart snapshot: the frozen copy of a cart embedded in a Payment.

Totals are computed per line and rounded to cents before they are summed.
The stored payment amount depends on that order, so it is kept here in one
place and nowhere else.
"""

import json
from dataclasses import asdict, dataclass
from decimal import Decimal

from ticketing.catalog.product import Product, round_money


@dataclass(frozen=True)
class SnapshotLine:
    product_id: str
    product_name: str
    category: str
    quantity: int
    unit_price: float
    discount_rate: float
    discounted_price: float
    places: int = 1
    event_date: str | None = None
    event_time: str | None = None
    location: str | None = None

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "SnapshotLine":
        return cls(
            product_id=str(product.id),
            product_name=product.name,
            category=product.category,
            quantity=quantity,
            unit_price=float(product.price),
            discount_rate=float(product.discount_rate or 0.0),
            discounted_price=float(product.discounted_price),
            places=product.places or 1,
            event_date=product.event_date.isoformat() if product.event_date else None,
            event_time=product.event_time,
            location=product.location,
        )

    @property
    def line_total(self) -> Decimal:
        return round_money(Decimal(str(self.discounted_price)) * self.quantity)


@dataclass(frozen=True)
class CartSnapshot:
    locale: str
    lines: tuple[SnapshotLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0.00"))

    @property
    def seat_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_json(self) -> str:
        """The lines as a JSON array; the locale is stored alongside, not inside."""
        return json.dumps([asdict(line) for line in self.lines])

    @classmethod
    def from_json(cls, raw: str, locale: str = "en") -> "CartSnapshot":
        return cls(locale=locale, lines=tuple(SnapshotLine(**item) for item in json.loads(raw)))
