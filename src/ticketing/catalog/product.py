"""Product aggregate: the sellable event offer.

Only what checkout and issuance read lives here; browsing, translations and
pricing administration belong to the catalog service.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, Integer, String

from ticketing.domain import ticketing

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round half-up to cents, the way prices are printed."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@ticketing.aggregate
class Product:
    name = String(max_length=255, required=True)
    category = String(max_length=50, required=True)  # ticket type: solo, duo, family...
    price = Float(required=True, min_value=0.0)
    discount_rate = Float(default=0.0, min_value=0.0, max_value=1.0)
    places = Integer(default=1, min_value=1)  # admissions granted by one ticket
    event_date = Date()
    event_time = String(max_length=5)
    location = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        name: str,
        category: str,
        price: float,
        discount_rate: float = 0.0,
        places: int = 1,
        event_date=None,
        event_time: str | None = None,
        location: str | None = None,
    ):
        if discount_rate < 0 or discount_rate > 1:
            raise ValidationError({"discount_rate": ["Discount rate must be between 0 and 1"]})
        now = datetime.now(UTC)
        return cls(
            name=name,
            category=category,
            price=price,
            discount_rate=discount_rate,
            places=places,
            event_date=event_date,
            event_time=event_time,
            location=location,
            created_at=now,
            updated_at=now,
        )

    @property
    def discounted_price(self) -> Decimal:
        price = Decimal(str(self.price))
        rate = Decimal(str(self.discount_rate or 0.0))
        return round_money(price * (1 - rate))
