"""Product registration: creates the offer and opens its stock counter."""

from protean import handle
from protean.fields import Date, Float, Integer, String
from protean.utils.globals import current_domain

from ticketing.catalog.product import Product
from ticketing.domain import ticketing
from ticketing.stock.stock import Stock


@ticketing.command(part_of="Product")
class RegisterProduct:
    name = String(max_length=255, required=True)
    category = String(max_length=50, required=True)
    price = Float(required=True, min_value=0.0)
    discount_rate = Float(default=0.0)
    places = Integer(default=1)
    event_date = Date()
    event_time = String(max_length=5)
    location = String(max_length=255)
    stock_quantity = Integer(required=True, min_value=0)


@ticketing.command_handler(part_of=Product)
class RegisterProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.create(
            name=command.name,
            category=command.category,
            price=command.price,
            discount_rate=command.discount_rate or 0.0,
            places=command.places or 1,
            event_date=command.event_date,
            event_time=command.event_time,
            location=command.location,
        )
        current_domain.repository_for(Product).add(product)
        current_domain.repository_for(Stock).add(Stock.open(str(product.id), command.stock_quantity))
        return str(product.id)
