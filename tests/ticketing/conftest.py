from datetime import date

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

from ticketing.artifacts import reset_artifacts, set_blob_store, set_renderer
from ticketing.artifacts.blob_store import MemoryBlobStore
from ticketing.artifacts.fake_renderer import FakeRenderer
from ticketing.cart.cart import Cart
from ticketing.catalog.registration import RegisterProduct
from ticketing.channel import reset_channels, set_email_channel
from ticketing.channel.fake_email import FakeEmailAdapter
from ticketing.context import RequestContext
from ticketing.gateway import reset_gateway, set_gateway
from ticketing.gateway.fake_adapter import FakeGateway
from ticketing.payment.checkout import create_payment
from ticketing.payment.payment import Payment
from ticketing.payment.webhook import handle_gateway_event


@pytest.fixture(scope="session")
def ticketing_bed():
    from ticketing.domain import ticketing

    bed = DomainFixture(ticketing)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(ticketing_bed):
    from ticketing.domain import ticketing
    from ticketing.utils.db import drop_db, setup_db

    setup_db(ticketing)

    yield

    drop_db(ticketing)


@pytest.fixture(autouse=True)
def _ctx(ticketing_bed):
    """Run each test in the domain context, then wipe stores and adapters."""
    with ticketing_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        for _, broker in current_domain.brokers.items():
            broker._data_reset()

        current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_artifacts()
    reset_channels()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway(webhook_secret="whsec_test")
    set_gateway(fake)
    return fake


@pytest.fixture(autouse=True)
def mailbox():
    fake = FakeEmailAdapter()
    set_email_channel(fake)
    return fake


@pytest.fixture(autouse=True)
def renderer():
    fake = FakeRenderer()
    set_renderer(fake)
    return fake


@pytest.fixture(autouse=True)
def blob_store():
    store = MemoryBlobStore()
    set_blob_store(store)
    return store


# ---------------------------------------------------------------------------
# Catalog and carts
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer():
    return RequestContext(
        owner_id="cust-001",
        owner_email="ada@example.com",
        owner_name="Ada Lovelace",
        locale="en",
    )


@pytest.fixture()
def register_product():
    def _register(
        name="Summer Festival",
        category="solo",
        price=50.0,
        discount_rate=0.0,
        stock=10,
        places=1,
    ) -> str:
        return current_domain.process(
            RegisterProduct(
                name=name,
                category=category,
                price=price,
                discount_rate=discount_rate,
                places=places,
                event_date=date(2026, 7, 14),
                event_time="20:30",
                location="Parc des Expositions",
                stock_quantity=stock,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def make_cart():
    def _make(owner_id: str, items: list[tuple[str, int]]) -> str:
        cart = Cart.open(owner_id)
        for product_id, quantity in items:
            cart.add_item(product_id, quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    return _make


@pytest.fixture()
def festival(register_product):
    """A 50.00 solo ticket with ten seats."""
    return register_product()


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
@pytest.fixture()
def deliver_webhook(gateway):
    def _deliver(event_type: str, transaction_id: str, **kwargs) -> str:
        body = gateway.build_event(event_type, transaction_id, **kwargs)
        return handle_gateway_event(body, gateway.sign(body))

    return _deliver


@pytest.fixture()
def pending_payment(customer, festival, make_cart):
    """A Pending payment for three festival seats (150.00)."""
    cart_id = make_cart(customer.owner_id, [(festival, 3)])
    return create_payment(customer, cart_id, "stripe")


@pytest.fixture()
def paid_payment(pending_payment, deliver_webhook):
    """The pending payment confirmed by a webhook; tickets issued."""
    deliver_webhook("payment_intent.succeeded", pending_payment.transaction_id)
    return current_domain.repository_for(Payment).get(str(pending_payment.id))
