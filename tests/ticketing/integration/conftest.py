import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ticketing.api import payment_router, register_ticketing_exception_handlers, ticket_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(payment_router)
    app.include_router(ticket_router)
    register_ticketing_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def owner_headers(customer):
    return {
        "X-Owner-Id": customer.owner_id,
        "X-Owner-Email": customer.owner_email,
        "X-Owner-Name": customer.owner_name,
        "Accept-Language": "en-GB,en;q=0.9",
    }


@pytest.fixture()
def post_webhook(client, gateway):
    def _post(event_type, transaction_id, **kwargs):
        body = gateway.build_event(event_type, transaction_id, **kwargs)
        return client.post(
            "/payments/webhook",
            content=body,
            headers={"Stripe-Signature": gateway.sign(body), "Content-Type": "application/json"},
        )

    return _post
