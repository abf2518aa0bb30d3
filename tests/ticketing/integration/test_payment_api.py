"""Integration tests for Payment API endpoints via TestClient."""

from protean.utils.globals import current_domain

from ticketing.payment.payment import Payment, PaymentStatus


def _create(client, headers, cart_id, method="stripe"):
    return client.post("/payments", json={"cart_id": cart_id, "method": method}, headers=headers)


class TestCreatePaymentAPI:
    def test_returns_201_with_client_secret(self, client, owner_headers, customer, festival, make_cart):
        cart_id = make_cart(customer.owner_id, [(festival, 2)])

        response = _create(client, owner_headers, cart_id)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "Pending"
        assert body["amount"] == 100.0
        assert body["currency"] == "eur"
        assert body["client_secret"]

    def test_locale_comes_from_accept_language(self, client, owner_headers, customer, festival, make_cart):
        cart_id = make_cart(customer.owner_id, [(festival, 1)])
        headers = {**owner_headers, "Accept-Language": "fr-FR,fr;q=0.9"}

        payment_id = _create(client, headers, cart_id).json()["payment_id"]

        assert current_domain.repository_for(Payment).get(payment_id).locale == "fr"

    def test_missing_owner_header_is_422(self, client, customer, festival, make_cart):
        cart_id = make_cart(customer.owner_id, [(festival, 1)])
        response = client.post("/payments", json={"cart_id": cart_id})
        assert response.status_code == 422

    def test_stock_unavailable_is_422_with_shortages(
        self, client, owner_headers, customer, register_product, make_cart
    ):
        product_id = register_product(stock=1)
        cart_id = make_cart(customer.owner_id, [(product_id, 2)])

        response = _create(client, owner_headers, cart_id)

        assert response.status_code == 422
        assert response.json()["shortages"] == {product_id: {"requested": 2, "available": 1}}

    def test_gateway_failure_is_502(self, client, owner_headers, customer, festival, make_cart, gateway):
        gateway.configure(should_succeed=False, failure_reason="upstream timeout")
        cart_id = make_cart(customer.owner_id, [(festival, 1)])

        response = _create(client, owner_headers, cart_id)

        assert response.status_code == 502
        assert response.json()["error"] == "gateway_unavailable"

    def test_unknown_cart_is_404(self, client, owner_headers):
        assert _create(client, owner_headers, "no-such-cart").status_code == 404

    def test_unsupported_method_is_400(self, client, owner_headers, customer, festival, make_cart):
        cart_id = make_cart(customer.owner_id, [(festival, 1)])
        assert _create(client, owner_headers, cart_id, method="free").status_code == 400


class TestPaymentStatusAPI:
    def test_owner_sees_status(self, client, owner_headers, paid_payment):
        response = client.get(f"/payments/{paid_payment.id}/status", headers=owner_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Paid"
        assert body["amount"] == 150.0
        assert body["paid_at"] is not None

    def test_other_owner_gets_404(self, client, owner_headers, paid_payment):
        headers = {**owner_headers, "X-Owner-Id": "intruder"}
        response = client.get(f"/payments/{paid_payment.id}/status", headers=headers)
        assert response.status_code == 404


class TestRefundAPI:
    def test_partial_refund(self, client, paid_payment):
        response = client.post(f"/payments/{paid_payment.id}/refund", json={"amount": 50.0})
        assert response.status_code == 200
        body = response.json()
        assert body["refunded_now"] == 50.0
        assert body["refunded_amount"] == 50.0
        assert body["status"] == "Paid"

    def test_over_refund_is_capped(self, client, paid_payment):
        response = client.post(f"/payments/{paid_payment.id}/refund", json={"amount": 500.0})
        body = response.json()
        assert body["refunded_now"] == 150.0
        assert body["status"] == "Refunded"

    def test_refund_of_pending_payment_is_409(self, client, pending_payment):
        response = client.post(f"/payments/{pending_payment.id}/refund", json={"amount": 10.0})
        assert response.status_code == 409
        assert response.json()["current_status"] == "Pending"

    def test_non_positive_amount_is_422(self, client, paid_payment):
        response = client.post(f"/payments/{paid_payment.id}/refund", json={"amount": 0})
        assert response.status_code == 422

    def test_gateway_refusal_is_502(self, client, paid_payment, gateway):
        gateway.configure(should_succeed=False)
        response = client.post(f"/payments/{paid_payment.id}/refund", json={"amount": 10.0})
        assert response.status_code == 502
        payment = current_domain.repository_for(Payment).get(str(paid_payment.id))
        assert payment.refunded_amount == 0.0


class TestSyncAPI:
    def test_sync_confirms_settled_intent(self, client, pending_payment, gateway):
        gateway.settle(pending_payment.transaction_id)
        response = client.post(f"/payments/{pending_payment.id}/sync")
        assert response.status_code == 200
        assert response.json()["status"] == PaymentStatus.PAID.value


class TestAdminAPI:
    def test_list_payments_by_status(self, client, paid_payment):
        response = client.get("/payments", params={"status": "Paid"})
        assert response.status_code == 200
        assert [p["payment_id"] for p in response.json()] == [str(paid_payment.id)]
        assert client.get("/payments", params={"status": "Pending"}).json() == []

    def test_discrepancies(self, client, paid_payment, gateway):
        gateway.create_refund(paid_payment.transaction_id, 12.5)
        response = client.get("/payments/discrepancies")
        assert response.status_code == 200
        assert response.json()[0]["difference"] == 12.5

    def test_resend_tickets(self, client, paid_payment, mailbox):
        response = client.post(f"/payments/{paid_payment.id}/tickets/resend")
        assert response.json()["status"] == "sent"
        assert len(mailbox.sent_emails) == 2

    def test_configure_fake_gateway(self, client, gateway):
        response = client.post(
            "/payments/gateway/configure",
            json={"should_succeed": False, "failure_reason": "Maintenance"},
        )
        assert response.status_code == 200
        assert response.json()["gateway"] == "FakeGateway"
        assert gateway.should_succeed is False

    def test_configure_refused_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/payments/gateway/configure", json={"should_succeed": False})
        assert response.status_code == 403
