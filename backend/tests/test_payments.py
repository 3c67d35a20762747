"""Tests for checkout creation and the signed payment webhook.

Covers:
- Charge creation against a mocked payment API
- HMAC signature verification (tampering, missing signature)
- Exactly-once credit grant on repeated confirmations
- Failed / expired charges
"""
import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from studio.config import settings
from studio.deps import get_http_client
from studio.main import app
from studio.models.order import Order, OrderStatus
from studio.services import credit_service, payment_service
from tests.conftest import auth_headers

SECRET = "whsec_test"


def _sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def _event(event_type: str, order_id: str = None, user_id: str = "buyer", credits: str = "50") -> bytes:
    metadata = {"orderId": order_id, "userId": user_id, "credits": credits} if order_id else {}
    return json.dumps({"event": {"type": event_type, "data": {"id": "ch_1", "metadata": metadata}}}).encode()


def _post(client, body: bytes, signature: str = None):
    headers = {"content-type": "application/json"}
    if signature is not None:
        headers["x-cc-webhook-signature"] = signature
    return client.post("/api/payments/webhook", content=body, headers=headers)


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "COINBASE_COMMERCE_WEBHOOK_SECRET", SECRET)


@pytest.fixture
def pending_order(db):
    order = Order(user_id="buyer", package_id="popular", credits=50, amount=Decimal("20"), status=OrderStatus.pending)
    db.add(order)
    db.commit()
    return order.order_id


class TestSignature:

    def test_valid(self):
        body = b'{"event": {}}'
        assert payment_service.verify_signature(body, _sign(body), SECRET)

    def test_tampered_body(self):
        body = b'{"event": {"type": "charge:confirmed"}}'
        signature = _sign(body)
        assert not payment_service.verify_signature(body.replace(b"confirmed", b"resolved"), signature, SECRET)

    def test_missing_signature(self):
        assert not payment_service.verify_signature(b"{}", None, SECRET)
        assert not payment_service.verify_signature(b"{}", "", SECRET)


class TestWebhook:

    def test_confirmed_grants_credits_once(self, client, db, webhook_secret, pending_order):
        body = _event("charge:confirmed", pending_order)

        first = _post(client, body, _sign(body))
        assert first.status_code == 200, first.text
        assert first.json()["success"] is True

        second = _post(client, body, _sign(body))
        assert second.json() == {"success": True, "message": "Already processed"}

        assert credit_service.get_balance(db, "buyer") == credit_service.DEFAULT_CREDITS + 50
        order = db.get(Order, pending_order)
        assert order.status == OrderStatus.completed
        assert order.completed_at is not None
        assert order.charge_data["id"] == "ch_1"

    def test_resolved_also_completes(self, client, db, webhook_secret, pending_order):
        body = _event("charge:resolved", pending_order)
        assert _post(client, body, _sign(body)).status_code == 200
        assert credit_service.get_balance(db, "buyer") == 60

    def test_invalid_signature_rejected(self, client, db, webhook_secret, pending_order):
        body = _event("charge:confirmed", pending_order)
        resp = _post(client, body, _sign(body, "wrong-secret"))
        assert resp.status_code == 401
        assert db.get(Order, pending_order).status == OrderStatus.pending

    def test_missing_signature_rejected_when_secret_set(self, client, webhook_secret, pending_order):
        resp = _post(client, _event("charge:confirmed", pending_order))
        assert resp.status_code == 401

    def test_unsigned_accepted_in_development_without_secret(self, client, db, pending_order):
        resp = _post(client, _event("charge:confirmed", pending_order))
        assert resp.status_code == 200
        assert credit_service.get_balance(db, "buyer") == 60

    def test_unsigned_rejected_in_production_without_secret(self, client, monkeypatch, pending_order):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        resp = _post(client, _event("charge:confirmed", pending_order))
        assert resp.status_code == 401

    def test_missing_metadata(self, client, webhook_secret):
        body = _event("charge:confirmed")
        assert _post(client, body, _sign(body)).status_code == 400

    def test_unknown_order(self, client, webhook_secret):
        body = _event("charge:confirmed", "no-such-order")
        assert _post(client, body, _sign(body)).status_code == 404

    @pytest.mark.parametrize("event_type, status", [
        ("charge:failed", OrderStatus.failed),
        ("charge:expired", OrderStatus.expired),
    ])
    def test_closed_charges(self, client, db, webhook_secret, pending_order, event_type, status):
        body = _event(event_type, pending_order)
        assert _post(client, body, _sign(body)).status_code == 200
        assert db.get(Order, pending_order).status == status
        assert credit_service.get_balance(db, "buyer") == credit_service.DEFAULT_CREDITS

    def test_other_events_acknowledged(self, client, webhook_secret):
        body = _event("charge:created")
        resp = _post(client, body, _sign(body))
        assert resp.json() == {"success": True, "message": "Event received"}

    def test_malformed_body(self, client, webhook_secret):
        body = b"not json"
        assert _post(client, body, _sign(body)).status_code == 400


class TestCreateCharge:

    def _payment_api(self, captured: list, status: int = 201):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status, json={"data": {
                "id": "ch_123",
                "code": "ABCD1234",
                "hosted_url": "https://commerce.test/pay/ABCD1234",
            }})

        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_creates_pending_order_and_charge(self, client, db, monkeypatch):
        monkeypatch.setattr(settings, "COINBASE_COMMERCE_API_KEY", "cc-key")
        captured = []
        app.dependency_overrides[get_http_client] = lambda: self._payment_api(captured)

        resp = client.post("/api/payments/create-charge", json={"packageId": "starter"}, headers=auth_headers("buyer"))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["checkoutUrl"] == "https://commerce.test/pay/ABCD1234"
        assert data["chargeId"] == "ch_123"

        request = captured[0]
        assert str(request.url) == "https://commerce.test/charges"
        assert request.headers["X-CC-Api-Key"] == "cc-key"
        assert request.headers["X-CC-Version"] == "2018-03-22"
        sent = json.loads(request.content)
        assert sent["pricing_type"] == "fixed_price"
        assert sent["local_price"] == {"amount": "5", "currency": "USD"}
        assert sent["metadata"]["orderId"] == data["orderId"]
        assert sent["metadata"]["credits"] == "10"

        order = db.get(Order, data["orderId"])
        assert order.status == OrderStatus.pending
        assert order.charge_id == "ch_123"
        assert order.charge_code == "ABCD1234"

    def test_invalid_package(self, client, monkeypatch):
        monkeypatch.setattr(settings, "COINBASE_COMMERCE_API_KEY", "cc-key")
        resp = client.post("/api/payments/create-charge", json={"packageId": "mega"}, headers=auth_headers())
        assert resp.status_code == 400

    def test_not_configured(self, client):
        resp = client.post("/api/payments/create-charge", json={"packageId": "starter"}, headers=auth_headers())
        assert resp.status_code == 503

    def test_payment_api_failure(self, client, monkeypatch):
        monkeypatch.setattr(settings, "COINBASE_COMMERCE_API_KEY", "cc-key")
        app.dependency_overrides[get_http_client] = lambda: self._payment_api([], status=500)
        resp = client.post("/api/payments/create-charge", json={"packageId": "pro"}, headers=auth_headers())
        assert resp.status_code == 502
