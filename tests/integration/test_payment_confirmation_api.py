import hashlib
import hmac
import json

import pytest

from ebookstore.constants.order_status import OrderStatus, PaymentMethod
from ebookstore.exceptions import GatewayError
from ebookstore.models.order import Order


def _sign(body: bytes) -> str:
    return hmac.new(b"whsec_test", body, hashlib.sha256).hexdigest()


def _coinbase_event(order_id, event_type="charge:confirmed", charge_id="charge-1"):
    return json.dumps({
        "event": {
            "type": event_type,
            "data": {"id": charge_id, "metadata": {"order_id": str(order_id)}},
        }
    }).encode()


def test_mercadopago_webhook_settles_once(client, session, make_user, make_ebook, make_order, gateway, mailer):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.PROCESSING, payment_id="mp-1")
    gateway.payment = {"id": "mp-1", "status": "approved", "external_reference": str(order.id)}
    body = {"type": "payment", "data": {"id": "mp-1"}}

    first = client.post("/webhooks/mercadopago", json=body)
    second = client.post("/webhooks/mercadopago", json=body)

    assert first.json() == {"received": True, "settled": True}
    assert second.json() == {"received": True, "settled": False}
    assert len(mailer.sent) == 1
    session.expire_all()
    assert session.get(Order, order.id).status == OrderStatus.PAID


def test_mercadopago_webhook_pending_payment(client, session, make_user, make_ebook, make_order, gateway):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.PROCESSING, payment_id="mp-2")
    gateway.payment = {"id": "mp-2", "status": "in_process"}

    response = client.post("/webhooks/mercadopago", params={"type": "payment", "data.id": "mp-2"})

    assert response.json()["settled"] is False
    assert session.get(Order, order.id).status == OrderStatus.PROCESSING


def test_mercadopago_webhook_ignores_other_topics(client):
    response = client.post("/webhooks/mercadopago", json={"type": "merchant_order", "data": {"id": "1"}})
    assert response.json() == {"received": True, "settled": False}


@pytest.mark.parametrize("content", [
    b"[1, 2]",
    b"\xff\xfe\x00garbage",
    b"\"payment\"",
    b"{\"type\": \"payment\", \"data\": \"mp-1\"}",
])
def test_mercadopago_webhook_acknowledges_malformed_bodies(client, gateway, content):
    response = client.post(
        "/webhooks/mercadopago",
        content=content,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "settled": False}


def test_coinbase_webhook_rejects_non_object_event(client):
    body = json.dumps({"event": "charge:confirmed"}).encode()
    response = client.post(
        "/webhooks/coinbase",
        content=body,
        headers={"X-CC-Webhook-Signature": _sign(body), "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


def test_mercadopago_lookup_failure(client, gateway):
    gateway.payment = GatewayError("Mercado Pago API error: 404", status_code=404)
    response = client.post("/webhooks/mercadopago", json={"type": "payment", "data": {"id": "x"}})
    assert response.status_code == 502


def test_coinbase_webhook_requires_valid_signature(client, make_user, make_ebook, make_order):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.PROCESSING, payment_method=PaymentMethod.CRYPTO)
    body = _coinbase_event(order.id)

    response = client.post("/webhooks/coinbase", content=body, headers={"X-CC-Webhook-Signature": "0" * 64})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}


def test_coinbase_confirmed_charge_settles(client, session, make_user, make_ebook, make_order):
    order = make_order(
        make_user(), [make_ebook()],
        status=OrderStatus.PROCESSING,
        payment_method=PaymentMethod.CRYPTO,
        payment_id="charge-1",
    )
    body = _coinbase_event(order.id)

    response = client.post("/webhooks/coinbase", content=body, headers={"X-CC-Webhook-Signature": _sign(body)})

    assert response.json() == {"received": True, "settled": True}
    session.expire_all()
    assert session.get(Order, order.id).status == OrderStatus.PAID


def test_coinbase_created_event_is_acknowledged(client, session, make_user, make_ebook, make_order):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.PROCESSING, payment_method=PaymentMethod.CRYPTO)
    body = _coinbase_event(order.id, event_type="charge:created")

    response = client.post("/webhooks/coinbase", content=body, headers={"X-CC-Webhook-Signature": _sign(body)})

    assert response.json() == {"received": True, "settled": False}
    assert session.get(Order, order.id).status == OrderStatus.PROCESSING


def test_sync_settles_approved_payment(client, session, make_user, make_ebook, make_order, auth_headers, gateway):
    user = make_user()
    order = make_order(user, [make_ebook()], status=OrderStatus.PROCESSING, payment_id="mp-3")
    gateway.status = "approved"

    response = client.post(f"/orders/{order.id}/sync", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["status"] == "PAID"
    assert response.json()["settled"] is True

    again = client.post(f"/orders/{order.id}/sync", headers=auth_headers(user))
    assert again.json() == {"order_id": order.id, "status": "PAID", "gateway_status": None, "settled": False}


def test_sync_survives_gateway_error(client, make_user, make_ebook, make_order, auth_headers, gateway):
    user = make_user()
    order = make_order(user, [make_ebook()], status=OrderStatus.PROCESSING, payment_id="mp-4")
    gateway.status = GatewayError("timeout")

    response = client.post(f"/orders/{order.id}/sync", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["status"] == "PROCESSING"


def test_sync_is_owner_only(client, make_user, make_ebook, make_order, auth_headers):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.PROCESSING)
    response = client.post(f"/orders/{order.id}/sync", headers=auth_headers(make_user()))
    assert response.status_code == 404
