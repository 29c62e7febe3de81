import hashlib
import hmac

import pytest
import requests

from ebookstore.exceptions import CheckoutValidationError, GatewayError
from ebookstore.services.payments import (
    PaymentRequest,
    create_boleto_payment,
    create_card_payment,
    create_crypto_payment,
    create_pix_payment,
)
from ebookstore.services.payments.coinbase_client import CoinbaseCommerceClient
from ebookstore.services.payments.mercadopago_client import MercadoPagoClient


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {}
        self.text = str(self._body)

    def json(self):
        return self._body


class BrokenJSONResponse(FakeResponse):
    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


@pytest.fixture
def mp_calls(monkeypatch):
    calls = []
    responses = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        return responses.pop(0)

    monkeypatch.setattr(
        "ebookstore.services.payments.mercadopago_client.requests.request", fake_request
    )
    return calls, responses


def _request(**kwargs):
    values = {
        "amount": 44.91,
        "description": "Fude kotoba - Pedido #00000001",
        "order_id": 1,
        "payer_email": "ana@example.com",
        "payer_name": "Ana Maria Souza",
        "payer_cpf": "123.456.789-09",
    }
    values.update(kwargs)
    return PaymentRequest(**values)


def test_pix_payment_returns_qr_code(mp_calls):
    calls, responses = mp_calls
    responses.append(FakeResponse(201, {
        "id": 1234,
        "status": "pending",
        "point_of_interaction": {
            "transaction_data": {"qr_code": "00020126pix", "qr_code_base64": "aW1n"}
        },
    }))

    result = create_pix_payment(MercadoPagoClient(access_token="TEST"), _request())

    assert result.external_payment_id == "1234"
    assert result.status == "pending"
    assert result.artifact["qr_code"] == "00020126pix"
    assert result.artifact["expires_at"]

    sent = calls[0]
    assert sent["method"] == "POST"
    assert sent["url"].endswith("/payments")
    assert sent["json"]["payment_method_id"] == "pix"
    assert sent["json"]["payer"]["identification"]["number"] == "12345678909"
    assert sent["json"]["external_reference"] == "1"
    assert sent["headers"]["Authorization"] == "Bearer TEST"
    assert "X-Idempotency-Key" in sent["headers"]


def test_card_payment_normalizes_status(mp_calls):
    _, responses = mp_calls
    responses.append(FakeResponse(201, {"id": 99, "status": "approved", "status_detail": "accredited"}))

    result = create_card_payment(
        MercadoPagoClient(access_token="TEST"),
        _request(card_token="tok_1", installments=3),
    )

    assert result.status == "approved"
    assert result.external_payment_id == "99"


def test_card_payment_needs_token(mp_calls):
    calls, _ = mp_calls
    with pytest.raises(CheckoutValidationError):
        create_card_payment(MercadoPagoClient(access_token="TEST"), _request())
    assert calls == []


def test_boleto_requires_cpf_and_splits_name(mp_calls):
    calls, responses = mp_calls
    client = MercadoPagoClient(access_token="TEST")

    with pytest.raises(CheckoutValidationError):
        create_boleto_payment(client, _request(payer_cpf=None))

    responses.append(FakeResponse(201, {
        "id": 5,
        "status": "pending",
        "barcode": {"content": "23790000"},
        "transaction_details": {"external_resource_url": "https://mp.test/boleto/5"},
        "date_of_expiration": "2026-01-04T23:59:59.000-03:00",
    }))
    result = create_boleto_payment(client, _request())

    payer = calls[0]["json"]["payer"]
    assert payer["first_name"] == "Ana"
    assert payer["last_name"] == "Maria Souza"
    assert result.artifact == {
        "boleto_url": "https://mp.test/boleto/5",
        "barcode": "23790000",
        "expires_at": "2026-01-04T23:59:59.000-03:00",
    }


def test_mercadopago_errors_raise_gateway_error(mp_calls):
    _, responses = mp_calls
    responses.append(FakeResponse(400, {"message": "invalid"}))

    with pytest.raises(GatewayError) as excinfo:
        MercadoPagoClient(access_token="TEST").get_payment("1")
    assert excinfo.value.status_code == 400


def test_mercadopago_connection_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr("ebookstore.services.payments.mercadopago_client.requests.request", boom)
    with pytest.raises(GatewayError):
        MercadoPagoClient(access_token="TEST").refund_payment("1")


def test_mercadopago_invalid_json_raises_gateway_error(mp_calls):
    _, responses = mp_calls
    responses.append(BrokenJSONResponse(200))

    with pytest.raises(GatewayError) as excinfo:
        MercadoPagoClient(access_token="TEST").refund_payment("1")
    assert excinfo.value.status_code == 200


def test_coinbase_invalid_json_raises_gateway_error(monkeypatch):
    monkeypatch.setattr(
        "ebookstore.services.payments.coinbase_client.requests.post",
        lambda *args, **kwargs: BrokenJSONResponse(201),
    )
    with pytest.raises(GatewayError):
        CoinbaseCommerceClient(api_key="cc-key").create_charge({})


def test_normalize_status():
    assert MercadoPagoClient.normalize_status("approved") == "approved"
    assert MercadoPagoClient.normalize_status("in_process") == "pending"
    assert MercadoPagoClient.normalize_status("charged_back") == "refunded"
    assert MercadoPagoClient.normalize_status(None) == "pending"


def test_crypto_charge(monkeypatch):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers)
        return FakeResponse(201, {"data": {"id": "c-1", "hosted_url": "https://commerce.coinbase.com/charges/C1"}})

    monkeypatch.setattr("ebookstore.services.payments.coinbase_client.requests.post", fake_post)

    result = create_crypto_payment(CoinbaseCommerceClient(api_key="cc-key"), _request())

    assert result.external_payment_id == "c-1"
    assert result.artifact == {"charge_url": "https://commerce.coinbase.com/charges/C1"}
    assert sent["json"]["local_price"] == {"amount": "44.91", "currency": "BRL"}
    assert sent["json"]["metadata"] == {"order_id": "1"}
    assert sent["headers"]["X-CC-Api-Key"] == "cc-key"


def test_coinbase_webhook_signature():
    client = CoinbaseCommerceClient(api_key="k", webhook_secret="whsec")
    body = b'{"event": {"type": "charge:confirmed"}}'
    signature = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

    assert client.verify_webhook(body, signature)
    assert not client.verify_webhook(body, "0" * 64)
    assert not client.verify_webhook(body, None)
    assert not CoinbaseCommerceClient(api_key="k", webhook_secret="").verify_webhook(body, signature)
