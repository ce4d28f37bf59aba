"""Tests for the payment gateway client."""

import json

import httpx
import pytest

from app.core.exceptions import PaymentGatewayException
from app.core.payment_gateway import PaymentGateway, compute_hmac_sha256


def _gateway(handler) -> PaymentGateway:
    return PaymentGateway(
        key_id="rzp_test_key",
        key_secret="secret",
        base_url="https://gateway.test/v1/",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def test_signature_scheme():
    """Signature is hex HMAC-SHA256 over "order_id|payment_id"."""
    gateway = _gateway(lambda request: httpx.Response(200))
    expected = compute_hmac_sha256("secret", "order_1|pay_1")

    assert gateway.compute_signature("order_1", "pay_1") == expected
    assert len(expected) == 64
    assert gateway.verify_signature("order_1", "pay_1", expected)
    assert not gateway.verify_signature("order_1", "pay_2", expected)
    assert not gateway.verify_signature("order_1", "pay_1", expected.upper())
    assert not gateway.verify_signature("order_1", "pay_1", "")


async def test_create_order_posts_to_orders_api():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_42", "currency": "INR"})

    order = await _gateway(handler).create_order(
        amount=80000, currency="INR", receipt="apt_1", notes={"appointment_id": "1"}
    )

    assert order["id"] == "order_42"
    assert captured["url"] == "https://gateway.test/v1/orders"
    assert captured["auth"].startswith("Basic ")
    assert captured["body"] == {
        "amount": 80000,
        "currency": "INR",
        "receipt": "apt_1",
        "notes": {"appointment_id": "1"},
    }


async def test_create_order_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PaymentGatewayException) as exc_info:
        await _gateway(handler).create_order(amount=100, currency="INR", receipt="apt_1")
    assert exc_info.value.status_code == 502
    assert "timed out" in exc_info.value.message


async def test_create_order_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"description": "bad amount"}})

    with pytest.raises(PaymentGatewayException) as exc_info:
        await _gateway(handler).create_order(amount=100, currency="INR", receipt="apt_1")
    assert "400" in exc_info.value.message


async def test_create_order_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(PaymentGatewayException):
        await _gateway(handler).create_order(amount=100, currency="INR", receipt="apt_1")


async def test_create_order_without_order_id():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "created"})

    with pytest.raises(PaymentGatewayException):
        await _gateway(handler).create_order(amount=100, currency="INR", receipt="apt_1")
