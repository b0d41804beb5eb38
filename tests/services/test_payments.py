from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from app.core.config import Settings
from app.services.payments import ChargilyGateway, PaymentGatewayError, PayPalGateway
from app.services.payments.chargily import to_dzd


def _settings() -> Settings:
    return Settings(
        CHARGILY_SECRET_KEY="sk_test",
        CHARGILY_BASE_URL="https://chargily.test/api/v2/",
        CHARGILY_DZD_RATE=200,
        PAYPAL_CLIENT_ID="client",
        PAYPAL_CLIENT_SECRET="secret",
        PAYPAL_BASE_URL="https://paypal.test",
        CHECKOUT_SUCCESS_URL="https://shop.test/success",
        CHECKOUT_FAILURE_URL="https://shop.test/failed",
    )


def _patch_transport(monkeypatch: pytest.MonkeyPatch, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []
    real_client = httpx.AsyncClient

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def factory(*, timeout: float) -> httpx.AsyncClient:
        return real_client(transport=httpx.MockTransport(recording_handler), timeout=timeout)

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return seen


@pytest.mark.parametrize(
    ("amount", "expected"),
    [(Decimal("10"), 2000), (Decimal("0.0025"), 1), (Decimal("1.2345"), 247)],
)
def test_to_dzd_rounds_half_up(amount: Decimal, expected: int) -> None:
    assert to_dzd(amount, 200.0) == expected


@pytest.mark.asyncio
async def test_chargily_checkout_returns_checkout_url(monkeypatch) -> None:
    seen = _patch_transport(
        monkeypatch,
        lambda request: httpx.Response(200, json={"id": "chk_1", "checkout_url": "https://pay.test/chk_1"}),
    )

    url = await ChargilyGateway(_settings()).create_checkout(amount=Decimal("12.5"))

    assert url == "https://pay.test/chk_1"
    request = seen[0]
    assert str(request.url) == "https://chargily.test/api/v2/checkouts"
    assert request.headers["Authorization"] == "Bearer sk_test"
    body = json.loads(request.content)
    assert body["amount"] == 2500
    assert body["currency"] == "dzd"
    assert body["success_url"] == "https://shop.test/success"
    assert body["failure_url"] == "https://shop.test/failed"


@pytest.mark.asyncio
async def test_chargily_rejection_surfaces_gateway_message(monkeypatch) -> None:
    _patch_transport(monkeypatch, lambda request: httpx.Response(422, json={"message": "amount too small"}))

    with pytest.raises(PaymentGatewayError) as exc_info:
        await ChargilyGateway(_settings()).create_checkout(amount=Decimal("0.01"))

    assert exc_info.value.message == "amount too small"
    assert exc_info.value.status_code == 422
    assert exc_info.value.provider == "chargily"


@pytest.mark.asyncio
async def test_chargily_network_error_is_wrapped(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    _patch_transport(monkeypatch, handler)

    with pytest.raises(PaymentGatewayError) as exc_info:
        await ChargilyGateway(_settings()).create_checkout(amount=Decimal("5"))
    assert exc_info.value.status_code is None


def _paypal_handler(order_response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "Bearer"})
        return order_response

    return handler


@pytest.mark.asyncio
async def test_paypal_create_order_requests_token_then_order(monkeypatch) -> None:
    seen = _patch_transport(
        monkeypatch,
        _paypal_handler(httpx.Response(201, json={"id": "PP-1", "status": "CREATED"})),
    )

    data = await PayPalGateway(_settings()).create_order(amount=Decimal("19.9"), description="cards")

    assert data == {"id": "PP-1", "status": "CREATED"}
    token_request, order_request = seen
    assert token_request.headers["Authorization"].startswith("Basic ")
    assert token_request.content == b"grant_type=client_credentials"
    assert str(order_request.url) == "https://paypal.test/v2/checkout/orders"
    assert order_request.headers["Authorization"] == "Bearer tok"
    body = json.loads(order_request.content)
    assert body["intent"] == "CAPTURE"
    assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "19.90"}
    assert body["purchase_units"][0]["description"] == "cards"


@pytest.mark.asyncio
async def test_paypal_capture_surfaces_issue_detail(monkeypatch) -> None:
    seen = _patch_transport(
        monkeypatch,
        _paypal_handler(httpx.Response(422, json={"details": [{"issue": "ORDER_ALREADY_CAPTURED"}]})),
    )

    with pytest.raises(PaymentGatewayError) as exc_info:
        await PayPalGateway(_settings()).capture_order(order_id="PP-1")

    assert exc_info.value.message == "ORDER_ALREADY_CAPTURED"
    assert seen[1].url.path == "/v2/checkout/orders/PP-1/capture"


@pytest.mark.asyncio
async def test_paypal_token_failure_stops_before_order_call(monkeypatch) -> None:
    seen = _patch_transport(monkeypatch, lambda request: httpx.Response(401, json={"error": "invalid_client"}))

    with pytest.raises(PaymentGatewayError) as exc_info:
        await PayPalGateway(_settings()).create_order(amount=Decimal("1"))

    assert exc_info.value.status_code == 401
    assert len(seen) == 1
