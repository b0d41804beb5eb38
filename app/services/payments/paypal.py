from __future__ import annotations

from decimal import Decimal
from typing import Any

import httpx
import structlog

from app.core.config import Settings
from app.services.payments.chargily import DEFAULT_DESCRIPTION, json_body
from app.services.payments.errors import PaymentGatewayError

logger = structlog.get_logger(__name__)

PROVIDER = "paypal"
TOKEN_FAILED_MESSAGE = "فشل الحصول على رمز الدخول"
CREATE_FAILED_MESSAGE = "فشل إنشاء طلب PayPal"
CAPTURE_FAILED_MESSAGE = "فشل تأكيد الطلب"


def _gateway_message(data: dict[str, Any], fallback: str) -> str:
    if data.get("message"):
        return str(data["message"])
    details = data.get("details")
    if isinstance(details, list) and details and isinstance(details[0], dict) and details[0].get("issue"):
        return str(details[0]["issue"])
    return fallback


class PayPalGateway:
    """Orders v2 client: OAuth client-credentials token, then create / capture."""

    def __init__(self, settings: Settings) -> None:
        self._client_id = settings.paypal_client_id
        self._client_secret = settings.paypal_client_secret
        self._base_url = settings.paypal_base_url.rstrip("/")
        self._timeout = settings.payment_gateway_timeout_seconds

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            f"{self._base_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        data = json_body(response)
        if response.status_code >= 400 or not data.get("access_token"):
            logger.warning("paypal_token_rejected", status_code=response.status_code)
            raise PaymentGatewayError(TOKEN_FAILED_MESSAGE, provider=PROVIDER, status_code=response.status_code)
        return str(data["access_token"])

    async def _authorized_post(
        self,
        path: str,
        *,
        body: dict[str, Any] | None,
        fallback_message: str,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                token = await self._access_token(client)
                response = await client.post(
                    f"{self._base_url}{path}",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            logger.exception("paypal_request_failed", path=path)
            raise PaymentGatewayError(fallback_message, provider=PROVIDER) from exc

        data = json_body(response)
        if response.status_code >= 400:
            message = _gateway_message(data, fallback_message)
            logger.warning("paypal_request_rejected", path=path, status_code=response.status_code, gateway_message=message)
            raise PaymentGatewayError(message, provider=PROVIDER, status_code=response.status_code)
        return data

    async def create_order(self, *, amount: Decimal, description: str | None = None) -> dict[str, Any]:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "description": description or DEFAULT_DESCRIPTION,
                    "amount": {
                        "currency_code": "USD",
                        "value": f"{Decimal(amount):.2f}",
                    },
                }
            ],
        }
        data = await self._authorized_post("/v2/checkout/orders", body=body, fallback_message=CREATE_FAILED_MESSAGE)
        logger.info("paypal_order_created", paypal_order_id=data.get("id"))
        return data

    async def capture_order(self, *, order_id: str) -> dict[str, Any]:
        data = await self._authorized_post(
            f"/v2/checkout/orders/{order_id}/capture",
            body=None,
            fallback_message=CAPTURE_FAILED_MESSAGE,
        )
        logger.info("paypal_order_captured", paypal_order_id=order_id, status=data.get("status"))
        return data
