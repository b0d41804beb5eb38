from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
import structlog

from app.core.config import Settings
from app.services.payments.errors import PaymentGatewayError

logger = structlog.get_logger(__name__)

PROVIDER = "chargily"
DEFAULT_DESCRIPTION = "شراء منتجات"
CHECKOUT_FAILED_MESSAGE = "فشل إنشاء جلسة الدفع"


def to_dzd(amount: Decimal, rate: float) -> int:
    return int((Decimal(amount) * Decimal(str(rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ChargilyGateway:
    def __init__(self, settings: Settings) -> None:
        self._secret_key = settings.chargily_secret_key
        self._base_url = settings.chargily_base_url.rstrip("/")
        self._dzd_rate = settings.chargily_dzd_rate
        self._success_url = settings.checkout_success_url
        self._failure_url = settings.checkout_failure_url
        self._timeout = settings.payment_gateway_timeout_seconds

    async def create_checkout(
        self,
        *,
        amount: Decimal,
        success_url: str | None = None,
        failure_url: str | None = None,
        description: str | None = None,
    ) -> str:
        body = {
            "amount": to_dzd(amount, self._dzd_rate),
            "currency": "dzd",
            "description": description or DEFAULT_DESCRIPTION,
            "success_url": success_url or self._success_url,
            "failure_url": failure_url or self._failure_url,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/checkouts",
                    json=body,
                    headers={"Authorization": f"Bearer {self._secret_key}"},
                )
        except httpx.HTTPError as exc:
            logger.exception("chargily_checkout_request_failed")
            raise PaymentGatewayError(CHECKOUT_FAILED_MESSAGE, provider=PROVIDER) from exc

        data = json_body(response)
        if response.status_code >= 400 or not data.get("checkout_url"):
            message = str(data.get("message") or CHECKOUT_FAILED_MESSAGE)
            logger.warning(
                "chargily_checkout_rejected",
                status_code=response.status_code,
                gateway_message=message,
            )
            raise PaymentGatewayError(message, provider=PROVIDER, status_code=response.status_code)

        logger.info("chargily_checkout_created", amount_dzd=body["amount"])
        return str(data["checkout_url"])


def json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
