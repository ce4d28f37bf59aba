"""Payment gateway client (Razorpay-compatible orders API)."""

import hashlib
import hmac
from typing import Any

import httpx
import structlog

from app.config import settings
from app.core.exceptions import PaymentGatewayException

logger = structlog.get_logger(__name__)


def compute_hmac_sha256(secret: str, payload: str) -> str:
    """Compute hex HMAC-SHA256 of a payload."""
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


class PaymentGateway:
    """Opens orders and verifies checkout signatures."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize gateway client with API credentials."""
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Open a payment order.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            receipt: Merchant reference for the order
            notes: Free-form key/value metadata

        Returns:
            Order payload, including its ``id``

        Raises:
            PaymentGatewayException: On timeout, transport error, or a non-2xx reply
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post("/orders", json=payload)
                response.raise_for_status()
                order = response.json()
            except httpx.TimeoutException as e:
                logger.error("payment_gateway_error", receipt=receipt, error="timeout")
                raise PaymentGatewayException("Payment gateway timed out") from e
            except httpx.HTTPStatusError as e:
                logger.error(
                    "payment_gateway_error",
                    receipt=receipt,
                    status_code=e.response.status_code,
                )
                raise PaymentGatewayException(
                    f"Payment gateway rejected the order ({e.response.status_code})"
                ) from e
            except (httpx.HTTPError, ValueError) as e:
                logger.error("payment_gateway_error", receipt=receipt, error=str(e))
                raise PaymentGatewayException() from e

        if not isinstance(order, dict) or not order.get("id"):
            logger.error("payment_gateway_error", receipt=receipt, error="missing order id")
            raise PaymentGatewayException("Payment gateway returned an invalid order")

        return order

    def compute_signature(self, order_id: str, payment_id: str) -> str:
        """Signature the gateway attaches to a successful checkout."""
        return compute_hmac_sha256(self.key_secret, f"{order_id}|{payment_id}")

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of a checkout signature."""
        expected = self.compute_signature(order_id, payment_id)
        return hmac.compare_digest(expected, signature)


def get_payment_gateway() -> PaymentGateway:
    """Build the gateway client from settings."""
    return PaymentGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url=settings.payment_gateway_url,
        timeout=settings.payment_gateway_timeout_seconds,
    )
