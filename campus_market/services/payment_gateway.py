# campus_market/services/payment_gateway.py
from decimal import Decimal

import requests

from campus_market.utils.retry import http_retry
from campus_market.utils.settings import PAYMENT_GATEWAY_URL
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)

SUCCEEDED = "succeeded"


class PaymentGatewayClient:
    """
    Thin HTTP client for the payment gateway.
    Minor-unit conversion happens on the gateway side; we send the order total as is.
    """

    def __init__(self, base_url: str | None = None, timeout: int = 5):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def create_intent(self, amount: Decimal, currency: str) -> str:
        url = f"{self.base_url}/intents"
        logger.info(f"PaymentGateway POST {url} amount={amount} {currency}")

        resp = requests.post(
            url,
            json={"amount": str(amount), "currency": currency},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["reference"]

    @http_retry()
    def confirm(self, reference: str) -> str:
        url = f"{self.base_url}/intents/{reference}"
        logger.info(f"PaymentGateway GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json().get("status", "unknown")
