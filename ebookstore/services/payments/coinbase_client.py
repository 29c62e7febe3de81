import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import requests

from ebookstore.config import settings
from ebookstore.exceptions import GatewayError

logger = logging.getLogger(__name__)

COINBASE_API_URL = "https://api.commerce.coinbase.com"


class CoinbaseCommerceClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        timeout: int = 15,
    ):
        self.api_key = api_key if api_key is not None else settings.coinbase_commerce_api_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None
            else settings.coinbase_commerce_webhook_secret
        )
        self.timeout = timeout

    def create_charge(self, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.post(
                f"{COINBASE_API_URL}/charges",
                json=data,
                headers={
                    "Content-Type": "application/json",
                    "X-CC-Api-Key": self.api_key,
                    "X-CC-Version": "2018-03-22",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GatewayError(f"Coinbase Commerce connection error: {e}") from e

        if response.status_code >= 400:
            raise GatewayError(
                f"Coinbase Commerce API error: {response.status_code}",
                status_code=response.status_code,
                payload=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                "Coinbase Commerce returned an invalid JSON body",
                status_code=response.status_code,
                payload=response.text,
            ) from e

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> bool:
        if not signature or not self.webhook_secret:
            return False
        computed = hmac.new(
            self.webhook_secret.encode("utf-8"),
            payload,
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(computed, signature)
