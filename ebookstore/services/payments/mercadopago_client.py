import logging
import uuid
from typing import Any, Dict, Optional

import requests

from ebookstore.config import settings
from ebookstore.exceptions import GatewayError

logger = logging.getLogger(__name__)


class MercadoPagoClient:
    """Thin client over the Mercado Pago v1 REST API."""

    api_base_url = "https://api.mercadopago.com/v1"

    # Mercado Pago status -> what the order flow cares about
    STATUS_MAP = {
        "approved": "approved",
        "authorized": "pending",
        "pending": "pending",
        "in_process": "pending",
        "in_mediation": "pending",
        "rejected": "rejected",
        "cancelled": "cancelled",
        "refunded": "refunded",
        "charged_back": "refunded",
    }

    def __init__(self, access_token: Optional[str] = None, timeout: int = 15):
        self.access_token = access_token if access_token is not None else settings.mercadopago_access_token
        self.timeout = timeout

        if not self.access_token:
            logger.warning("MERCADOPAGO_ACCESS_TOKEN not configured. Real payments will fail.")

    def _headers(self, idempotent: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotent:
            headers["X-Idempotency-Key"] = str(uuid.uuid4())
        return headers

    def _request(self, method: str, path: str, *, idempotent: bool = False, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_base_url}{path}"
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(idempotent),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise GatewayError(f"Mercado Pago connection error: {e}") from e

        if response.status_code >= 400:
            raise GatewayError(
                f"Mercado Pago API error: {response.status_code}",
                status_code=response.status_code,
                payload=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                "Mercado Pago returned an invalid JSON body",
                status_code=response.status_code,
                payload=response.text,
            ) from e

    def create_payment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/payments", json=payload, idempotent=True)

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/payments/{payment_id}")

    def refund_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/payments/{payment_id}/refunds", json={}, idempotent=True)

    @classmethod
    def normalize_status(cls, mp_status: Optional[str]) -> str:
        return cls.STATUS_MAP.get(mp_status or "", "pending")
