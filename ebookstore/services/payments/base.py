from typing import Any, Dict, Optional

from pydantic import BaseModel


class PaymentRequest(BaseModel):
    amount: float
    description: str
    order_id: int
    payer_email: Optional[str] = None
    payer_name: Optional[str] = None
    payer_cpf: Optional[str] = None

    # credit card only
    card_token: Optional[str] = None
    installments: int = 1


class PaymentInitiation(BaseModel):
    """Vendor-neutral answer of a gateway adapter."""

    external_payment_id: str
    status: str
    artifact: Dict[str, Any] = {}


def only_digits(value: Optional[str]) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


def split_name(full_name: Optional[str]) -> tuple[str, str]:
    parts = (full_name or "").split()
    if not parts:
        return "Cliente", ""
    return parts[0], " ".join(parts[1:])
