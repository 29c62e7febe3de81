from ebookstore.config import settings
from ebookstore.exceptions import CheckoutValidationError
from ebookstore.services.payments.base import (
    PaymentInitiation,
    PaymentRequest,
    only_digits,
    split_name,
)
from ebookstore.services.payments.mercadopago_client import MercadoPagoClient


def create_boleto_payment(client: MercadoPagoClient, request: PaymentRequest) -> PaymentInitiation:
    """Boleto bancário. Settlement can take a few business days."""
    cpf = only_digits(request.payer_cpf)
    if not cpf:
        raise CheckoutValidationError("CPF is required for boleto payments")

    first_name, last_name = split_name(request.payer_name)

    result = client.create_payment({
        "transaction_amount": request.amount,
        "description": request.description,
        "payment_method_id": "bolbradesco",
        "payer": {
            "email": request.payer_email,
            "first_name": first_name,
            "last_name": last_name,
            "identification": {"type": "CPF", "number": cpf},
        },
        "external_reference": str(request.order_id),
        "notification_url": f"{settings.app_url}/webhooks/mercadopago",
    })

    return PaymentInitiation(
        external_payment_id=str(result["id"]),
        status="pending",
        artifact={
            "boleto_url": (result.get("transaction_details") or {}).get("external_resource_url", ""),
            "barcode": (result.get("barcode") or {}).get("content", ""),
            "expires_at": result.get("date_of_expiration") or "",
        },
    )
