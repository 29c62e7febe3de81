from datetime import datetime, timedelta, timezone

from ebookstore.config import settings
from ebookstore.services.payments.base import PaymentInitiation, PaymentRequest, only_digits
from ebookstore.services.payments.mercadopago_client import MercadoPagoClient

PIX_EXPIRATION = timedelta(minutes=30)


def create_pix_payment(client: MercadoPagoClient, request: PaymentRequest) -> PaymentInitiation:
    """PIX charge. Confirmation always arrives later, by webhook or poll."""
    expires_at = datetime.now(timezone.utc) + PIX_EXPIRATION

    payer = {"email": request.payer_email}
    if request.payer_cpf:
        payer["identification"] = {"type": "CPF", "number": only_digits(request.payer_cpf)}

    result = client.create_payment({
        "transaction_amount": request.amount,
        "description": request.description,
        "payment_method_id": "pix",
        "payer": payer,
        "external_reference": str(request.order_id),
        "date_of_expiration": expires_at.isoformat(timespec="milliseconds"),
        "notification_url": f"{settings.app_url}/webhooks/mercadopago",
    })

    transaction = result.get("point_of_interaction", {}).get("transaction_data", {})

    return PaymentInitiation(
        external_payment_id=str(result["id"]),
        status="pending",
        artifact={
            "qr_code": transaction.get("qr_code", ""),
            "qr_code_base64": transaction.get("qr_code_base64", ""),
            "expires_at": expires_at.isoformat(),
        },
    )
