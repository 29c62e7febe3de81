from ebookstore.config import settings
from ebookstore.exceptions import CheckoutValidationError
from ebookstore.services.payments.base import PaymentInitiation, PaymentRequest, only_digits
from ebookstore.services.payments.mercadopago_client import MercadoPagoClient


def create_card_payment(client: MercadoPagoClient, request: PaymentRequest) -> PaymentInitiation:
    """
    Charge a card tokenized on the client side. Authorization is
    synchronous, so the returned status may already be final.
    Installment limits are enforced by Mercado Pago.
    """
    if not request.card_token:
        raise CheckoutValidationError("Card token is required")

    payer = {"email": request.payer_email}
    if request.payer_cpf:
        payer["identification"] = {"type": "CPF", "number": only_digits(request.payer_cpf)}

    result = client.create_payment({
        "transaction_amount": request.amount,
        "description": request.description,
        "token": request.card_token,
        "installments": request.installments or 1,
        "payer": payer,
        "external_reference": str(request.order_id),
        "notification_url": f"{settings.app_url}/webhooks/mercadopago",
    })

    return PaymentInitiation(
        external_payment_id=str(result["id"]),
        status=MercadoPagoClient.normalize_status(result.get("status")),
        artifact={"status_detail": result.get("status_detail")},
    )
