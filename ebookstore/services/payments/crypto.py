from ebookstore.config import settings
from ebookstore.services.payments.base import PaymentInitiation, PaymentRequest
from ebookstore.services.payments.coinbase_client import CoinbaseCommerceClient


def create_crypto_payment(client: CoinbaseCommerceClient, request: PaymentRequest) -> PaymentInitiation:
    """Hosted Coinbase Commerce charge; confirmed only through the webhook."""
    result = client.create_charge({
        "name": settings.store_name,
        "description": request.description,
        "pricing_type": "fixed_price",
        "local_price": {
            "amount": f"{request.amount:.2f}",
            "currency": "BRL",
        },
        "metadata": {"order_id": str(request.order_id)},
        "redirect_url": f"{settings.app_url}/pedidos/{request.order_id}",
        "cancel_url": f"{settings.app_url}/checkout",
    })

    charge = result["data"]

    return PaymentInitiation(
        external_payment_id=str(charge["id"]),
        status="pending",
        artifact={"charge_url": charge["hosted_url"]},
    )
