import logging
from typing import Optional

from ebookstore.constants.order_status import MERCADOPAGO_METHODS, PaymentMethod
from ebookstore.exceptions import GatewayError
from ebookstore.models.order import Order
from ebookstore.services.payments import (
    PaymentInitiation,
    PaymentRequest,
    create_boleto_payment,
    create_card_payment,
    create_crypto_payment,
    create_pix_payment,
)
from ebookstore.services.payments.coinbase_client import CoinbaseCommerceClient
from ebookstore.services.payments.mercadopago_client import MercadoPagoClient

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Dispatches payment operations to the adapter of each payment method."""

    def __init__(
        self,
        mercadopago: Optional[MercadoPagoClient] = None,
        coinbase: Optional[CoinbaseCommerceClient] = None,
    ):
        self.mercadopago = mercadopago or MercadoPagoClient()
        self.coinbase = coinbase or CoinbaseCommerceClient()

    def initiate(self, method: PaymentMethod, request: PaymentRequest) -> PaymentInitiation:
        logger.info(f"Initiating {method.value} payment for order {request.order_id}: {request.amount:.2f}")

        if method == PaymentMethod.PIX:
            return create_pix_payment(self.mercadopago, request)
        if method == PaymentMethod.CREDIT_CARD:
            return create_card_payment(self.mercadopago, request)
        if method == PaymentMethod.BOLETO:
            return create_boleto_payment(self.mercadopago, request)
        if method == PaymentMethod.CRYPTO:
            return create_crypto_payment(self.coinbase, request)

        raise GatewayError(f"No gateway for payment method {method.value}")

    def refund(self, order: Order) -> dict:
        """Refund a Mercado Pago payment. Raises GatewayError on failure."""
        if order.payment_method not in MERCADOPAGO_METHODS or not order.payment_id:
            raise GatewayError(f"Order {order.id} has no refundable gateway payment")

        logger.info(f"Processing refund: {order.payment_id}, amount: {order.total}")
        return self.mercadopago.refund_payment(order.payment_id)

    def fetch_status(self, order: Order) -> Optional[str]:
        """
        Current normalized status of the order's gateway payment, or None when
        the method cannot be polled (crypto charges are webhook-only).
        """
        if order.payment_method not in MERCADOPAGO_METHODS or not order.payment_id:
            return None

        payment = self.mercadopago.get_payment(order.payment_id)
        return MercadoPagoClient.normalize_status(payment.get("status"))

    def fetch_payment(self, payment_id: str) -> dict:
        return self.mercadopago.get_payment(payment_id)


payment_gateway = PaymentGateway()


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway
