from .base import PaymentRequest, PaymentInitiation
from .pix import create_pix_payment
from .credit_card import create_card_payment
from .boleto import create_boleto_payment
from .crypto import create_crypto_payment

__all__ = [
    "PaymentRequest",
    "PaymentInitiation",
    "create_pix_payment",
    "create_card_payment",
    "create_boleto_payment",
    "create_crypto_payment",
]
