from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    CRYPTO = "CRYPTO"
    BOLETO = "BOLETO"
    FREE_COUPON = "FREE_COUPON"


# Forward-only: no edge re-enters an earlier state
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.PROCESSING, OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PROCESSING: [OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PAID: [OrderStatus.REFUNDED],
    OrderStatus.REFUNDED: [],
    OrderStatus.CANCELLED: [],
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Methods refunded through Mercado Pago; crypto charges and free orders are not
MERCADOPAGO_METHODS = frozenset(
    {PaymentMethod.PIX, PaymentMethod.CREDIT_CARD, PaymentMethod.BOLETO}
)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, [])


def sources_for(target: OrderStatus) -> list:
    """Every status that has a direct edge into ``target``."""
    return [
        status
        for status, targets in ALLOWED_TRANSITIONS.items()
        if target in targets
    ]
