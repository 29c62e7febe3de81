class CheckoutValidationError(Exception):
    """Cart or payment input rejected before any order row exists."""


class InvalidTransitionError(Exception):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Order cannot move from {current} to {target}")


class OrderNotRefundableError(Exception):
    pass


class GatewayError(Exception):
    """A payment provider call failed or answered with an error status."""

    def __init__(self, message: str, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class CheckoutFailedError(Exception):
    """Checkout broke after the order row was created; the order was cancelled."""

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Checkout failed for order {order_id}")
