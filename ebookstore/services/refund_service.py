import logging
from typing import Optional

from fastapi import Request
from pydantic import BaseModel
from sqlmodel import Session

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.constants.order_status import MERCADOPAGO_METHODS, OrderStatus
from ebookstore.exceptions import GatewayError, OrderNotRefundableError
from ebookstore.models.order import Order
from ebookstore.models.user import User
from ebookstore.services.audit_service import create_log
from ebookstore.services.order_state_service import transition_order
from ebookstore.services.payment_service import PaymentGateway

logger = logging.getLogger(__name__)


class RefundResult(BaseModel):
    order_id: int
    gateway_attempted: bool
    gateway_refunded: bool
    gateway_error: Optional[str] = None


def refund_order(
    *,
    session: Session,
    order: Order,
    gateway: PaymentGateway,
    actor: User,
    request: Optional[Request] = None,
) -> RefundResult:
    """
    PAID -> REFUNDED. The gateway refund is best effort: when it fails the
    store still records the refund and the gap is left in the logs for
    reconciliation.
    """
    if order.status != OrderStatus.PAID:
        raise OrderNotRefundableError("Only paid orders can be refunded")

    attempted = order.payment_method in MERCADOPAGO_METHODS and bool(order.payment_id)
    refunded = False
    gateway_error = None

    if attempted:
        try:
            gateway.refund(order)
            refunded = True
        except GatewayError as e:
            gateway_error = str(e)
            logger.error(f"Mercado Pago refund error for order {order.id}: {e}")
        except Exception as e:
            # the local refund still goes through; the failure is reported back
            gateway_error = f"Unexpected refund error: {e}"
            logger.exception(f"Unexpected refund error for order {order.id}")

    if not transition_order(session, order, OrderStatus.REFUNDED):
        session.rollback()
        raise OrderNotRefundableError("Only paid orders can be refunded")
    session.commit()

    create_log(
        session,
        action=LogAction.REFUND,
        resource=LogResource.ORDER,
        user_id=actor.id,
        resource_id=order.id,
        description=f"Reembolso do pedido #{order.short_id} - {order.total:.2f}",
        metadata={
            "gateway_attempted": attempted,
            "gateway_refunded": refunded,
            "gateway_error": gateway_error,
        },
        changed_fields=["status"],
        request=request,
    )

    return RefundResult(
        order_id=order.id,
        gateway_attempted=attempted,
        gateway_refunded=refunded,
        gateway_error=gateway_error,
    )
