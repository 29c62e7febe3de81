import logging
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session

from ebookstore.constants.order_status import OrderStatus, can_transition, sources_for
from ebookstore.exceptions import InvalidTransitionError
from ebookstore.models.order import Order

logger = logging.getLogger(__name__)


def transition_order(session: Session, order: Order, target: OrderStatus, **values) -> bool:
    """
    Move ``order`` to ``target`` with a conditional UPDATE.

    The row only changes when its *stored* status still has an edge into
    ``target``, so two racing callers cannot both apply the same edge.
    Returns True when this call applied the transition. Does not commit.

    Raises InvalidTransitionError when the loaded status has no edge into
    ``target`` at all.
    """
    if not can_transition(order.status, target):
        raise InvalidTransitionError(order.status, target)

    result = session.exec(
        update(Order)
        .where(Order.id == order.id)
        .where(Order.status.in_(sources_for(target)))
        .values(status=target, updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    applied = result.rowcount == 1
    session.refresh(order)

    if applied:
        logger.info(f"Order {order.id} -> {target.value}")
    else:
        logger.info(f"Order {order.id} not moved to {target.value}: status is {order.status.value}")

    return applied


def cancel_order_quietly(session: Session, order_id: int) -> bool:
    """
    Best-effort cancellation after a failed checkout. Any failure here is
    logged and swallowed; it is never retried.
    """
    try:
        session.rollback()
        order = session.get(Order, order_id)
        if order is None or not can_transition(order.status, OrderStatus.CANCELLED):
            return False
        applied = transition_order(session, order, OrderStatus.CANCELLED)
        session.commit()
        return applied
    except Exception:
        logger.exception(f"Failed to cancel order {order_id} after checkout error")
        return False
