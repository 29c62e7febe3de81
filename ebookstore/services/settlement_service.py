"""
Settlement: everything that happens once an order is confirmed paid.

The PENDING/PROCESSING -> PAID conditional update is the only gate. The
caller that wins it runs the fan-out; every later or concurrent call for
the same order returns ``applied=False`` and does nothing, so webhooks,
client polls and the synchronous checkout path can all call
``process_successful_payment`` freely.

Fan-out steps never roll back the PAID status. Each one is run on its own,
its failure logged, and its outcome reported in ``SettlementResult.steps``.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import Request
from pydantic import BaseModel
from sqlalchemy import update
from sqlmodel import Session, select

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.constants.order_status import OrderStatus, sources_for
from ebookstore.models.coupon import Coupon, CouponUsage
from ebookstore.models.ebook import Ebook
from ebookstore.models.notifications import NotificationType
from ebookstore.models.order import Order
from ebookstore.models.order_item import OrderItem
from ebookstore.services.audit_service import create_log
from ebookstore.services.email_service import send_delivery_email, send_email
from ebookstore.services.notification_service import create_notification
from ebookstore.services.order_state_service import transition_order
from ebookstore.services.referral_service import reward_referrer
from ebookstore.utils.download_token import build_download_links

logger = logging.getLogger(__name__)

# step -> what happens when it fails. Nothing in settlement is fatal.
SIDE_EFFECT_POLICY = {
    "sales_counters": "log",
    "download_grants": "log",
    "delivery_email": "log",
    "buyer_notification": "log",
    "referral_reward": "log",
}


class StepResult(BaseModel):
    name: str
    ok: bool
    error: Optional[str] = None


class SettlementResult(BaseModel):
    order_id: int
    applied: bool
    status: Optional[OrderStatus] = None
    steps: list[StepResult] = []
    download_links: list[dict] = []

    def step(self, name: str) -> Optional[StepResult]:
        return next((s for s in self.steps if s.name == name), None)


def _run_step(session: Session, name: str, fn: Callable[[], Any]) -> tuple[StepResult, Any]:
    try:
        value = fn()
    except Exception as e:
        session.rollback()
        logger.exception(f"Settlement step '{name}' failed ({SIDE_EFFECT_POLICY[name]})")
        return StepResult(name=name, ok=False, error=str(e) or e.__class__.__name__), None

    if value is False:
        return StepResult(name=name, ok=False, error="not delivered"), value
    return StepResult(name=name, ok=True), value


def _mark_paid(session: Session, order: Order) -> bool:
    applied = transition_order(session, order, OrderStatus.PAID, paid_at=datetime.utcnow())
    if not applied:
        session.rollback()
        return False

    if order.coupon_id:
        session.exec(
            update(Coupon)
            .where(Coupon.id == order.coupon_id)
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        session.add(CouponUsage(
            coupon_id=order.coupon_id,
            user_id=order.user_id,
            order_id=order.id,
        ))

    session.commit()
    session.refresh(order)
    return True


def _increment_sales_counts(session: Session, order: Order):
    ebook_ids = [item.ebook_id for item in order.items]
    session.exec(
        update(Ebook)
        .where(Ebook.id.in_(ebook_ids))
        .values(sales_count=Ebook.sales_count + 1)
        .execution_options(synchronize_session=False)
    )
    session.commit()


def _download_links(session: Session, order: Order) -> list[dict]:
    items = session.exec(
        select(OrderItem, Ebook)
        .join(Ebook, Ebook.id == OrderItem.ebook_id)
        .where(OrderItem.order_id == order.id)
    ).all()
    return [
        {
            "ebook_id": ebook.id,
            "title": ebook.title,
            "formats": build_download_links(order.user_id, ebook.id),
        }
        for _, ebook in items
    ]


def _notify_buyer(session: Session, order: Order):
    create_notification(
        session=session,
        user_id=order.user_id,
        title="Pedido confirmado!",
        message=(
            f"Seu pedido #{order.short_id} foi confirmado. "
            "Acesse sua biblioteca para baixar seus e-books."
        ),
        type=NotificationType.success,
        link="/biblioteca",
    )
    session.commit()


def process_successful_payment(
    session: Session,
    order_id: int,
    *,
    mailer=send_email,
    request: Optional[Request] = None,
) -> SettlementResult:
    order = session.get(Order, order_id)
    if order is None:
        logger.warning(f"Settlement requested for unknown order {order_id}")
        return SettlementResult(order_id=order_id, applied=False)

    if order.status not in sources_for(OrderStatus.PAID) or not _mark_paid(session, order):
        logger.info(f"Order {order_id} already settled or not payable (status {order.status.value})")
        return SettlementResult(order_id=order_id, applied=False, status=order.status)

    result = SettlementResult(order_id=order.id, applied=True, status=order.status)

    step, _ = _run_step(session, "sales_counters", lambda: _increment_sales_counts(session, order))
    result.steps.append(step)

    step, links = _run_step(session, "download_grants", lambda: _download_links(session, order))
    result.steps.append(step)
    result.download_links = links or []

    step, _ = _run_step(
        session,
        "delivery_email",
        lambda: send_delivery_email(order, result.download_links, mailer=mailer),
    )
    result.steps.append(step)

    step, _ = _run_step(session, "buyer_notification", lambda: _notify_buyer(session, order))
    result.steps.append(step)

    step, _ = _run_step(session, "referral_reward", lambda: reward_referrer(session, order.user_id))
    result.steps.append(step)

    failed = [s.name for s in result.steps if not s.ok]
    create_log(
        session,
        action=LogAction.PAYMENT,
        resource=LogResource.ORDER,
        user_id=order.user_id,
        resource_id=order.id,
        description=f"Pagamento confirmado do pedido #{order.short_id} - {order.total:.2f}",
        metadata={
            "payment_method": order.payment_method.value,
            "payment_id": order.payment_id,
            "failed_steps": failed,
        },
        request=request,
    )

    return result
