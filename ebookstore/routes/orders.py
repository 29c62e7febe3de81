import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlmodel import Session, select

from ebookstore.constants.order_status import OrderStatus
from ebookstore.database import get_session
from ebookstore.exceptions import GatewayError
from ebookstore.models.coupon import Coupon
from ebookstore.models.order import Order
from ebookstore.models.user import User
from ebookstore.schemas.orders_schemas import OrderOut, OrderSyncResponse
from ebookstore.services.email_service import get_mailer
from ebookstore.services.payment_service import PaymentGateway, get_payment_gateway
from ebookstore.services.receipt_service import build_receipt_pdf
from ebookstore.services.settlement_service import process_successful_payment
from ebookstore.utils.permissions import is_staff
from ebookstore.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_visible_order(session: Session, order_id: int, user: User) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    if order.user_id != user.id and not is_staff(user.role):
        raise HTTPException(403, "Access denied")
    return order


@router.get("", response_model=list[OrderOut])
def my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    orders = session.exec(
        select(Order)
        .where(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc())
    ).all()
    return [OrderOut.from_order(o) for o in orders]


@router.get("/{order_id}", response_model=OrderOut)
def order_detail(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return OrderOut.from_order(_get_visible_order(session, order_id, current_user))


@router.post("/{order_id}/sync", response_model=OrderSyncResponse)
def sync_order_payment(
    order_id: int,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    mailer=Depends(get_mailer),
):
    """Client poll: ask the gateway whether a pending payment went through."""
    order = session.get(Order, order_id)
    if not order or order.user_id != current_user.id:
        raise HTTPException(404, "Order not found")

    if order.status != OrderStatus.PROCESSING:
        return OrderSyncResponse(order_id=order.id, status=order.status)

    try:
        gateway_status = gateway.fetch_status(order)
    except GatewayError as e:
        logger.warning(f"Payment status poll failed for order {order.id}: {e}")
        return OrderSyncResponse(order_id=order.id, status=order.status)

    settled = False
    if gateway_status == "approved":
        settled = process_successful_payment(session, order.id, mailer=mailer, request=request).applied
        session.refresh(order)

    return OrderSyncResponse(
        order_id=order.id,
        status=order.status,
        gateway_status=gateway_status,
        settled=settled,
    )


@router.get("/{order_id}/receipt")
def download_receipt(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_visible_order(session, order_id, current_user)

    if order.status not in (OrderStatus.PAID, OrderStatus.REFUNDED):
        raise HTTPException(400, "Receipt is only available for paid orders")

    coupon = session.get(Coupon, order.coupon_id) if order.coupon_id else None
    pdf = build_receipt_pdf(order, coupon.code if coupon else None)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="recibo-{order.short_id}.pdf"'},
    )
