from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select

from ebookstore.constants.order_status import OrderStatus
from ebookstore.database import get_session
from ebookstore.models.order import Order
from ebookstore.models.user import User
from ebookstore.schemas.orders_schemas import OrderOut, RefundResponse
from ebookstore.services.payment_service import PaymentGateway, get_payment_gateway
from ebookstore.services.refund_service import refund_order
from ebookstore.utils.pagination import paginate
from ebookstore.dependencies.admin import require_permission

router = APIRouter()


@router.get("")
def list_orders(
    status: Optional[OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("order", "view")),
):
    query = select(Order)
    if status:
        query = query.where(Order.status == status)

    return paginate(
        session=session,
        query=query.order_by(Order.created_at.desc()),
        page=page,
        limit=limit,
        serializer=OrderOut.from_order,
    )


@router.post("/{order_id}/refund", response_model=RefundResponse)
def refund(
    order_id: int,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("order", "update")),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = session.get(Order, order_id)
    if not order:
        raise HTTPException(404, "Order not found")

    result = refund_order(
        session=session,
        order=order,
        gateway=gateway,
        actor=admin,
        request=request,
    )

    return RefundResponse(
        message="Refund processed",
        order_id=result.order_id,
        gateway_refunded=result.gateway_refunded,
    )
