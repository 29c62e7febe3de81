from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ebookstore.constants.order_status import OrderStatus, PaymentMethod


class OrderItemOut(BaseModel):
    ebook_id: int
    title: Optional[str] = None
    price: float


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    payment_method: PaymentMethod
    total: float
    discount: float
    coupon_id: Optional[int] = None
    payment_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    @classmethod
    def from_order(cls, order) -> "OrderOut":
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            payment_method=order.payment_method,
            total=order.total,
            discount=order.discount,
            coupon_id=order.coupon_id,
            payment_id=order.payment_id,
            customer_email=order.customer_email,
            customer_name=order.customer_name,
            created_at=order.created_at,
            paid_at=order.paid_at,
            items=[
                OrderItemOut(
                    ebook_id=i.ebook_id,
                    title=i.ebook.title if i.ebook else None,
                    price=i.price,
                )
                for i in order.items
            ],
        )


class OrderSyncResponse(BaseModel):
    order_id: int
    status: OrderStatus
    gateway_status: Optional[str] = None
    settled: bool = False


class RefundResponse(BaseModel):
    message: str
    order_id: int
    gateway_refunded: bool
