from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from ebookstore.constants.order_status import OrderStatus, PaymentMethod
from ebookstore.models.order_item import OrderItem
from ebookstore.models.user import User


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    payment_method: PaymentMethod

    total: float
    discount: float = 0.0
    coupon_id: Optional[int] = Field(default=None, foreign_key="coupon.id")

    # gateway reference (Mercado Pago payment id / Coinbase charge id)
    payment_id: Optional[str] = Field(default=None, index=True)

    # contact snapshot taken at checkout
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_cpf: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    paid_at: Optional[datetime] = None

    user: Optional["User"] = Relationship()
    items: List["OrderItem"] = Relationship(back_populates="order")

    @property
    def short_id(self) -> str:
        return f"{self.id:08d}"
