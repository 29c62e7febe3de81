from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


def normalize_coupon_code(code: str) -> str:
    # codes are stored upper-case
    return code.strip().upper()


class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, unique=True)

    discount_type: DiscountType
    discount_value: float

    max_uses: Optional[int] = None
    used_count: int = Field(default=0)
    min_purchase: Optional[float] = None
    expires_at: Optional[datetime] = None
    active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class CouponUsage(SQLModel, table=True):
    __tablename__ = "coupon_usage"

    id: Optional[int] = Field(default=None, primary_key=True)
    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    order_id: int = Field(foreign_key="order.id", unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
