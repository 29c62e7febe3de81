from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ebookstore.models.coupon import DiscountType


class CouponCreate(BaseModel):
    code: str = Field(min_length=3, max_length=40)
    discount_type: DiscountType
    discount_value: float
    max_uses: Optional[int] = Field(default=None, ge=1)
    min_purchase: Optional[float] = Field(default=None, ge=0)
    expires_at: Optional[datetime] = None
    active: bool = True


class CouponUpdate(BaseModel):
    discount_value: Optional[float] = None
    max_uses: Optional[int] = Field(default=None, ge=1)
    min_purchase: Optional[float] = Field(default=None, ge=0)
    expires_at: Optional[datetime] = None
    active: Optional[bool] = None
