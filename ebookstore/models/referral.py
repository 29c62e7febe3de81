from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class ReferralStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class Referral(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    referrer_id: int = Field(foreign_key="user.id", index=True)
    # a user can only be referred once
    referred_id: int = Field(foreign_key="user.id", unique=True)

    status: ReferralStatus = Field(default=ReferralStatus.pending)
    coupon_id: Optional[int] = Field(default=None, foreign_key="coupon.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
