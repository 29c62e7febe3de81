import time
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, select

from ebookstore.models.coupon import Coupon, DiscountType, normalize_coupon_code
from ebookstore.models.user import User

WELCOME_DISCOUNT_PERCENT = 10
REFERRAL_REWARD_PERCENT = 15
SINGLE_USE_COUPON_TTL = timedelta(days=30)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _single_use_percentage_coupon(code: str, percent: float) -> Coupon:
    return Coupon(
        code=code,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=percent,
        max_uses=1,
        expires_at=datetime.utcnow() + SINGLE_USE_COUPON_TTL,
    )


def create_welcome_coupon(session: Session, user: User) -> Coupon:
    coupon = _single_use_percentage_coupon(
        f"WELCOME-{user.referral_code.upper()}",
        WELCOME_DISCOUNT_PERCENT,
    )
    session.add(coupon)
    session.flush()
    return coupon


def create_referral_coupon(session: Session, referrer: User) -> Coupon:
    stamp = _base36(int(time.time() * 1000))
    coupon = _single_use_percentage_coupon(
        f"REF-{referrer.referral_code[:6]}-{stamp}".upper(),
        REFERRAL_REWARD_PERCENT,
    )
    session.add(coupon)
    session.flush()
    return coupon


def get_coupon_by_code(session: Session, code: str) -> Optional[Coupon]:
    return session.exec(select(Coupon).where(Coupon.code == normalize_coupon_code(code))).first()


def validate_coupon_values(discount_type: DiscountType, discount_value: float):
    if discount_value <= 0:
        raise ValueError("Discount value must be positive")
    if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
        raise ValueError("Percentage discount cannot exceed 100")
