from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from ebookstore.exceptions import CheckoutValidationError
from ebookstore.models.coupon import Coupon, DiscountType, normalize_coupon_code
from ebookstore.models.ebook import Ebook, EbookStatus


class QuoteLine(BaseModel):
    ebook_id: int
    title: str
    price: float


class PriceQuote(BaseModel):
    lines: list[QuoteLine]
    subtotal: float
    discount: float
    total: float
    coupon_id: Optional[int] = None
    coupon_code: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.total == 0


def to_cents(value: float) -> float:
    return round(value, 2)


def is_coupon_eligible(coupon: Coupon, subtotal: float, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()

    if not coupon.active:
        return False
    if coupon.expires_at and coupon.expires_at <= now:
        return False
    if coupon.max_uses and coupon.used_count >= coupon.max_uses:
        return False
    if coupon.min_purchase and subtotal < coupon.min_purchase:
        return False
    return True


def compute_discount(coupon: Optional[Coupon], subtotal: float, now: Optional[datetime] = None) -> float:
    if coupon is None or not is_coupon_eligible(coupon, subtotal, now):
        return 0.0

    if coupon.discount_type == DiscountType.PERCENTAGE:
        return to_cents(subtotal * coupon.discount_value / 100)

    # fixed discounts never push the total below zero
    return to_cents(min(coupon.discount_value, subtotal))


def compute_total(subtotal: float, discount: float) -> float:
    return to_cents(max(0.0, subtotal - discount))


def load_published_ebooks(session: Session, ebook_ids: list[int]) -> list[Ebook]:
    if not ebook_ids:
        raise CheckoutValidationError("Cart is empty")

    if len(set(ebook_ids)) != len(ebook_ids):
        raise CheckoutValidationError("Each e-book can only appear once in the cart")

    ebooks = session.exec(
        select(Ebook)
        .where(Ebook.id.in_(ebook_ids))
        .where(Ebook.status == EbookStatus.PUBLISHED)
    ).all()

    if len(ebooks) != len(ebook_ids):
        raise CheckoutValidationError("E-book not found or unavailable")

    by_id = {e.id: e for e in ebooks}
    return [by_id[i] for i in ebook_ids]


def calculate_quote(
    session: Session,
    ebook_ids: Iterable[int],
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PriceQuote:
    """
    Price a cart against the live catalog.

    Client-sent prices are ignored; only published catalog prices count.
    Never mutates coupon usage, so it is safe for previews.
    """
    ebooks = load_published_ebooks(session, list(ebook_ids))
    subtotal = to_cents(sum(e.price for e in ebooks))

    coupon = None
    if coupon_code:
        coupon = session.exec(
            select(Coupon).where(Coupon.code == normalize_coupon_code(coupon_code))
        ).first()

    applied = coupon if coupon and is_coupon_eligible(coupon, subtotal, now) else None
    discount = compute_discount(applied, subtotal, now)

    return PriceQuote(
        lines=[QuoteLine(ebook_id=e.id, title=e.title, price=e.price) for e in ebooks],
        subtotal=subtotal,
        discount=discount,
        total=compute_total(subtotal, discount),
        coupon_id=applied.id if applied else None,
        coupon_code=applied.code if applied else None,
    )
