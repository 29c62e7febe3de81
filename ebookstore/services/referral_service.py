import logging
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from ebookstore.constants.order_status import OrderStatus
from ebookstore.models.coupon import Coupon
from ebookstore.models.notifications import NotificationType
from ebookstore.models.order import Order
from ebookstore.models.referral import Referral, ReferralStatus
from ebookstore.models.user import User
from ebookstore.services.coupon_service import REFERRAL_REWARD_PERCENT, create_referral_coupon
from ebookstore.services.notification_service import create_notification

logger = logging.getLogger(__name__)


def register_referral(session: Session, referred: User, ref_code: Optional[str]) -> Optional[Referral]:
    """Link a freshly registered user to the owner of ``ref_code``."""
    if not ref_code:
        return None

    referrer = session.exec(select(User).where(User.referral_code == ref_code)).first()
    if referrer is None or referrer.id == referred.id:
        return None

    referral = Referral(referrer_id=referrer.id, referred_id=referred.id)
    session.add(referral)
    session.flush()
    return referral


def count_paid_orders(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Order)
        .where(Order.user_id == user_id)
        .where(Order.status == OrderStatus.PAID)
    ).one()


def reward_referrer(session: Session, buyer_id: int) -> Optional[Coupon]:
    """
    Reward the referrer when ``buyer_id`` just completed their first paid
    order. Must run after the buyer's order is already PAID so it counts
    itself. A referral pays out at most once.
    """
    if count_paid_orders(session, buyer_id) != 1:
        return None

    referral = session.exec(
        select(Referral)
        .where(Referral.referred_id == buyer_id)
        .where(Referral.status == ReferralStatus.pending)
    ).first()
    if referral is None:
        return None

    referrer = session.get(User, referral.referrer_id)
    coupon = create_referral_coupon(session, referrer)

    result = session.exec(
        update(Referral)
        .where(Referral.id == referral.id)
        .where(Referral.status == ReferralStatus.pending)
        .values(status=ReferralStatus.completed, coupon_id=coupon.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # another settlement completed it first
        session.rollback()
        return None

    create_notification(
        session=session,
        user_id=referrer.id,
        title="Indicação recompensada!",
        message=(
            f"Alguém que você indicou fez uma compra! Use o cupom {coupon.code} "
            f"para {REFERRAL_REWARD_PERCENT}% de desconto."
        ),
        type=NotificationType.success,
        link="/configuracoes",
    )
    session.commit()
    session.refresh(coupon)

    logger.info(f"Referral {referral.id} completed, coupon {coupon.code} issued to user {referrer.id}")
    return coupon
