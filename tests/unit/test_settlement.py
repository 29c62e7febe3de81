from sqlmodel import select

from ebookstore.constants.log_types import LogAction
from ebookstore.constants.order_status import OrderStatus
from ebookstore.models.activity_log import ActivityLog
from ebookstore.models.coupon import Coupon, CouponUsage
from ebookstore.models.ebook import Ebook
from ebookstore.models.notifications import Notification
from ebookstore.models.order import Order
from ebookstore.models.referral import Referral, ReferralStatus
from ebookstore.services.coupon_service import get_coupon_by_code
from ebookstore.services.settlement_service import process_successful_payment


def _referral_coupons(session):
    return session.exec(select(Coupon).where(Coupon.code.startswith("REF-"))).all()


def test_settlement_runs_once(session, make_user, make_ebook, make_order, make_coupon, mailer):
    user = make_user()
    ebook = make_ebook()
    coupon = make_coupon(max_uses=5)
    order = make_order(user, [ebook], status=OrderStatus.PROCESSING, coupon=coupon, discount=4.99)

    first = process_successful_payment(session, order.id, mailer=mailer)
    second = process_successful_payment(session, order.id, mailer=mailer)

    assert first.applied
    assert first.status == OrderStatus.PAID
    assert all(step.ok for step in first.steps)
    assert not second.applied
    assert second.steps == []

    session.expire_all()
    assert session.get(Order, order.id).paid_at is not None
    assert session.get(Ebook, ebook.id).sales_count == 1
    assert session.get(Coupon, coupon.id).used_count == 1
    assert len(session.exec(select(CouponUsage)).all()) == 1
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == user.email

    payments = session.exec(select(ActivityLog).where(ActivityLog.action == LogAction.PAYMENT)).all()
    assert len(payments) == 1


def test_settlement_returns_download_links(session, make_user, make_ebook, make_order, mailer):
    user = make_user()
    books = [make_ebook(), make_ebook()]
    order = make_order(user, books)

    result = process_successful_payment(session, order.id, mailer=mailer)

    assert {link["ebook_id"] for link in result.download_links} == {b.id for b in books}
    assert all(len(link["formats"]) == 3 for link in result.download_links)
    assert "/downloads/" in mailer.sent[0]["html"]


def test_settlement_ignores_cancelled_and_unknown_orders(session, make_user, make_ebook, make_order, mailer):
    order = make_order(make_user(), [make_ebook()], status=OrderStatus.CANCELLED)

    assert not process_successful_payment(session, order.id, mailer=mailer).applied
    assert not process_successful_payment(session, 4242, mailer=mailer).applied
    assert mailer.sent == []


def test_failed_email_does_not_undo_payment(session, make_user, make_ebook, make_order):
    def broken_mailer(**kwargs):
        raise RuntimeError("smtp down")

    user = make_user()
    order = make_order(user, [make_ebook()])

    result = process_successful_payment(session, order.id, mailer=broken_mailer)

    assert result.applied
    assert not result.step("delivery_email").ok
    assert result.step("buyer_notification").ok

    session.expire_all()
    assert session.get(Order, order.id).status == OrderStatus.PAID
    notes = session.exec(select(Notification).where(Notification.user_id == user.id)).all()
    assert [n.title for n in notes] == ["Pedido confirmado!"]


def test_undelivered_email_is_reported(session, make_user, make_ebook, make_order):
    order = make_order(make_user(), [make_ebook()])
    result = process_successful_payment(session, order.id, mailer=lambda **kwargs: False)

    assert result.step("delivery_email").error == "not delivered"


def test_referrer_rewarded_on_first_paid_order_only(session, make_user, make_ebook, make_order, mailer):
    referrer = make_user()
    buyer = make_user()
    session.add(Referral(referrer_id=referrer.id, referred_id=buyer.id))
    session.commit()

    first = make_order(buyer, [make_ebook()])
    second = make_order(buyer, [make_ebook()])

    process_successful_payment(session, first.id, mailer=mailer)
    process_successful_payment(session, second.id, mailer=mailer)
    session.expire_all()

    coupons = _referral_coupons(session)
    assert len(coupons) == 1
    assert coupons[0].discount_value == 15
    assert coupons[0].max_uses == 1
    assert coupons[0].code.startswith(f"REF-{referrer.referral_code[:6].upper()}-")
    assert coupons[0].code == coupons[0].code.upper()
    assert get_coupon_by_code(session, coupons[0].code.lower()).id == coupons[0].id

    referral = session.exec(select(Referral)).one()
    assert referral.status == ReferralStatus.completed
    assert referral.coupon_id == coupons[0].id

    titles = [
        n.title
        for n in session.exec(select(Notification).where(Notification.user_id == referrer.id)).all()
    ]
    assert titles == ["Indicação recompensada!"]
