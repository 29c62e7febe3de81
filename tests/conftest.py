import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("COINBASE_COMMERCE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("BREVO_API_KEY", "")

import itertools
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from ebookstore.constants.order_status import OrderStatus, PaymentMethod
from ebookstore.constants.roles import Role
from ebookstore.database import create_db_and_tables, get_session
from ebookstore.exceptions import GatewayError
from ebookstore.main import app as fastapi_app
from ebookstore.models.coupon import Coupon, DiscountType
from ebookstore.models.ebook import Ebook, EbookStatus
from ebookstore.models.order import Order
from ebookstore.models.order_item import OrderItem
from ebookstore.models.user import User
from ebookstore.services.email_service import get_mailer
from ebookstore.services.payment_service import get_payment_gateway
from ebookstore.services.payments import PaymentInitiation
from ebookstore.services.payments.coinbase_client import CoinbaseCommerceClient
from ebookstore.utils.hash import hash_password
from ebookstore.utils.token import create_access_token

_seq = itertools.count(1)
_password_hashes = {}


def _hashed(password):
    # one bcrypt round per distinct password
    if password not in _password_hashes:
        _password_hashes[password] = hash_password(password)
    return _password_hashes[password]


# markers follow the test directory
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class RecordingMailer:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def __call__(self, to, subject, html, attachments=None):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.result


class FakeGateway:
    """Stands in for PaymentGateway; records every call."""

    def __init__(self):
        self.coinbase = CoinbaseCommerceClient(api_key="test", webhook_secret="whsec_test")
        self.initiated = []
        self.refunded = []
        self.initiation = None
        self.initiate_error = None
        self.refund_error = None
        self.status = "pending"
        self.payment = {}

    def initiate(self, method, request):
        self.initiated.append((method, request))
        if self.initiate_error:
            raise self.initiate_error
        if self.initiation:
            return self.initiation
        artifact = {}
        if method == PaymentMethod.PIX:
            artifact = {"qr_code": "00020126pix", "qr_code_base64": "aW1n", "expires_at": "2026-01-01T00:30:00+00:00"}
        elif method == PaymentMethod.CRYPTO:
            artifact = {"charge_url": "https://commerce.coinbase.com/charges/ABC"}
        elif method == PaymentMethod.BOLETO:
            artifact = {"boleto_url": "https://mp.test/boleto", "barcode": "2379", "expires_at": "2026-01-04"}
        return PaymentInitiation(
            external_payment_id=f"pay-{request.order_id}",
            status="pending",
            artifact=artifact,
        )

    def refund(self, order):
        self.refunded.append(order.id)
        if self.refund_error:
            raise self.refund_error
        return {"id": 1, "status": "approved"}

    def fetch_status(self, order):
        if isinstance(self.status, GatewayError):
            raise self.status
        return self.status

    def fetch_payment(self, payment_id):
        if isinstance(self.payment, GatewayError):
            raise self.payment
        return self.payment


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture
def client(app, engine, gateway, mailer) -> Generator[TestClient, None, None]:
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    def _make(role=Role.USER, email=None, cpf="123.456.789-09", password="secret123", name="Ana Souza"):
        n = next(_seq)
        user = User(
            name=name,
            email=email or f"user{n}@example.com",
            password=_hashed(password),
            cpf=cpf,
            role=role,
            referral_code=f"ref{n:05d}",
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_ebook(session):
    def _make(price=49.90, status=EbookStatus.PUBLISHED, title=None, file_key="ebooks/caligrafia"):
        n = next(_seq)
        ebook = Ebook(
            title=title or f"Caligrafia Japonesa {n}",
            slug=f"caligrafia-{n}",
            price=price,
            status=status,
            file_key=file_key,
        )
        session.add(ebook)
        session.commit()
        session.refresh(ebook)
        return ebook

    return _make


@pytest.fixture
def make_coupon(session):
    def _make(code=None, discount_type=DiscountType.PERCENTAGE, discount_value=10, **kwargs):
        coupon = Coupon(
            code=code or f"PROMO{next(_seq)}",
            discount_type=discount_type,
            discount_value=discount_value,
            **kwargs,
        )
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def make_order(session):
    def _make(
        user,
        ebooks,
        status=OrderStatus.PENDING,
        payment_method=PaymentMethod.PIX,
        payment_id=None,
        coupon=None,
        discount=0.0,
    ):
        subtotal = round(sum(e.price for e in ebooks), 2)
        order = Order(
            user_id=user.id,
            status=status,
            payment_method=payment_method,
            total=round(subtotal - discount, 2),
            discount=discount,
            coupon_id=coupon.id if coupon else None,
            payment_id=payment_id,
            customer_email=user.email,
            customer_name=user.name,
            customer_cpf=user.cpf,
        )
        session.add(order)
        session.flush()
        for ebook in ebooks:
            session.add(OrderItem(order_id=order.id, ebook_id=ebook.id, price=ebook.price))
        session.commit()
        session.refresh(order)
        return order

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}

    return _headers
