import logging
from typing import Optional

from fastapi import Request
from sqlmodel import Session

from ebookstore.config import settings
from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.constants.order_status import OrderStatus, PaymentMethod
from ebookstore.exceptions import CheckoutFailedError, CheckoutValidationError
from ebookstore.models.order import Order
from ebookstore.models.order_item import OrderItem
from ebookstore.models.user import User
from ebookstore.schemas.checkout_schemas import CheckoutRequest
from ebookstore.services.audit_service import create_log, track_error
from ebookstore.services.email_service import send_email
from ebookstore.services.order_state_service import cancel_order_quietly, transition_order
from ebookstore.services.payment_service import PaymentGateway
from ebookstore.services.payments import PaymentInitiation, PaymentRequest
from ebookstore.services.pricing_service import PriceQuote, calculate_quote
from ebookstore.services.settlement_service import process_successful_payment

logger = logging.getLogger(__name__)


def _create_order(
    session: Session,
    user: User,
    data: CheckoutRequest,
    quote: PriceQuote,
    method: PaymentMethod,
) -> Order:
    order = Order(
        user_id=user.id,
        status=OrderStatus.PENDING,
        payment_method=method,
        total=quote.total,
        discount=quote.discount,
        coupon_id=quote.coupon_id,
        customer_email=data.customer_email or user.email,
        customer_name=data.customer_name or user.name,
        customer_cpf=data.customer_cpf or user.cpf,
    )
    session.add(order)
    session.flush()

    for line in quote.lines:
        session.add(OrderItem(order_id=order.id, ebook_id=line.ebook_id, price=line.price))

    session.commit()
    session.refresh(order)
    return order


def _payment_response(order: Order, method: PaymentMethod, initiation: PaymentInitiation) -> dict:
    body = {"orderId": order.id, "paymentMethod": method.value}
    artifact = initiation.artifact

    if method == PaymentMethod.PIX:
        body.update(
            qrCode=artifact.get("qr_code"),
            qrCodeBase64=artifact.get("qr_code_base64"),
            expiresAt=artifact.get("expires_at"),
        )
    elif method == PaymentMethod.CREDIT_CARD:
        body.update(status=initiation.status)
    elif method == PaymentMethod.CRYPTO:
        body.update(chargeUrl=artifact.get("charge_url"))
    elif method == PaymentMethod.BOLETO:
        body.update(
            barcode=artifact.get("barcode"),
            boletoUrl=artifact.get("boleto_url"),
            expiresAt=artifact.get("expires_at"),
        )
    return body


def _validate_method_inputs(data: CheckoutRequest, user: User):
    if data.payment_method == PaymentMethod.CREDIT_CARD and not data.card_token:
        raise CheckoutValidationError("Card token is required")
    if data.payment_method == PaymentMethod.BOLETO and not (data.customer_cpf or user.cpf):
        raise CheckoutValidationError("CPF is required for boleto payments")


def checkout(
    *,
    session: Session,
    user: User,
    data: CheckoutRequest,
    gateway: PaymentGateway,
    mailer=send_email,
    request: Optional[Request] = None,
) -> dict:
    """
    Price the cart, create the order and start payment.

    Raises CheckoutValidationError before any order exists, and
    CheckoutFailedError when anything breaks after the order was created
    (the order is then cancelled).
    """
    quote = calculate_quote(session, [i.ebook_id for i in data.items], data.coupon_code)

    # Free order path: coupon covers the whole amount
    if quote.is_free or data.payment_method == PaymentMethod.FREE_COUPON:
        if not quote.is_free:
            raise CheckoutValidationError("Free checkout is not allowed for this amount")

        order = _create_order(session, user, data, quote, PaymentMethod.FREE_COUPON)
        create_log(
            session,
            action=LogAction.CREATE,
            resource=LogResource.ORDER,
            user_id=user.id,
            resource_id=order.id,
            description=f"Pedido gratuito #{order.short_id} (cupom {quote.coupon_code})",
            request=request,
        )
        process_successful_payment(session, order.id, mailer=mailer, request=request)
        return {
            "orderId": order.id,
            "paymentMethod": PaymentMethod.FREE_COUPON.value,
            "status": "approved",
        }

    _validate_method_inputs(data, user)

    method = data.payment_method
    order = _create_order(session, user, data, quote, method)
    order_id = order.id

    create_log(
        session,
        action=LogAction.CREATE,
        resource=LogResource.ORDER,
        user_id=user.id,
        resource_id=order_id,
        description=f"Pedido #{order.short_id} criado - {method.value} - {quote.total:.2f}",
        metadata={"subtotal": quote.subtotal, "discount": quote.discount, "coupon": quote.coupon_code},
        request=request,
    )

    try:
        initiation = gateway.initiate(method, PaymentRequest(
            amount=quote.total,
            description=f"{settings.store_name} - Pedido #{order.short_id}",
            order_id=order_id,
            payer_email=order.customer_email,
            payer_name=order.customer_name,
            payer_cpf=order.customer_cpf,
            card_token=data.card_token,
            installments=data.installments or 1,
        ))

        transition_order(
            session,
            order,
            OrderStatus.PROCESSING,
            payment_id=initiation.external_payment_id,
        )
        session.commit()

        if method == PaymentMethod.CREDIT_CARD and initiation.status == "approved":
            process_successful_payment(session, order_id, mailer=mailer, request=request)

        return _payment_response(order, method, initiation)

    except Exception as e:
        logger.exception(f"Checkout error for order {order_id}")
        cancel_order_quietly(session, order_id)
        track_error(
            session,
            e,
            user_id=user.id,
            context={"order_id": order_id, "payment_method": method.value},
            request=request,
        )
        raise CheckoutFailedError(order_id) from e
