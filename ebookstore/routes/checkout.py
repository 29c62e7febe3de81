from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session

from ebookstore.database import get_session
from ebookstore.models.user import User
from ebookstore.schemas.checkout_schemas import (
    CheckoutRequest,
    InstallmentOption,
    InstallmentsResponse,
    QuoteRequest,
    QuoteResponse,
)
from ebookstore.services.checkout_service import checkout
from ebookstore.services.email_service import get_mailer
from ebookstore.services.payment_service import PaymentGateway, get_payment_gateway
from ebookstore.services.pricing_service import calculate_quote
from ebookstore.utils.installments import calculate_installments, get_installment_label
from ebookstore.utils.token import get_current_user

router = APIRouter()


@router.post("")
def create_checkout(
    data: CheckoutRequest,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    mailer=Depends(get_mailer),
):
    return checkout(
        session=session,
        user=current_user,
        data=data,
        gateway=gateway,
        mailer=mailer,
        request=request,
    )


@router.post("/quote", response_model=QuoteResponse)
def quote_checkout(
    data: QuoteRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    quote = calculate_quote(session, [i.ebook_id for i in data.items], data.coupon_code)
    return QuoteResponse(
        subtotal=quote.subtotal,
        discount=quote.discount,
        total=quote.total,
        coupon_code=quote.coupon_code,
        installment_label=get_installment_label(quote.total),
    )


@router.get("/installments", response_model=InstallmentsResponse)
def installments(price: float = Query(..., gt=0)):
    return InstallmentsResponse(
        price=price,
        options=[InstallmentOption(**o) for o in calculate_installments(price)],
        label=get_installment_label(price),
    )
