from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, EmailStr

from ebookstore.constants.order_status import PaymentMethod


class CheckoutItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ebook_id: int = Field(alias="ebookId")
    # informational only, catalog prices are authoritative
    price: Optional[float] = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CheckoutItem] = Field(min_length=1)
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")
    customer_email: Optional[EmailStr] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_cpf: Optional[str] = Field(default=None, alias="customerCpf")

    # credit card only
    card_token: Optional[str] = Field(default=None, alias="cardToken")
    installments: Optional[int] = Field(default=None, ge=1, le=12)


class QuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CheckoutItem] = Field(min_length=1)
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")


class QuoteResponse(BaseModel):
    subtotal: float
    discount: float
    total: float
    coupon_code: Optional[str] = None
    installment_label: Optional[str] = None


class InstallmentOption(BaseModel):
    installments: int
    value: float
    total: float


class InstallmentsResponse(BaseModel):
    price: float
    options: List[InstallmentOption]
    label: Optional[str] = None
