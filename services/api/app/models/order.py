from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from services.api.app.models.enums import FulfillmentMethod, OrderStatus, PaymentMethod

# Money is exact internally and rendered as a JSON number.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class OrderItemInput(BaseModel):
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class OrderCreateRequest(BaseModel):
    items: list[OrderItemInput] = Field(..., min_length=1)
    branch_id: int | None = None
    address_id: int | None = None
    payment_method: PaymentMethod = PaymentMethod.COD
    fulfillment_method: FulfillmentMethod = FulfillmentMethod.DELIVERY
    promotion_code: str | None = None
    note: str | None = Field(default=None, max_length=2000)
    expected_delivery_date: datetime | None = None


class OrderUpdateRequest(BaseModel):
    status: OrderStatus | None = None
    branch_id: int | None = None
    address_id: int | None = None
    payment_method: PaymentMethod | None = None
    fulfillment_method: FulfillmentMethod | None = None
    note: str | None = Field(default=None, max_length=2000)
    expected_delivery_date: datetime | None = None

    # When present the order is re-priced and its lines replaced.
    items: list[OrderItemInput] | None = Field(default=None, min_length=1)
    promotion_code: str | None = None


class OrderCancelRequest(BaseModel):
    cancellation_reason: str | None = Field(default=None, max_length=500)


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    variant_id: int
    quantity: int
    unit_price: Money
    sub_total: Money
    discount_total: Money
    total_amount: Money
    is_gift: bool


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int | None = None
    branch_id: int | None = None
    address_id: int | None = None

    status: OrderStatus
    payment_method: PaymentMethod
    fulfillment_method: FulfillmentMethod

    sub_total: Money
    discount_total: Money
    shipping_fee: Money
    tax_total: Money
    total_amount: Money

    note: str | None = None
    cancellation_reason: str | None = None

    expected_delivery_date: datetime | None = None
    paid_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    items: list[OrderItemOut] = Field(default_factory=list)


class OrderCreateResponse(BaseModel):
    order: OrderOut
    pay_url: str | None = None


class OrderCancelResponse(BaseModel):
    order_number: str
    status: OrderStatus
    message: str


class OrderStatusOut(BaseModel):
    id: int
    order_number: str
    status: OrderStatus
    total_amount: Money
    is_paid: bool
    paid_at: datetime | None = None


class RecentOrderOut(BaseModel):
    order_number: str
    status: OrderStatus
    created_at: datetime | None = None


class PageMetaOut(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class OrderPageOut(BaseModel):
    data: list[OrderOut]
    meta: PageMetaOut
