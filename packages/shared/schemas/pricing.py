"""Shared pricing schema (v1).

The pricing engine owns promotion and price computation. The orders service consumes this
summary as the authoritative breakdown for a set of requested items and never recomputes
it.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PromotionTypeV1(str, Enum):
    COMBO = "COMBO"
    COUPON = "COUPON"
    FLASH_SALE = "FLASH_SALE"


class ComboTypeV1(str, Enum):
    BUY_X_GET_Y = "BUY_X_GET_Y"
    PRODUCT_COMBO = "PRODUCT_COMBO"
    CATEGORY_COMBO = "CATEGORY_COMBO"


class PromotionLevelV1(str, Enum):
    AUTO = "AUTO"
    COUPON = "COUPON"


class PricingItemInputV1(BaseModel):
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class PricingContextV1(BaseModel):
    promotion_code: str | None = None
    branch_id: int | None = None
    address_id: int | None = None
    user_id: int | None = None


class AppliedPromotionRefV1(BaseModel):
    promotion_id: int
    level: PromotionLevelV1
    amount: Decimal = Decimal("0")


class PromotionLineItemV1(BaseModel):
    product_id: int
    variant_id: int | None = None
    quantity: int
    discount_amount: Decimal = Decimal("0")
    is_gift: bool = False


class PromotionSuggestionV1(BaseModel):
    """An auto-gift candidate the customer qualifies for (or nearly qualifies for)."""

    product_id: int
    required_quantity: int = Field(..., ge=1)
    current_quantity: int = 0
    missing_quantity: int = 0
    product_price: Decimal | None = None
    product_name: str | None = None
    message: str = ""
    auto_add: bool = False


class PromotionAdjustmentV1(BaseModel):
    promotion_id: int
    promotion_name: str = ""
    promotion_type: PromotionTypeV1
    combo_type: ComboTypeV1 | None = None
    level: PromotionLevelV1
    amount: Decimal = Decimal("0")
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    items: list[PromotionLineItemV1] = Field(default_factory=list)
    suggestions: list[PromotionSuggestionV1] = Field(default_factory=list)


class PricingLineItemV1(BaseModel):
    variant_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    sub_total: Decimal
    discount_total: Decimal = Decimal("0")
    total_amount: Decimal
    is_in_combo: bool = False
    applied_promotions: list[AppliedPromotionRefV1] = Field(default_factory=list)


class PricingTotalsV1(BaseModel):
    sub_total: Decimal
    auto_discount_total: Decimal = Decimal("0")
    coupon_discount_total: Decimal = Decimal("0")
    discount_total: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")
    total_amount: Decimal


class PricingSummaryV1(BaseModel):
    items: list[PricingLineItemV1]
    totals: PricingTotalsV1
    context: PricingContextV1 = Field(default_factory=PricingContextV1)
    applied_promotions: list[PromotionAdjustmentV1] = Field(default_factory=list)
