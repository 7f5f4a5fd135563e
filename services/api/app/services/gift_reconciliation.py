"""Turn pricing-engine gift suggestions into concrete, zero-payable order lines."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from packages.shared.schemas.pricing import (
    ComboTypeV1,
    PricingSummaryV1,
    PromotionAdjustmentV1,
    PromotionLevelV1,
    PromotionSuggestionV1,
    PromotionTypeV1,
)
from services.api.app.db.models import ProductVariant
from services.api.app.services.errors import BadRequestError
from services.api.app.services.money import ZERO, round_money

logger = structlog.get_logger(__name__)

VariantLookup = Callable[[int], ProductVariant | None]


@dataclass(frozen=True, slots=True)
class OrderLine:
    variant_id: int
    quantity: int
    unit_price: Decimal
    sub_total: Decimal
    discount_total: Decimal
    total_amount: Decimal
    is_gift: bool = False


@dataclass(frozen=True, slots=True)
class OrderTotals:
    sub_total: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    tax_total: Decimal
    total_amount: Decimal


@dataclass(frozen=True, slots=True)
class ReconciledOrder:
    lines: list[OrderLine]
    totals: OrderTotals
    gifts: list[OrderLine] = field(default_factory=list)


def is_auto_gift_promotion(promotion: PromotionAdjustmentV1) -> bool:
    return (
        promotion.promotion_type is PromotionTypeV1.COMBO
        and promotion.combo_type is ComboTypeV1.BUY_X_GET_Y
        and promotion.level is PromotionLevelV1.AUTO
    )


def qualifying_suggestions(pricing: PricingSummaryV1) -> list[PromotionSuggestionV1]:
    out: list[PromotionSuggestionV1] = []
    for promotion in pricing.applied_promotions:
        if not is_auto_gift_promotion(promotion):
            continue
        out.extend(s for s in promotion.suggestions if s.auto_add)
    return out


def paid_lines(pricing: PricingSummaryV1) -> list[OrderLine]:
    """Order lines taken verbatim from the pricing breakdown."""

    gift_variant_ids = _priced_gift_variant_ids(pricing)

    lines: list[OrderLine] = []
    for item in pricing.items:
        total = round_money(item.total_amount)
        lines.append(
            OrderLine(
                variant_id=item.variant_id,
                quantity=item.quantity,
                unit_price=round_money(item.unit_price),
                sub_total=round_money(item.sub_total),
                discount_total=round_money(item.discount_total),
                total_amount=total,
                is_gift=item.variant_id in gift_variant_ids and total == ZERO,
            )
        )
    return lines


class GiftReconciler:
    """Resolves auto-gift suggestions against the live variant catalog.

    `find_active_variant(product_id)` must return the lowest-id ACTIVE variant of the
    product, or None.
    """

    def __init__(self, find_active_variant: VariantLookup) -> None:
        self._find_active_variant = find_active_variant

    def resolve_gifts(self, pricing: PricingSummaryV1) -> list[OrderLine]:
        gifts: list[OrderLine] = []
        for suggestion in qualifying_suggestions(pricing):
            variant = self._find_active_variant(suggestion.product_id)
            if variant is None:
                raise BadRequestError(
                    f"No active variant available to add gift for product {suggestion.product_id}"
                )

            unit_price = round_money(
                suggestion.product_price
                if suggestion.product_price is not None
                else variant.price
            )
            sub_total = round_money(unit_price * suggestion.required_quantity)
            gifts.append(
                OrderLine(
                    variant_id=variant.id,
                    quantity=suggestion.required_quantity,
                    unit_price=unit_price,
                    sub_total=sub_total,
                    discount_total=sub_total,
                    total_amount=ZERO,
                    is_gift=True,
                )
            )
            logger.info(
                "Auto gift line resolved",
                product_id=suggestion.product_id,
                variant_id=variant.id,
                quantity=suggestion.required_quantity,
            )
        return gifts

    def reconcile(self, pricing: PricingSummaryV1) -> ReconciledOrder:
        paid = paid_lines(pricing)
        gifts = self.resolve_gifts(pricing)

        gift_sub_total = sum((g.sub_total for g in gifts), ZERO)
        gift_discount_total = sum((g.discount_total for g in gifts), ZERO)

        totals = OrderTotals(
            sub_total=round_money(pricing.totals.sub_total + gift_sub_total),
            discount_total=round_money(pricing.totals.discount_total + gift_discount_total),
            shipping_fee=round_money(pricing.totals.shipping_fee),
            tax_total=round_money(pricing.totals.tax_total),
            # Free gifts never change what the customer pays.
            total_amount=round_money(pricing.totals.total_amount),
        )
        return ReconciledOrder(lines=paid + gifts, totals=totals, gifts=gifts)


def _priced_gift_variant_ids(pricing: PricingSummaryV1) -> set[int]:
    ids: set[int] = set()
    for promotion in pricing.applied_promotions:
        if promotion.combo_type is not ComboTypeV1.BUY_X_GET_Y:
            continue
        for item in promotion.items:
            if item.is_gift and item.variant_id is not None:
                ids.add(item.variant_id)
    return ids
