from __future__ import annotations

from packages.shared.schemas.pricing import (
    PricingContextV1,
    PricingItemInputV1,
    PricingLineItemV1,
    PricingSummaryV1,
    PricingTotalsV1,
)
from services.api.app.db.models import ProductVariant
from services.api.app.services.money import ZERO, round_money
from services.api.app.services.pricing_base import PricingEngineError
from sqlalchemy.orm import Session


class CatalogPricingEngine:
    """List-price engine backed by the local variant catalog.

    Applies no promotions. Useful for local dev and tests; production points
    ORDERS_PRICING_ENGINE at the real pricing service.
    """

    name = "CATALOG"

    def __init__(self, db: Session) -> None:
        self._db = db

    def calculate(
        self,
        items: list[PricingItemInputV1],
        context: PricingContextV1,
    ) -> PricingSummaryV1:
        lines: list[PricingLineItemV1] = []
        sub_total = ZERO

        for item in items:
            variant = self._db.get(ProductVariant, item.variant_id)
            if variant is None:
                raise PricingEngineError(f"Variant {item.variant_id} has no price")

            unit_price = round_money(variant.price)
            line_total = round_money(unit_price * item.quantity)
            sub_total += line_total
            lines.append(
                PricingLineItemV1(
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    sub_total=line_total,
                    discount_total=ZERO,
                    total_amount=line_total,
                )
            )

        sub_total = round_money(sub_total)
        return PricingSummaryV1(
            items=lines,
            totals=PricingTotalsV1(sub_total=sub_total, total_amount=sub_total),
            context=context,
            applied_promotions=[],
        )
