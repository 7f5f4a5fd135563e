from __future__ import annotations

from typing import Protocol

from packages.shared.schemas.pricing import (
    PricingContextV1,
    PricingItemInputV1,
    PricingSummaryV1,
)


class PricingEngineError(Exception):
    """The pricing engine could not produce a summary. Never silently replaced."""


class PricingEngine(Protocol):
    name: str

    def calculate(
        self,
        items: list[PricingItemInputV1],
        context: PricingContextV1,
    ) -> PricingSummaryV1: ...
