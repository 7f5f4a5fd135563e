from __future__ import annotations

import os

from services.api.app.services.pricing_base import PricingEngine
from services.api.app.services.pricing_catalog import CatalogPricingEngine
from sqlalchemy.orm import Session


def get_pricing_engine(db: Session) -> PricingEngine:
    """Select the pricing engine based on env vars.

    Defaults to the catalog engine so tests and local dev are deterministic unless
    explicitly configured otherwise.
    """

    mode = os.getenv("ORDERS_PRICING_ENGINE", "catalog").strip().lower()

    if mode == "catalog":
        return CatalogPricingEngine(db)

    if mode == "http":
        from services.api.app.services.pricing_http import HttpPricingEngine

        return HttpPricingEngine.from_env()

    raise ValueError(f"Unknown ORDERS_PRICING_ENGINE={mode!r}. Expected catalog or http.")
