from __future__ import annotations

import os
from dataclasses import dataclass

import requests
import structlog
from packages.shared.schemas.pricing import (
    PricingContextV1,
    PricingItemInputV1,
    PricingSummaryV1,
)
from pydantic import ValidationError
from services.api.app.services.pricing_base import PricingEngineError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _HttpPricingConfig:
    base_url: str
    timeout_s: float


class HttpPricingEngine:
    """Client for the remote pricing service (`POST {base_url}/pricing/calculate`)."""

    name = "HTTP"

    def __init__(self, cfg: _HttpPricingConfig) -> None:
        self._cfg = cfg

    @classmethod
    def from_env(cls) -> "HttpPricingEngine":
        base_url = os.getenv("ORDERS_PRICING_URL", "").strip().rstrip("/")
        if not base_url:
            raise ValueError("ORDERS_PRICING_URL is required when ORDERS_PRICING_ENGINE=http")

        timeout_s = float(os.getenv("ORDERS_PRICING_TIMEOUT_S", "10"))
        return cls(_HttpPricingConfig(base_url=base_url, timeout_s=timeout_s))

    def calculate(
        self,
        items: list[PricingItemInputV1],
        context: PricingContextV1,
    ) -> PricingSummaryV1:
        body = {
            "items": [i.model_dump(mode="json") for i in items],
            "context": context.model_dump(mode="json"),
        }

        try:
            res = requests.post(
                f"{self._cfg.base_url}/pricing/calculate",
                json=body,
                timeout=self._cfg.timeout_s,
            )
            res.raise_for_status()
            return PricingSummaryV1.model_validate(res.json())
        except requests.RequestException as e:
            logger.error("Pricing service call failed", error=str(e))
            raise PricingEngineError(f"Pricing service unavailable: {e}") from e
        except (ValueError, ValidationError) as e:
            logger.error("Pricing service returned an invalid summary", error=str(e))
            raise PricingEngineError(f"Invalid pricing summary: {e}") from e
