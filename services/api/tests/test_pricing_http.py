from __future__ import annotations

from decimal import Decimal

import pytest
import requests
from packages.shared.schemas.pricing import PricingContextV1, PricingItemInputV1
from services.api.app.services import pricing_http
from services.api.app.services.pricing_base import PricingEngineError
from services.api.app.services.pricing_http import HttpPricingEngine


class _FakeResponse:
    def __init__(self, data: object) -> None:
        self._data = data

    def raise_for_status(self) -> None:
        return None

    def json(self) -> object:
        return self._data


@pytest.fixture()
def engine(monkeypatch: pytest.MonkeyPatch) -> HttpPricingEngine:
    monkeypatch.setenv("ORDERS_PRICING_URL", "https://pricing.example/")
    return HttpPricingEngine.from_env()


def test_calculate_posts_items_and_parses_summary(
    engine: HttpPricingEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: dict = {}

    def _post(url: str, json: dict, timeout: float) -> _FakeResponse:
        seen.update(url=url, json=json)
        return _FakeResponse(
            {
                "items": [
                    {
                        "variant_id": 1,
                        "quantity": 2,
                        "unit_price": "100",
                        "sub_total": "200",
                        "discount_total": "20",
                        "total_amount": "180",
                    }
                ],
                "totals": {"sub_total": "200", "discount_total": "20", "total_amount": "180"},
            }
        )

    monkeypatch.setattr(pricing_http.requests, "post", _post)

    summary = engine.calculate(
        [PricingItemInputV1(variant_id=1, quantity=2)],
        PricingContextV1(promotion_code="TEA2"),
    )

    assert seen["url"] == "https://pricing.example/pricing/calculate"
    assert seen["json"]["items"] == [{"variant_id": 1, "quantity": 2}]
    assert seen["json"]["context"]["promotion_code"] == "TEA2"
    assert summary.totals.total_amount == Decimal("180")


def test_transport_errors_become_pricing_errors(
    engine: HttpPricingEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _post(url: str, json: dict, timeout: float) -> _FakeResponse:
        raise requests.Timeout("slow")

    monkeypatch.setattr(pricing_http.requests, "post", _post)

    with pytest.raises(PricingEngineError, match="unavailable"):
        engine.calculate([PricingItemInputV1(variant_id=1, quantity=1)], PricingContextV1())


def test_malformed_summary_becomes_pricing_error(
    engine: HttpPricingEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        pricing_http.requests, "post", lambda url, json, timeout: _FakeResponse({"items": []})
    )

    with pytest.raises(PricingEngineError, match="Invalid pricing summary"):
        engine.calculate([PricingItemInputV1(variant_id=1, quantity=1)], PricingContextV1())


def test_from_env_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORDERS_PRICING_URL", raising=False)

    with pytest.raises(ValueError, match="ORDERS_PRICING_URL"):
        HttpPricingEngine.from_env()
