from __future__ import annotations

import os

from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.payment_mock import MockPaymentGateway


def get_payment_gateway() -> PaymentGateway:
    """Select the payment gateway based on env vars.

    Defaults to the mock gateway; set ORDERS_PAYMENT_GATEWAY=momo plus the MoMo credentials
    to talk to the real gateway.
    """

    mode = os.getenv("ORDERS_PAYMENT_GATEWAY", "mock").strip().lower()

    if mode == "mock":
        return MockPaymentGateway()

    if mode == "momo":
        from services.api.app.services.payment_momo import MomoPaymentGateway

        return MomoPaymentGateway.from_env()

    raise ValueError(f"Unknown ORDERS_PAYMENT_GATEWAY={mode!r}. Expected mock or momo.")
