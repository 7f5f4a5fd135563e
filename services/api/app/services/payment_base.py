from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from services.api.app.models.payment import MomoIpnRequest


class PaymentGatewayError(Exception):
    """The payment gateway refused or failed to create a payment."""


@dataclass(frozen=True, slots=True)
class CreatePaymentResult:
    pay_url: str
    order_id: str
    request_id: str
    result_code: int
    message: str


class PaymentGateway(Protocol):
    name: str

    def create_payment(
        self, order_id: int, order_number: str, amount: Decimal
    ) -> CreatePaymentResult: ...

    def verify_callback(self, ipn: MomoIpnRequest) -> bool: ...
