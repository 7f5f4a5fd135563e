from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from services.api.app.models.payment import MomoIpnRequest
from services.api.app.services.payment_base import CreatePaymentResult


class MockPaymentGateway:
    name = "MOCK"

    def create_payment(
        self, order_id: int, order_number: str, amount: Decimal
    ) -> CreatePaymentResult:
        del order_id, amount

        request_id = f"{order_number}-{uuid4().hex[:8]}"
        return CreatePaymentResult(
            pay_url=f"https://payments.invalid/pay/{order_number}",
            order_id=order_number,
            request_id=request_id,
            result_code=0,
            message="Successful.",
        )

    def verify_callback(self, ipn: MomoIpnRequest) -> bool:
        return bool(ipn.signature)
