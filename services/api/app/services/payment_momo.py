from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import requests
import structlog
from services.api.app.models.payment import MomoIpnRequest
from services.api.app.services.payment_base import CreatePaymentResult, PaymentGatewayError

logger = structlog.get_logger(__name__)

_DEFAULT_ENDPOINT = "https://test-payment.momo.vn/v2/gateway/api/create"


@dataclass(frozen=True, slots=True)
class MomoConfig:
    access_key: str
    secret_key: str
    partner_code: str
    redirect_url: str
    ipn_url: str
    endpoint: str
    timeout_s: float = 15.0


class MomoPaymentGateway:
    """MoMo wallet gateway (v2 `payWithMethod` flow).

    Credentials are injected from the environment; nothing is hard-coded.
    """

    name = "MOMO"

    def __init__(self, cfg: MomoConfig) -> None:
        self._cfg = cfg

    @classmethod
    def from_env(cls) -> "MomoPaymentGateway":
        access_key = os.getenv("ORDERS_MOMO_ACCESS_KEY", "").strip()
        secret_key = os.getenv("ORDERS_MOMO_SECRET_KEY", "").strip()
        if not access_key or not secret_key:
            raise ValueError(
                "ORDERS_MOMO_ACCESS_KEY and ORDERS_MOMO_SECRET_KEY are required "
                "when ORDERS_PAYMENT_GATEWAY=momo"
            )

        return cls(
            MomoConfig(
                access_key=access_key,
                secret_key=secret_key,
                partner_code=os.getenv("ORDERS_MOMO_PARTNER_CODE", "MOMO").strip(),
                redirect_url=os.getenv("ORDERS_MOMO_REDIRECT_URL", "").strip(),
                ipn_url=os.getenv("ORDERS_MOMO_IPN_URL", "").strip(),
                endpoint=os.getenv("ORDERS_MOMO_ENDPOINT", _DEFAULT_ENDPOINT).strip(),
                timeout_s=float(os.getenv("ORDERS_MOMO_TIMEOUT_S", "15")),
            )
        )

    def create_payment(
        self, order_id: int, order_number: str, amount: Decimal
    ) -> CreatePaymentResult:
        cfg = self._cfg

        # MoMo amounts are whole currency units.
        momo_amount = int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        order_info = f"Payment for order {order_number}"
        request_type = "payWithMethod"
        request_id = f"{order_number}-{int(time.time() * 1000)}"
        extra_data = base64.b64encode(json.dumps({"orderId": order_id}).encode()).decode()

        raw_signature = (
            f"accessKey={cfg.access_key}"
            f"&amount={momo_amount}"
            f"&extraData={extra_data}"
            f"&ipnUrl={cfg.ipn_url}"
            f"&orderId={order_number}"
            f"&orderInfo={order_info}"
            f"&partnerCode={cfg.partner_code}"
            f"&redirectUrl={cfg.redirect_url}"
            f"&requestId={request_id}"
            f"&requestType={request_type}"
        )

        body = {
            "partnerCode": cfg.partner_code,
            "requestId": request_id,
            "amount": momo_amount,
            "orderId": order_number,
            "orderInfo": order_info,
            "redirectUrl": cfg.redirect_url,
            "ipnUrl": cfg.ipn_url,
            "requestType": request_type,
            "extraData": extra_data,
            "signature": self._sign(raw_signature),
            "lang": "en",
        }

        logger.info("Creating MoMo payment", order_number=order_number, amount=momo_amount)

        try:
            res = requests.post(cfg.endpoint, json=body, timeout=cfg.timeout_s)
            res.raise_for_status()
            data = res.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("MoMo API error", order_number=order_number, error=str(e))
            raise PaymentGatewayError("Failed to create MoMo payment. Please try again.") from e

        result_code = int(data.get("resultCode", -1))
        if result_code != 0:
            logger.error(
                "MoMo payment rejected",
                order_number=order_number,
                result_code=result_code,
                message=data.get("message"),
            )
            raise PaymentGatewayError(f"MoMo payment creation failed: {data.get('message')}")

        return CreatePaymentResult(
            pay_url=str(data.get("payUrl") or ""),
            order_id=str(data.get("orderId") or order_number),
            request_id=str(data.get("requestId") or request_id),
            result_code=result_code,
            message=str(data.get("message") or ""),
        )

    def verify_callback(self, ipn: MomoIpnRequest) -> bool:
        raw_signature = (
            f"accessKey={self._cfg.access_key}"
            f"&amount={ipn.amount}"
            f"&extraData={ipn.extraData}"
            f"&message={ipn.message}"
            f"&orderId={ipn.orderId}"
            f"&orderInfo={ipn.orderInfo}"
            f"&orderType={ipn.orderType}"
            f"&partnerCode={ipn.partnerCode}"
            f"&payType={ipn.payType}"
            f"&requestId={ipn.requestId}"
            f"&responseTime={ipn.responseTime}"
            f"&resultCode={ipn.resultCode}"
            f"&transId={ipn.transId}"
        )
        return hmac.compare_digest(self._sign(raw_signature), ipn.signature)

    def _sign(self, raw: str) -> str:
        return hmac.new(self._cfg.secret_key.encode(), raw.encode(), hashlib.sha256).hexdigest()
