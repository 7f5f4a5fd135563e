from __future__ import annotations

import base64
import hashlib
import hmac
import json
from decimal import Decimal

import pytest
import requests
from services.api.app.models.payment import MomoIpnRequest
from services.api.app.services import payment_momo
from services.api.app.services.payment_base import PaymentGatewayError
from services.api.app.services.payment_momo import MomoConfig, MomoPaymentGateway

CFG = MomoConfig(
    access_key="access",
    secret_key="secret",
    partner_code="PARTNER",
    redirect_url="https://shop.example/return",
    ipn_url="https://shop.example/v1/payments/momo/ipn",
    endpoint="https://momo.example/create",
    timeout_s=5.0,
)


class _FakeResponse:
    def __init__(self, data: dict, status_code: int = 200) -> None:
        self._data = data
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> dict:
        return self._data


def _sign(raw: str) -> str:
    return hmac.new(b"secret", raw.encode(), hashlib.sha256).hexdigest()


def test_create_payment_signs_request(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def _post(url: str, json: dict, timeout: float) -> _FakeResponse:
        calls.append({"url": url, "json": json, "timeout": timeout})
        return _FakeResponse(
            {
                "resultCode": 0,
                "payUrl": "https://momo.example/pay/abc",
                "orderId": json["orderId"],
                "requestId": json["requestId"],
                "message": "Successful.",
            }
        )

    monkeypatch.setattr(payment_momo.requests, "post", _post)

    result = MomoPaymentGateway(CFG).create_payment(7, "ORD-20260115-0001", Decimal("180.40"))

    assert result.pay_url == "https://momo.example/pay/abc"
    assert result.result_code == 0

    call = calls[0]
    assert call["url"] == CFG.endpoint
    assert call["timeout"] == 5.0

    body = call["json"]
    assert body["amount"] == 180
    assert body["partnerCode"] == "PARTNER"
    assert json.loads(base64.b64decode(body["extraData"])) == {"orderId": 7}

    raw = (
        f"accessKey=access&amount=180&extraData={body['extraData']}"
        f"&ipnUrl={CFG.ipn_url}&orderId=ORD-20260115-0001"
        f"&orderInfo={body['orderInfo']}&partnerCode=PARTNER"
        f"&redirectUrl={CFG.redirect_url}&requestId={body['requestId']}"
        f"&requestType=payWithMethod"
    )
    assert body["signature"] == _sign(raw)


def test_create_payment_rejected_by_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        payment_momo.requests,
        "post",
        lambda url, json, timeout: _FakeResponse({"resultCode": 11, "message": "Access denied"}),
    )

    with pytest.raises(PaymentGatewayError, match="Access denied"):
        MomoPaymentGateway(CFG).create_payment(1, "ORD-1", Decimal("10"))


def test_create_payment_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _post(url: str, json: dict, timeout: float) -> _FakeResponse:
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(payment_momo.requests, "post", _post)

    with pytest.raises(PaymentGatewayError):
        MomoPaymentGateway(CFG).create_payment(1, "ORD-1", Decimal("10"))


def test_verify_callback() -> None:
    fields = {
        "partnerCode": "PARTNER",
        "orderId": "ORD-1",
        "requestId": "ORD-1-1",
        "amount": 180,
        "orderInfo": "Payment for order ORD-1",
        "orderType": "momo_wallet",
        "transId": 99,
        "resultCode": 0,
        "message": "Successful.",
        "payType": "qr",
        "responseTime": 1768469400000,
        "extraData": "",
    }
    raw = (
        "accessKey=access&amount=180&extraData=&message=Successful.&orderId=ORD-1"
        "&orderInfo=Payment for order ORD-1&orderType=momo_wallet&partnerCode=PARTNER"
        "&payType=qr&requestId=ORD-1-1&responseTime=1768469400000&resultCode=0&transId=99"
    )
    gateway = MomoPaymentGateway(CFG)

    assert gateway.verify_callback(MomoIpnRequest(**fields, signature=_sign(raw))) is True
    assert gateway.verify_callback(MomoIpnRequest(**fields, signature="forged")) is False


def test_from_env_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORDERS_MOMO_ACCESS_KEY", raising=False)
    monkeypatch.delenv("ORDERS_MOMO_SECRET_KEY", raising=False)

    with pytest.raises(ValueError, match="ORDERS_MOMO_ACCESS_KEY"):
        MomoPaymentGateway.from_env()
