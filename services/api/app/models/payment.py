from __future__ import annotations

from pydantic import BaseModel


class MomoIpnRequest(BaseModel):
    """Instant payment notification posted by the MoMo gateway.

    Field names follow the gateway's wire format. `orderId` carries our order number.
    """

    partnerCode: str
    orderId: str
    requestId: str
    amount: int
    orderInfo: str
    orderType: str
    transId: int
    resultCode: int
    message: str
    payType: str
    responseTime: int
    extraData: str = ""
    signature: str


class PaymentCallbackResponse(BaseModel):
    message: str
