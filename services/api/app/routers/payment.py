from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from services.api.app.db.deps import get_db
from services.api.app.models.payment import MomoIpnRequest, PaymentCallbackResponse
from services.api.app.services.errors import BadRequestError, NotFoundError
from services.api.app.services.notifications_factory import get_notifier
from services.api.app.services.orders import OrderService
from services.api.app.services.payment_factory import get_payment_gateway
from services.api.app.services.pricing_factory import get_pricing_engine
from sqlalchemy.orm import Session

router = APIRouter()

logger = structlog.get_logger(__name__)


@router.post("/v1/payments/momo/ipn", response_model=PaymentCallbackResponse)
def momo_ipn(payload: MomoIpnRequest, db: Session = Depends(get_db)) -> PaymentCallbackResponse:
    try:
        gateway = get_payment_gateway()
        service = OrderService(
            db,
            pricing=get_pricing_engine(db),
            notifier=get_notifier(),
            payments=gateway,
        )
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(
        "Payment callback received",
        order_number=payload.orderId,
        result_code=payload.resultCode,
        trans_id=payload.transId,
    )

    if not gateway.verify_callback(payload):
        logger.warning("Payment callback signature mismatch", order_number=payload.orderId)
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        service.record_payment(payload.orderId, payload.resultCode)
    except BadRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail="Internal Server Error") from e

    return PaymentCallbackResponse(message="Callback processed")
