from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from services.api.app.auth import get_optional_requester, get_requester
from services.api.app.db.deps import get_db
from services.api.app.models.enums import FulfillmentMethod, OrderStatus, PaymentMethod
from services.api.app.models.order import (
    OrderCancelRequest,
    OrderCancelResponse,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderOut,
    OrderPageOut,
    OrderStatusOut,
    OrderUpdateRequest,
    PageMetaOut,
    RecentOrderOut,
)
from services.api.app.services.errors import BadRequestError, ForbiddenError, NotFoundError
from services.api.app.services.notifications_factory import get_notifier
from services.api.app.services.order_policy import Requester
from services.api.app.services.orders import OrderFilters, OrderService
from services.api.app.services.payment_base import PaymentGatewayError
from services.api.app.services.payment_factory import get_payment_gateway
from services.api.app.services.pricing_base import PricingEngineError
from services.api.app.services.pricing_factory import get_pricing_engine
from sqlalchemy.orm import Session

router = APIRouter()


def _raise_order_http_error(e: Exception) -> None:
    if isinstance(e, BadRequestError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, ForbiddenError):
        raise HTTPException(status_code=403, detail=str(e)) from e

    if isinstance(e, PricingEngineError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    if isinstance(e, PaymentGatewayError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e


def _order_service(db: Session) -> OrderService:
    try:
        return OrderService(
            db,
            pricing=get_pricing_engine(db),
            notifier=get_notifier(),
            payments=get_payment_gateway(),
        )
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/v1/orders", response_model=OrderCreateResponse, status_code=201)
def create_order(
    payload: OrderCreateRequest,
    requester: Requester | None = Depends(get_optional_requester),
    db: Session = Depends(get_db),
) -> OrderCreateResponse:
    service = _order_service(db)
    try:
        result = service.create(payload, requester)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderCreateResponse(
        order=OrderOut.model_validate(result.order),
        pay_url=result.pay_url,
    )


@router.get("/v1/orders", response_model=OrderPageOut)
def list_orders(
    status: list[OrderStatus] = Query(default=[]),
    payment_method: list[PaymentMethod] = Query(default=[]),
    fulfillment_method: list[FulfillmentMethod] = Query(default=[]),
    branch_id: int | None = None,
    user_id: int | None = None,
    min_total: Decimal | None = Query(default=None, ge=0),
    max_total: Decimal | None = Query(default=None, ge=0),
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> OrderPageOut:
    filters = OrderFilters(
        statuses=status,
        payment_methods=payment_method,
        fulfillment_methods=fulfillment_method,
        branch_id=branch_id,
        user_id=user_id,
        min_total=min_total,
        max_total=max_total,
        created_from=created_from,
        created_to=created_to,
        search=search,
        page=page,
        limit=limit,
    )

    service = _order_service(db)
    try:
        result = service.list_orders(filters, requester)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderPageOut(
        data=[OrderOut.model_validate(o) for o in result.items],
        meta=PageMetaOut(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/v1/orders/recent", response_model=list[RecentOrderOut])
def list_recent_orders(
    limit: int = Query(default=5, ge=1, le=50),
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> list[RecentOrderOut]:
    service = _order_service(db)
    try:
        orders = service.list_recent(requester, limit=limit)
    except Exception as e:
        _raise_order_http_error(e)

    return [
        RecentOrderOut(order_number=o.order_number, status=o.status, created_at=o.created_at)
        for o in orders
    ]


@router.get("/v1/orders/status/{order_number}", response_model=OrderStatusOut)
def get_order_status(
    order_number: str,
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> OrderStatusOut:
    service = _order_service(db)
    try:
        view = service.get_status(order_number, requester)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderStatusOut(
        id=view.id,
        order_number=view.order_number,
        status=view.status,
        total_amount=view.total_amount,
        is_paid=view.is_paid,
        paid_at=view.paid_at,
    )


@router.get("/v1/orders/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> OrderOut:
    service = _order_service(db)
    try:
        order = service.find_one(order_id, requester)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderOut.model_validate(order)


@router.patch("/v1/orders/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    payload: OrderUpdateRequest,
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> OrderOut:
    service = _order_service(db)
    try:
        order = service.update(order_id, payload, requester)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderOut.model_validate(order)


@router.post("/v1/orders/{order_number}/cancel", response_model=OrderCancelResponse)
def cancel_order(
    order_number: str,
    payload: OrderCancelRequest | None = None,
    requester: Requester = Depends(get_requester),
    db: Session = Depends(get_db),
) -> OrderCancelResponse:
    reason = payload.cancellation_reason if payload is not None else None

    service = _order_service(db)
    try:
        result = service.request_cancellation(order_number, requester, reason)
    except Exception as e:
        _raise_order_http_error(e)

    return OrderCancelResponse(
        order_number=result.order_number,
        status=result.status,
        message=result.message,
    )
