"""Shared notification payload schema (v1).

Payloads the orders service hands to the notification dispatcher, and the advisory result
the dispatcher returns. Dispatch is best-effort: a failed result never fails an order.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class OrderCreatedAdminPayloadV1(BaseModel):
    order_id: int
    order_number: str
    total_amount: Decimal
    user_id: int | None = None


class OrderStatusChangedPayloadV1(BaseModel):
    order_id: int
    order_number: str
    status: str
    total_amount: Decimal
    user_id: int


class NotificationDispatchResultV1(BaseModel):
    success: bool
    targeted_receivers: int = 0
    success_count: int = 0
    failure_count: int = 0
    errors: list[str] = Field(default_factory=list)
    topic_sent: bool = False
