from __future__ import annotations

from typing import Protocol

from packages.shared.schemas.notifications import (
    NotificationDispatchResultV1,
    OrderCreatedAdminPayloadV1,
    OrderStatusChangedPayloadV1,
)
from services.api.app.models.enums import OrderStatus

STATUS_MESSAGES: dict[str, str] = {
    OrderStatus.PENDING.value: "Your order has been received and is awaiting confirmation.",
    OrderStatus.CONFIRMED.value: "Your order has been confirmed.",
    OrderStatus.PROCESSING.value: "Your order is being prepared.",
    OrderStatus.SHIPPED.value: "Your order is on its way.",
    OrderStatus.DELIVERED.value: "Your order has been delivered.",
    OrderStatus.CANCELLED.value: "Your order has been cancelled.",
    OrderStatus.RETURNED.value: "Your order has been returned.",
}


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, f"Your order status is now {status}.")


class Notifier(Protocol):
    """Best-effort order notifications. Implementations report failures, never raise."""

    name: str

    def notify_admins_order_created(
        self, payload: OrderCreatedAdminPayloadV1
    ) -> NotificationDispatchResultV1: ...

    def notify_user_order_status_changed(
        self, payload: OrderStatusChangedPayloadV1
    ) -> NotificationDispatchResultV1: ...
