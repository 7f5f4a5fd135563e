from __future__ import annotations

import structlog
from packages.shared.schemas.notifications import (
    NotificationDispatchResultV1,
    OrderCreatedAdminPayloadV1,
    OrderStatusChangedPayloadV1,
)
from services.api.app.services.notifications_base import status_message

logger = structlog.get_logger(__name__)


class LogNotifier:
    """Emits notifications as structured log events only."""

    name = "LOG"

    def notify_admins_order_created(
        self, payload: OrderCreatedAdminPayloadV1
    ) -> NotificationDispatchResultV1:
        logger.info("Order created", **payload.model_dump(mode="json"))
        return NotificationDispatchResultV1(success=True)

    def notify_user_order_status_changed(
        self, payload: OrderStatusChangedPayloadV1
    ) -> NotificationDispatchResultV1:
        logger.info(
            "Order status changed",
            message=status_message(payload.status),
            **payload.model_dump(mode="json"),
        )
        return NotificationDispatchResultV1(success=True, targeted_receivers=1, success_count=1)
