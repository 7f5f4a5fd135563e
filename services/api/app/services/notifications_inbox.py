from __future__ import annotations

import structlog
from packages.shared.schemas.notifications import (
    NotificationDispatchResultV1,
    OrderCreatedAdminPayloadV1,
    OrderStatusChangedPayloadV1,
)
from services.api.app.db.database import db_session
from services.api.app.db.models import Notification, User
from services.api.app.models.enums import UserRole
from services.api.app.services.notifications_base import status_message

logger = structlog.get_logger(__name__)


class InboxNotifier:
    """Writes in-app notifications, one row per receiver.

    Runs in its own session, after the order transaction has committed, so a failure here
    can only lose the notification.
    """

    name = "INBOX"

    def notify_admins_order_created(
        self, payload: OrderCreatedAdminPayloadV1
    ) -> NotificationDispatchResultV1:
        db = db_session()
        try:
            admin_ids = [
                row.id
                for row in db.query(User)
                .filter(User.role.in_([UserRole.ADMIN, UserRole.SHOP_OWNER]))
                .order_by(User.id.asc())
                .all()
            ]
            for admin_id in admin_ids:
                db.add(
                    Notification(
                        user_id=admin_id,
                        title="New order",
                        body=f"Order {payload.order_number} worth {payload.total_amount:.2f}.",
                        data_json={
                            "type": "order_created",
                            **payload.model_dump(mode="json"),
                        },
                    )
                )
            db.commit()
            return NotificationDispatchResultV1(
                success=True,
                targeted_receivers=len(admin_ids),
                success_count=len(admin_ids),
            )
        except Exception as e:
            db.rollback()
            logger.warning("Admin order notification failed", error=str(e))
            return NotificationDispatchResultV1(success=False, failure_count=1, errors=[str(e)])
        finally:
            db.close()

    def notify_user_order_status_changed(
        self, payload: OrderStatusChangedPayloadV1
    ) -> NotificationDispatchResultV1:
        db = db_session()
        try:
            db.add(
                Notification(
                    user_id=payload.user_id,
                    title=f"Order {payload.order_number}",
                    body=status_message(payload.status),
                    data_json={
                        "type": "order_status",
                        **payload.model_dump(mode="json"),
                    },
                )
            )
            db.commit()
            return NotificationDispatchResultV1(
                success=True, targeted_receivers=1, success_count=1
            )
        except Exception as e:
            db.rollback()
            logger.warning(
                "Order status notification failed",
                order_id=payload.order_id,
                error=str(e),
            )
            return NotificationDispatchResultV1(
                success=False, targeted_receivers=1, failure_count=1, errors=[str(e)]
            )
        finally:
            db.close()
