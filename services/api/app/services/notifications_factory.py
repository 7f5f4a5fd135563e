from __future__ import annotations

import os

from services.api.app.services.notifications_base import Notifier
from services.api.app.services.notifications_inbox import InboxNotifier
from services.api.app.services.notifications_log import LogNotifier


def get_notifier() -> Notifier:
    mode = os.getenv("ORDERS_NOTIFIER", "inbox").strip().lower()

    if mode == "inbox":
        return InboxNotifier()

    if mode == "log":
        return LogNotifier()

    raise ValueError(f"Unknown ORDERS_NOTIFIER={mode!r}. Expected inbox or log.")
