from __future__ import annotations

import os

import structlog
from services.api.app.db.database import get_engine
from services.api.app.db.models import Base

logger = structlog.get_logger(__name__)


def init_db() -> None:
    if os.getenv("ORDERS_DB_AUTO_CREATE", "true").strip().lower() not in {"1", "true", "yes", "y"}:
        logger.info("Skipping table creation", reason="ORDERS_DB_AUTO_CREATE disabled")
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Order tables ready", dialect=engine.dialect.name, tables=len(Base.metadata.tables))
