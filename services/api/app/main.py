"""Orders API service entrypoint."""

from fastapi import FastAPI

from services.api.app.db.init_db import init_db
from services.api.app.routers.order import router as order_router
from services.api.app.routers.payment import router as payment_router
from services.api.app.utils.logging import configure_logging

app = FastAPI(title="Orders API")

app.include_router(order_router)
app.include_router(payment_router)


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    init_db()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
