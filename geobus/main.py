import logging
import os

from fastapi import FastAPI

from geobus.api.routes.routes import router
from geobus.infrastructure.db.session import get_database
from geobus.infrastructure.db import models  # noqa: F401  registers tables on Base

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Geobus Booking Engine")
app.include_router(router)


@app.on_event("startup")
def on_startup() -> None:
    # The API container usually starts before Postgres accepts connections.
    database = get_database()
    database.wait_until_ready(
        max_retries=int(os.getenv("DB_CONNECT_MAX_RETRIES", "30")),
        retry_delay=float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5")),
    )
    database.create_all()


@app.on_event("shutdown")
def on_shutdown() -> None:
    get_database().dispose()
