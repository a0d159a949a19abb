"""FastAPI application factory for the jewelry ledger service"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import Response

from jewelry_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from jewelry_ledger.api.v1 import customers, inventory, prices, sales
from jewelry_ledger.config import settings
from jewelry_ledger.infrastructure.database.models import Base
from jewelry_ledger.infrastructure.database.session import engine, get_db
from jewelry_ledger.infrastructure.observability.logging import setup_logging

ROUTERS = (
    (sales.router, "sales"),
    (prices.router, "prices"),
    (customers.router, "customers"),
    (inventory.router, "inventory"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema_on_startup:
        Base.metadata.create_all(bind=engine)
        logging.info("Ledger schema ensured", extra={"step": "schema_create"})
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Jewelry Ledger",
        description="Weight-priced sales, stock, daily metal rates and store credit",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        """Liveness plus a round trip to the ledger database"""
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logging.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "service": settings.service_name, "database": "unreachable"},
            )
        return {"status": "ok", "service": settings.service_name, "database": "ok"}

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in ROUTERS:
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
