"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from splitpay_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from splitpay_gateway.api.v1 import contacts, flows, split
from splitpay_gateway.infrastructure.database.session import init_db
from splitpay_gateway.infrastructure.observability.logging import setup_logging
from splitpay_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app(create_tables: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="SplitPay Gateway",
        description="Split a checkout total between participants with exact-cent reconciliation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if create_tables else None,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(split.router, prefix="/v1", tags=["split"])
    app.include_router(flows.router, prefix="/v1", tags=["flows"])
    app.include_router(contacts.router, prefix="/v1", tags=["contacts"])

    return app


app = create_app()
