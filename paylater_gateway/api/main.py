"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from paylater_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from paylater_gateway.api.v1 import early_payments, history, merchant_config, transactions
from paylater_gateway.infrastructure.observability.logging import setup_logging
from paylater_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Paylater Gateway",
        description="Installment schedules and early settlement service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(early_payments.router, prefix="/v1", tags=["early-payments"])
    app.include_router(history.router, prefix="/v1", tags=["history"])
    app.include_router(merchant_config.router, prefix="/v1", tags=["merchant-config"])

    return app


app = create_app()
