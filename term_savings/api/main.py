"""HTTP entry point: plans, deposits and portfolio under /v1, plus health and metrics"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from term_savings.api.middleware import RequestIDMiddleware, MetricsMiddleware
from term_savings.api.v1 import deposits, plans, portfolio
from term_savings.infrastructure.observability.logging import setup_logging
from term_savings.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Build the app with middleware and all routers mounted"""
    app = FastAPI(
        title="Term Savings",
        description="Fixed-term savings deposits with continuous interest accrual",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Added last, so RequestIDMiddleware is outermost
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(plans.router, prefix="/v1", tags=["plans"])
    app.include_router(deposits.router, prefix="/v1", tags=["deposits"])
    app.include_router(portfolio.router, prefix="/v1", tags=["portfolio"])

    return app


app = create_app()
