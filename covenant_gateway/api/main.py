"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from covenant_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from covenant_gateway.api.v1 import runs, risk_scores, history
from covenant_gateway.infrastructure.observability.logging import setup_logging
from covenant_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level, settings.service_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Covenant Monitoring Gateway",
        description="Covenant compliance testing and borrower risk scoring service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
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
    app.include_router(runs.router, prefix="/v1", tags=["covenant-tests"])
    app.include_router(risk_scores.router, prefix="/v1", tags=["risk-scores"])
    app.include_router(history.router, prefix="/v1", tags=["history"])

    return app


app = create_app()
