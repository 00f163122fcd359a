"""
routeflow - call-routing rule service.

Features:
- Rule evaluation previews with per-rule traces
- Rule/graph conversion for visual editing
- Rule templates
- Structured logging with correlation IDs, Prometheus metrics, health checks
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from .api.graph_router import router as graph_router
from .api.rules_router import router as rules_router
from .api.templates_router import router as templates_router
from .config import get_settings
from .health import HealthChecker
from .logging import get_logger, setup_logging
from .metrics import Metrics, set_metrics
from .middleware import (
    CorrelationIdMiddleware,
    ErrorHandlerMiddleware,
    MetricsMiddleware,
    RequestGuardMiddleware,
)

SERVICE_NAME = "routeflow"
VERSION = "0.1.0"

settings = get_settings()

setup_logging(json_output=settings.LOG_JSON, service_name=SERVICE_NAME, level=settings.LOG_LEVEL)
logger = get_logger()

metrics = Metrics(service_name=SERVICE_NAME, version=VERSION)
set_metrics(metrics)

health_checker = HealthChecker(service_name=SERVICE_NAME, version=VERSION)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("service.starting", version=VERSION, env=settings.ENV)
    yield
    logger.info("service.stopping")
    metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)


app = FastAPI(
    title="routeflow",
    version=VERSION,
    description="Call-routing rule evaluation and visual editing service",
    lifespan=lifespan,
)

# Last added runs first: correlation id, then metrics, then errors, then the guard
app.add_middleware(RequestGuardMiddleware)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(MetricsMiddleware, metrics=metrics)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(rules_router)
app.include_router(graph_router)
app.include_router(templates_router)

app.mount("/metrics", make_asgi_app(registry=metrics.registry))


@app.get("/health")
async def health():
    """Liveness probe."""
    return health_checker.liveness()


@app.get("/health/ready")
async def health_ready():
    """Readiness probe: 200 when ready, 503 otherwise."""
    metrics.update_system_metrics()
    result = health_checker.readiness()
    status_code = 200 if result["status"] == "ready" else 503
    return JSONResponse(content=result, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("routeflow.main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
