"""
Main FastAPI application
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time
from prometheus_client import make_asgi_app, Counter, Histogram, REGISTRY
import uuid

from app.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import SeatplanException
from app.core.logging import setup_logging
from app.schemas.response import ErrorDetail, ErrorResponse
from app.api.v1.api import api_router

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Prometheus metrics; re-imports in tests must not register twice
try:
    REQUEST_COUNT = Counter(
        "seatplan_requests_total",
        "Total requests",
        ["method", "endpoint", "status"]
    )
    REQUEST_DURATION = Histogram(
        "seatplan_request_duration_seconds",
        "Request duration",
        ["method", "endpoint"]
    )
except ValueError:
    REQUEST_COUNT = REGISTRY._names_to_collectors["seatplan_requests_total"]
    REQUEST_DURATION = REGISTRY._names_to_collectors["seatplan_request_duration_seconds"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db()
    logger.info("Database connection established")

    yield

    logger.info("Shutting down application")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Seating plan editing with optimistic versioning, edit leases and snapshots",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Request-ID"],
)


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """
    Track request metrics and add request ID
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    # Label by route template so ids do not explode cardinality
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(duration)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(duration)

    return response


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details or {}))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(SeatplanException)
async def seatplan_exception_handler(request: Request, exc: SeatplanException):
    logger.info(
        f"{exc.code}: {exc.message}",
        extra={"request_id": getattr(request.state, "request_id", None)}
    )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Internal server error: {exc}",
        exc_info=exc,
        extra={"request_id": getattr(request.state, "request_id", None)}
    )
    return error_response(500, "INTERNAL_ERROR", "An internal server error occurred")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
        "api_docs": "/docs" if settings.DEBUG else None
    }


app.include_router(api_router, prefix=settings.API_PREFIX)

# Mount Prometheus metrics endpoint
if settings.PROMETHEUS_ENABLED:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
