import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.router import api_router
from app.core.config import settings
from app.core.database import close_mongo_connection, connect_to_mongo, db
from app.core.error_handlers import (
    base_api_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions import BaseAPIException
from app.core.logging import client_ip_var, request_id_var, setup_logging
from app.core.security import RateLimitMiddleware, add_security_headers
from app.services.integrations.base import close_http_client

setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "ev-subscription-backend"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    logger.info(
        "EV Subscription Backend started",
        extra={"environment": settings.ENVIRONMENT, "api_prefix": settings.API_V1_STR},
    )
    yield
    # Remote service connections first, the intent store last
    await close_http_client()
    await close_mongo_connection()
    logger.info("EV Subscription Backend stopped")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and the caller address for logs and responses."""

    async def dispatch(self, request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        client_ip = request.client.host if request.client else "unknown"
        request.state.request_id = request_id

        id_token = request_id_var.set(request_id)
        ip_token = client_ip_var.set(client_ip)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(id_token)
            client_ip_var.reset(ip_token)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{time.perf_counter() - start:.4f}"
        return response


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "Backend-for-frontend of the EV charging subscription platform: plan "
        "catalog, upgrade credit, checkout with payment reconciliation, orders "
        "and feature usage."
    ),
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(BaseHTTPMiddleware, dispatch=add_security_headers)
# Added last so it wraps everything and the id covers rate-limit rejections too
app.add_middleware(RequestContextMiddleware)

app.include_router(api_router, prefix=settings.API_V1_STR)

Instrumentator(excluded_handlers=["/metrics", f"{settings.API_V1_STR}/health"]).instrument(
    app
).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get(f"{settings.API_V1_STR}/health", tags=["Health"])
async def health_check():
    """Liveness plus whether the payment intent store is reachable."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": app.version,
        "database": "connected" if db.database is not None else "unavailable",
        "timestamp": datetime.now(UTC).isoformat(),
    }


app.add_exception_handler(BaseAPIException, base_api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)
