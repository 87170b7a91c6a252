"""
Account Events API - FastAPI application.
API versioning (/api/v1), health check, error handling, Kafka publisher lifecycle.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

from account_events.api.v1.routes import api_router
from account_events.core.config import get_settings
from account_events.services.event_publisher import EventPublishError, KafkaEventPublisher
from account_events.services.idempotency import IdempotentRecordClient
from account_events.services.pipeline import AccountPipeline
from account_events.services.salesforce_service import get_salesforce_service

_settings = get_settings()

# Package logger: every account_events.* module logger propagates here
_log_handler = logging.StreamHandler(sys.stdout)
_log_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s: %(message)s"))
_package_logger = logging.getLogger("account_events")
_package_logger.setLevel(_settings.log_level)
if not _package_logger.handlers:
    _package_logger.addHandler(_log_handler)

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request (method + path + status)."""

    async def dispatch(self, request: StarletteRequest, call_next: Callable) -> Response:
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: wire the pipeline and own the Kafka producer."""
    logger.info("Starting Account Events API (%s)", _settings.ENVIRONMENT)
    if _settings.ENVIRONMENT == "production":
        _settings.validate_for_production()

    publisher = KafkaEventPublisher(_settings)
    try:
        await publisher.start()
    except EventPublishError as e:
        # Publish retries the connection; requests get 500s until the broker is reachable.
        logger.error("Event publisher not started: %s", e.message)

    record_client = IdempotentRecordClient(
        get_salesforce_service(_settings),
        ttl_seconds=_settings.idempotency_ttl_seconds,
    )
    app.state.account_pipeline = AccountPipeline(record_client, publisher, _settings)
    yield
    await publisher.stop()
    logger.info("Shutting down")


app = FastAPI(
    title="Account Events API",
    version="1.0.0",
    description="Creates Salesforce accounts and publishes ACCOUNT_CREATED events.",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# Error handling middleware
@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Unhandled error: Internal server error"},
        )


# Root and health (outside versioning)
@app.get("/")
def root():
    return {
        "message": "Account Events API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "accounts": "/api/v1/accounts",
        },
    }


@app.get("/health")
def health():
    return {"status": "healthy"}


# API v1
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("account_events.main:app", host="0.0.0.0", port=port)
