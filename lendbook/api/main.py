"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lendbook.api.dependencies import get_request_id
from lendbook.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lendbook.api.responses import failed
from lendbook.api.v1 import loans, profits
from lendbook.domain.exceptions import (
    ConcurrentUpdateError,
    DomainException,
    NotFoundError,
    StoreError,
    ValidationError,
)
from lendbook.infrastructure.observability.logging import setup_logging
from lendbook.config import settings

# Setup structured logging
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConcurrentUpdateError, 409),
    (StoreError, 500),
]


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate domain errors into the failure envelope"""
    status_code = status_for(exc)
    request_id = get_request_id(request)
    if status_code >= 500:
        logger.error(f"Request failed: {exc}", extra={"request_id": request_id, "path": request.url.path})
    else:
        logger.warning(f"Request rejected: {exc}", extra={"request_id": request_id, "path": request.url.path})
    return JSONResponse(status_code=status_code, content=failed(str(exc)))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content=failed("Invalid request", errors))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=500, content=failed("Internal server error"))


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Lendbook",
        description="Loan collection, profit ledger and reporting service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(profits.router, prefix="/v1", tags=["profits"])

    return app


app = create_app()
