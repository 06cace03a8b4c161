"""
FastAPI Main Application
Entry point for the expense claims API server
Source: https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expense_claims.api.config import settings
from expense_claims.api.responses import claims_error_response, error_response
from expense_claims.api.routes import claims, health, reference_data
from expense_claims.db.connection import close_db_connection, init_models
from expense_claims.utils.errors import AuthenticationError, ClaimsError
from expense_claims.utils.logging import get_logger, setup_logging

# Setup logging
setup_logging(
    level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    json_logs=settings.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]  # noqa: ARG001
    """
    Application lifespan manager.

    Source: https://fastapi.tiangolo.com/advanced/events/
    """
    # Startup
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if settings.is_development:
        await init_models()

    yield

    # Shutdown
    logger.info("Shutting down application")
    await close_db_connection()
    logger.info("Database connections closed")


app = FastAPI(
    title="Expense Claims API",
    description="Expense claim lifecycle: itemized multi-currency claims, attachments and approvals",
    version="1.0.0",
    docs_url="/docs" if not settings.is_production else None,  # Disable docs in production
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

# CORS middleware
# Source: https://fastapi.tiangolo.com/tutorial/cors/
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)


# Exception handlers
# Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
@app.exception_handler(ClaimsError)
async def claims_error_handler(request: Request, exc: ClaimsError) -> JSONResponse:  # noqa: ARG001
    response = claims_error_response(exc)
    if isinstance(exc, AuthenticationError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError  # noqa: ARG001
) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {
            "code": "validation_error",
            "message": "Request validation failed",
            "details": {"errors": exc.errors()},
        },
    )


# Include routers
app.include_router(health.router)
app.include_router(reference_data.router)
app.include_router(claims.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Expense Claims API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if not settings.is_production else "disabled",
    }
