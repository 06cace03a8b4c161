"""
Health Check Routes
Service health monitoring endpoints
Source: https://microservices.io/patterns/observability/health-check-api.html
"""

from typing import Any

from anyio import to_thread
from fastapi import APIRouter

from expense_claims.db.connection import check_db_connection
from expense_claims.services.storage import get_attachment_store
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

SERVICE_NAME = "expense-claims-api"


async def check_attachment_store() -> bool:
    """Whether the attachment bucket is reachable."""
    store = get_attachment_store()
    try:
        return await to_thread.run_sync(store.client.bucket_exists, store.bucket)
    except Exception as e:
        logger.error(f"Attachment store check failed: {e}")
        return False


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """Health check including the database and the attachment store."""
    db_healthy = await check_db_connection()
    store_healthy = await check_attachment_store()

    return {
        "status": "healthy" if db_healthy and store_healthy else "unhealthy",
        "service": SERVICE_NAME,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
            "attachment_store": "healthy" if store_healthy else "unhealthy",
        },
    }
