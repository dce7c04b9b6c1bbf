"""Health check endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from src.config import get_settings
from src.core.books.store import BookStore, get_book_store

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    store: Annotated[BookStore, Depends(get_book_store)],
) -> dict:
    """Readiness check - verifies the book store answers before taking traffic."""
    settings = get_settings()
    if not await store.ping():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable", "store_backend": settings.store_backend}
    return {
        "status": "ready",
        "store_backend": settings.store_backend,
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - verifies service is running."""
    return {"status": "alive"}
