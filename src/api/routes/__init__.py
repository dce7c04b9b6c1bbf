"""API routes."""

from src.api.routes.auth import router as auth_router
from src.api.routes.books import router as books_router
from src.api.routes.health import router as health_router

__all__ = ["auth_router", "books_router", "health_router"]
