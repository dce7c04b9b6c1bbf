"""Book storage and service."""

from src.core.books.service import BookService, get_book_service
from src.core.books.store import (
    BookStore,
    InMemoryBookStore,
    RedisBookStore,
    get_book_store,
    reset_book_store,
)

__all__ = [
    "BookService",
    "BookStore",
    "InMemoryBookStore",
    "RedisBookStore",
    "get_book_service",
    "get_book_store",
    "reset_book_store",
]
