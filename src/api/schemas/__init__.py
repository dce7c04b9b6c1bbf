"""API schemas."""

from src.api.schemas.auth import Credentials, TokenResponse, UserInfo
from src.api.schemas.books import Book, BookChanges, BookFields, ErrorResponse, MessageResponse

__all__ = [
    "Book",
    "BookChanges",
    "BookFields",
    "Credentials",
    "ErrorResponse",
    "MessageResponse",
    "TokenResponse",
    "UserInfo",
]
