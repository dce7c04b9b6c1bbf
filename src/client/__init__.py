"""Python client for the books API."""

from src.client.api import ApiError, BookApiClient, SessionExpiredError
from src.client.state import BookClientState, BookDraft

__all__ = ["ApiError", "BookApiClient", "BookClientState", "BookDraft", "SessionExpiredError"]
