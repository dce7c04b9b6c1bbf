"""Async HTTP client for the books API."""

from typing import Any, Optional

import httpx
import pydantic
import structlog

from src.api.schemas.auth import TokenResponse
from src.api.schemas.books import Book, BookFields

logger = structlog.get_logger(__name__)


class ApiError(Exception):
    """A request to the books API failed.

    ``status_code`` is None when the request never got a response
    (connection refused, timeout, ...).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SessionExpiredError(ApiError):
    """The bearer token is missing, invalid or expired."""


def _parse(model: type[pydantic.BaseModel], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        logger.warning("Books API sent a malformed body", model=model.__name__, errors=e.error_count())
        raise ApiError(f"Malformed response: not a valid {model.__name__}", code="bad_response") from e


class BookApiClient:
    """Client for the books REST API.

    The bearer token obtained from ``signup``/``login`` is kept on the client
    and attached to every book request.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.token = token

    async def __aenter__(self) -> "BookApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        authenticated: bool = True,
    ) -> Any:
        headers = {}
        if authenticated:
            if not self.token:
                raise SessionExpiredError("No token found", status_code=401, code="unauthorized")
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Books API request failed", method=method, path=path, error=str(e))
            raise ApiError(f"Request failed: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                logger.warning(
                    "Books API sent an unreadable body",
                    method=method,
                    path=path,
                    status=response.status_code,
                )
                raise ApiError(
                    "Unreadable response from server",
                    status_code=response.status_code,
                    code="bad_response",
                ) from e

        detail, code = response.reason_phrase, None
        try:
            body = response.json()
            detail = body.get("detail", detail)
            code = body.get("code")
        except ValueError:
            pass

        logger.info(
            "Books API returned an error",
            method=method,
            path=path,
            status=response.status_code,
            code=code,
        )
        if response.status_code == 401 and authenticated:
            raise SessionExpiredError(str(detail), status_code=401, code=code)
        raise ApiError(str(detail), status_code=response.status_code, code=code)

    # --- Auth ---

    async def signup(self, username: str, password: str) -> TokenResponse:
        """Register and keep the returned token."""
        data = await self._request(
            "POST",
            "/auth/signup",
            json={"username": username, "password": password},
            authenticated=False,
        )
        result = _parse(TokenResponse, data)
        self.token = result.token
        return result

    async def login(self, username: str, password: str) -> TokenResponse:
        """Log in and keep the returned token."""
        data = await self._request(
            "POST",
            "/auth/login",
            json={"username": username, "password": password},
            authenticated=False,
        )
        result = _parse(TokenResponse, data)
        self.token = result.token
        return result

    def logout(self) -> None:
        """Forget the token."""
        self.token = None

    # --- Books ---

    async def list_books(self) -> list[Book]:
        data = await self._request("GET", "/books")
        if not isinstance(data, list):
            raise ApiError("Malformed response: expected a list of books", code="bad_response")
        return [_parse(Book, item) for item in data]

    async def create_book(self, fields: BookFields) -> Book:
        data = await self._request("POST", "/books", json=fields.model_dump(by_alias=True))
        return _parse(Book, data)

    async def update_book(self, book_id: str, fields: BookFields) -> Book:
        data = await self._request(
            "PUT", f"/books/{book_id}", json=fields.model_dump(by_alias=True)
        )
        return _parse(Book, data)

    async def delete_book(self, book_id: str) -> str:
        data = await self._request("DELETE", f"/books/{book_id}")
        return data.get("msg", "") if isinstance(data, dict) else ""

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
