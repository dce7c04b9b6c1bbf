"""Domain errors raised by stores and services.

Each error carries a stable ``code`` and the HTTP status it maps to; the
FastAPI exception handler in ``src.main`` turns them into JSON responses.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""

    code = "server_error"
    status_code = 500

    def __init__(self, message: str = "Server Error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Missing or malformed input."""

    code = "validation_error"
    status_code = 422


class NotFoundError(CatalogError):
    """No record with the requested id."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Book not found") -> None:
        super().__init__(message)


class UnauthorizedError(CatalogError):
    """Credential missing, invalid, or not the owner of the record."""

    code = "unauthorized"
    status_code = 401

    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message)


class ConflictError(CatalogError):
    """A unique value such as a username is already taken."""

    code = "conflict"
    status_code = 409


class DuplicateIsbnError(CatalogError):
    """Another book already uses this ISBN.

    Keeps the 500 status of a store constraint violation, but is reported
    with its own code so clients can tell it apart.
    """

    code = "duplicate_isbn"
    status_code = 500

    def __init__(self, isbn: str) -> None:
        super().__init__(f"A book with ISBN '{isbn}' already exists")
        self.isbn = isbn


class StoreError(CatalogError):
    """Backend storage failure."""
