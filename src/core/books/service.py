"""Book service: CRUD over the book store, scoped to the caller's identity."""

from collections.abc import Mapping
from typing import Any, Union

import pydantic
import structlog

from src.api.schemas.books import Book, BookChanges, BookFields
from src.core.auth import SessionContext
from src.core.books.store import BookStore, Changes, get_book_store
from src.core.errors import UnauthorizedError, ValidationError

logger = structlog.get_logger(__name__)

BookInput = Union[BookFields, Mapping[str, Any]]

EDITABLE_FIELDS = {"title", "author", "genre", "year_of_publishing", "isbn"}


def _invalid(e: pydantic.ValidationError) -> ValidationError:
    problems = ", ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
    )
    return ValidationError(f"Invalid book: {problems}")


def _validate(fields: BookInput) -> BookFields:
    if isinstance(fields, BookFields):
        return fields
    try:
        return BookFields.model_validate(fields)
    except pydantic.ValidationError as e:
        raise _invalid(e) from e


def _merge(changes: Any) -> Changes:
    """Build the store callback that lays ``changes`` over the stored book.

    Nothing is validated until the store calls it, which happens only after
    the book has been found and its owner checked.
    """

    def build(book: Book) -> BookFields:
        if isinstance(changes, BookFields):
            return changes
        if not isinstance(changes, Mapping):
            raise ValidationError("Invalid book: body must be a JSON object")
        try:
            sent = BookChanges.model_validate(changes).model_dump(exclude_unset=True)
            return BookFields.model_validate({**book.model_dump(include=EDITABLE_FIELDS), **sent})
        except pydantic.ValidationError as e:
            raise _invalid(e) from e

    return build


class BookService:
    """Create, list, update and delete books on behalf of a session.

    Every operation takes the caller's SessionContext. Books are only ever
    visible to, and mutable by, the user that created them. Update and delete
    report NotFoundError for unknown ids, then UnauthorizedError for someone
    else's book, and only then look at the payload.
    """

    def __init__(self, store: BookStore) -> None:
        self._store = store

    async def create(self, ctx: SessionContext, fields: BookInput) -> Book:
        """Create a book owned by the caller."""
        book = await self._store.insert(ctx.user_id, _validate(fields))
        logger.info("Book created", user_id=ctx.user_id, book_id=book.id, isbn=book.isbn)
        return book

    async def list(self, ctx: SessionContext) -> list[Book]:
        """List the caller's books."""
        books = await self._store.list_by_owner(ctx.user_id)
        logger.debug("Books listed", user_id=ctx.user_id, count=len(books))
        return books

    async def update(self, ctx: SessionContext, book_id: str, changes: Any) -> Book:
        """Update one of the caller's books.

        ``changes`` may hold any subset of the editable fields; the ones left
        out keep their stored values. The merged record must still be valid.
        """
        try:
            book = await self._store.update_owned(book_id, ctx.user_id, _merge(changes))
        except UnauthorizedError:
            logger.warning("Update refused, not the owner", user_id=ctx.user_id, book_id=book_id)
            raise
        logger.info("Book updated", user_id=ctx.user_id, book_id=book_id)
        return book

    async def delete(self, ctx: SessionContext, book_id: str) -> None:
        """Permanently delete one of the caller's books."""
        try:
            await self._store.delete_owned(book_id, ctx.user_id)
        except UnauthorizedError:
            logger.warning("Delete refused, not the owner", user_id=ctx.user_id, book_id=book_id)
            raise
        logger.info("Book deleted", user_id=ctx.user_id, book_id=book_id)


def get_book_service() -> BookService:
    """Build a book service over the book store singleton."""
    return BookService(get_book_store())
