"""Book CRUD endpoints.

Every route requires a bearer token and only ever touches the caller's own
books. Domain errors raised by the service are turned into JSON responses by
the exception handler registered in ``src.main``.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from src.api.deps import CurrentSession
from src.api.schemas.books import Book, BookFields, ErrorResponse, MessageResponse
from src.core.books.service import BookService, get_book_service

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.get("", response_model=list[Book])
async def list_books(
    session: CurrentSession,
    service: Annotated[BookService, Depends(get_book_service)],
) -> list[Book]:
    """List the caller's books."""
    return await service.list(session)


@router.post("", response_model=Book)
async def create_book(
    fields: BookFields,
    session: CurrentSession,
    service: Annotated[BookService, Depends(get_book_service)],
) -> Book:
    """Create a book owned by the caller."""
    return await service.create(session, fields)


@router.put("/{book_id}", response_model=Book, responses={404: {"model": ErrorResponse}})
async def update_book(
    book_id: str,
    session: CurrentSession,
    service: Annotated[BookService, Depends(get_book_service)],
    changes: Annotated[Any, Body(openapi_examples={"title": {"value": {"title": "Dune Messiah"}}})] = None,
) -> Book:
    """Update any subset of a book's editable fields. ``id`` and ``owner`` never change.

    The body is checked only after the book is found and its owner confirmed,
    so an unknown id is 404 and a foreign one 401 whatever the payload.
    """
    return await service.update(session, book_id, changes)


@router.delete("/{book_id}", response_model=MessageResponse, responses={404: {"model": ErrorResponse}})
async def delete_book(
    book_id: str,
    session: CurrentSession,
    service: Annotated[BookService, Depends(get_book_service)],
) -> MessageResponse:
    """Delete a book permanently."""
    await service.delete(session, book_id)
    return MessageResponse(msg="Book deleted successfully")
