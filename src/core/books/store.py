"""Book storage backends."""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError, WatchError

from src.api.schemas.books import Book, BookFields
from src.config import get_settings
from src.core.errors import DuplicateIsbnError, NotFoundError, StoreError, UnauthorizedError

logger = structlog.get_logger(__name__)

# Builds the new editable fields from the stored book; may raise ValidationError.
Changes = Callable[[Book], BookFields]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_book(owner: str, fields: BookFields) -> Book:
    now = _now()
    return Book(
        id=uuid.uuid4().hex,
        owner=owner,
        created_at=now,
        updated_at=now,
        **fields.model_dump(),
    )


def _apply(book: Book, fields: BookFields) -> Book:
    # id, owner and created_at are never taken from the update
    return book.model_copy(update={**fields.model_dump(), "updated_at": _now()})


class BookStore(ABC):
    """Abstract book store.

    Update and delete are conditional on ownership: the existence check, the
    owner check and the write happen as one store operation, so a record is
    never modified on behalf of someone who does not own it.
    """

    @abstractmethod
    async def insert(self, owner: str, fields: BookFields) -> Book:
        """Create a book owned by ``owner``. Raises DuplicateIsbnError."""

    @abstractmethod
    async def list_by_owner(self, owner: str) -> list[Book]:
        """List every book owned by ``owner``."""

    @abstractmethod
    async def get(self, book_id: str) -> Optional[Book]:
        """Get a book by ID."""

    @abstractmethod
    async def update_owned(self, book_id: str, owner: str, changes: Changes) -> Book:
        """Replace the editable fields of a book owned by ``owner``.

        ``changes`` only runs once the book is known to exist and to belong to
        ``owner``, so a bad payload never hides a missing or foreign book.

        Raises:
            NotFoundError: no book with ``book_id``
            UnauthorizedError: the book belongs to someone else
            ValidationError: ``changes`` rejected the payload
            DuplicateIsbnError: the new ISBN is used by another book
        """

    @abstractmethod
    async def delete_owned(self, book_id: str, owner: str) -> None:
        """Delete a book owned by ``owner``. Same errors as ``update_owned``."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every book."""

    async def ping(self) -> bool:
        """Whether the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryBookStore(BookStore):
    """Dict-backed store.

    No method awaits between its checks and its writes, so each call runs
    atomically on the event loop.
    """

    def __init__(self) -> None:
        self._books: dict[str, Book] = {}
        self._isbn_index: dict[str, str] = {}  # isbn -> book id

    async def insert(self, owner: str, fields: BookFields) -> Book:
        if fields.isbn in self._isbn_index:
            raise DuplicateIsbnError(fields.isbn)
        book = _new_book(owner, fields)
        self._books[book.id] = book
        self._isbn_index[book.isbn] = book.id
        return book.model_copy()

    async def list_by_owner(self, owner: str) -> list[Book]:
        return [b.model_copy() for b in self._books.values() if b.owner == owner]

    async def get(self, book_id: str) -> Optional[Book]:
        book = self._books.get(book_id)
        return book.model_copy() if book else None

    def _owned(self, book_id: str, owner: str) -> Book:
        book = self._books.get(book_id)
        if book is None:
            raise NotFoundError()
        if book.owner != owner:
            raise UnauthorizedError()
        return book

    async def update_owned(self, book_id: str, owner: str, changes: Changes) -> Book:
        book = self._owned(book_id, owner)
        fields = changes(book)
        holder = self._isbn_index.get(fields.isbn)
        if holder is not None and holder != book_id:
            raise DuplicateIsbnError(fields.isbn)

        updated = _apply(book, fields)
        if updated.isbn != book.isbn:
            del self._isbn_index[book.isbn]
            self._isbn_index[updated.isbn] = book_id
        self._books[book_id] = updated
        return updated.model_copy()

    async def delete_owned(self, book_id: str, owner: str) -> None:
        book = self._owned(book_id, owner)
        del self._books[book_id]
        self._isbn_index.pop(book.isbn, None)

    async def clear(self) -> None:
        self._books.clear()
        self._isbn_index.clear()


class RedisBookStore(BookStore):
    """Redis-backed store.

    Layout: each book is a JSON document under ``book:{id}``; ``books:owner:{owner}``
    is the set of ids a user owns and ``books:isbn`` maps every ISBN to its
    book id. Writes run in WATCH/MULTI transactions and retry on conflict.
    """

    ISBN_KEY = "books:isbn"

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None) -> None:
        if client is None:
            if not url:
                raise ValueError("RedisBookStore needs a url or a client")
            client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        self._client = client

    @staticmethod
    def _book_key(book_id: str) -> str:
        return f"book:{book_id}"

    @staticmethod
    def _owner_key(owner: str) -> str:
        return f"books:owner:{owner}"

    async def insert(self, owner: str, fields: BookFields) -> Book:
        book = _new_book(owner, fields)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(self.ISBN_KEY)
                        if await pipe.hexists(self.ISBN_KEY, book.isbn):
                            raise DuplicateIsbnError(book.isbn)
                        pipe.multi()
                        pipe.set(self._book_key(book.id), book.model_dump_json(by_alias=True))
                        pipe.sadd(self._owner_key(owner), book.id)
                        pipe.hset(self.ISBN_KEY, book.isbn, book.id)
                        await pipe.execute()
                        return book
                    except WatchError:
                        logger.debug("Book insert conflicted, retrying", isbn=book.isbn)
        except RedisError as e:
            logger.error("Redis insert failed", error=str(e))
            raise StoreError(f"Failed to store book: {e}") from e

    async def list_by_owner(self, owner: str) -> list[Book]:
        try:
            ids = await self._client.smembers(self._owner_key(owner))
            if not ids:
                return []
            docs = await self._client.mget([self._book_key(i) for i in ids])
        except RedisError as e:
            logger.error("Redis list failed", owner=owner, error=str(e))
            raise StoreError(f"Failed to list books: {e}") from e

        books = [Book.model_validate_json(doc) for doc in docs if doc]
        return sorted(books, key=lambda b: b.created_at)

    async def get(self, book_id: str) -> Optional[Book]:
        try:
            doc = await self._client.get(self._book_key(book_id))
        except RedisError as e:
            raise StoreError(f"Failed to fetch book: {e}") from e
        return Book.model_validate_json(doc) if doc else None

    async def _watch_owned(self, pipe, book_id: str, owner: str) -> Book:
        await pipe.watch(self._book_key(book_id), self.ISBN_KEY)
        doc = await pipe.get(self._book_key(book_id))
        if not doc:
            raise NotFoundError()
        book = Book.model_validate_json(doc)
        if book.owner != owner:
            raise UnauthorizedError()
        return book

    async def update_owned(self, book_id: str, owner: str, changes: Changes) -> Book:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        book = await self._watch_owned(pipe, book_id, owner)
                        fields = changes(book)
                        if fields.isbn != book.isbn:
                            holder = await pipe.hget(self.ISBN_KEY, fields.isbn)
                            if holder and holder != book_id:
                                raise DuplicateIsbnError(fields.isbn)

                        updated = _apply(book, fields)
                        pipe.multi()
                        pipe.set(self._book_key(book_id), updated.model_dump_json(by_alias=True))
                        if updated.isbn != book.isbn:
                            pipe.hdel(self.ISBN_KEY, book.isbn)
                            pipe.hset(self.ISBN_KEY, updated.isbn, book_id)
                        await pipe.execute()
                        return updated
                    except WatchError:
                        logger.debug("Book update conflicted, retrying", book_id=book_id)
        except RedisError as e:
            logger.error("Redis update failed", book_id=book_id, error=str(e))
            raise StoreError(f"Failed to update book: {e}") from e

    async def delete_owned(self, book_id: str, owner: str) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        book = await self._watch_owned(pipe, book_id, owner)
                        pipe.multi()
                        pipe.delete(self._book_key(book_id))
                        pipe.srem(self._owner_key(owner), book_id)
                        pipe.hdel(self.ISBN_KEY, book.isbn)
                        await pipe.execute()
                        return
                    except WatchError:
                        logger.debug("Book delete conflicted, retrying", book_id=book_id)
        except RedisError as e:
            logger.error("Redis delete failed", book_id=book_id, error=str(e))
            raise StoreError(f"Failed to delete book: {e}") from e

    async def clear(self) -> None:
        keys = [key async for key in self._client.scan_iter(match="book:*")]
        keys += [key async for key in self._client.scan_iter(match="books:*")]
        if keys:
            await self._client.delete(*keys)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()


# Singleton instance
_store: BookStore | None = None


def get_book_store() -> BookStore:
    """Get or create the book store singleton for the configured backend."""
    global _store
    if _store is None:
        settings = get_settings()
        if settings.store_backend == "redis":
            _store = RedisBookStore(settings.redis_url)
        else:
            _store = InMemoryBookStore()
        logger.info("Book store initialised", backend=settings.store_backend)
    return _store


def reset_book_store() -> None:
    """Drop the singleton so the next call builds a fresh store."""
    global _store
    _store = None
