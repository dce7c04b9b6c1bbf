"""Client-side state for the book list screen.

``BookClientState`` mirrors the signed-in user's books and drives the three
transient interactions of the screen: adding a book, editing a row in place
and deleting a row.

The list is never patched locally. After every successful write the whole
list is fetched again (``load``), so the server stays the single source of
truth and server-generated ids are picked up. On failure nothing the user
typed is thrown away; drafts are only discarded on success or cancel.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

import structlog

from src.api.schemas.books import Book, BookFields
from src.client.api import ApiError, BookApiClient, SessionExpiredError

logger = structlog.get_logger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."


def _current_year() -> int:
    return date.today().year


def _to_year(value: Union[int, str]) -> int:
    if isinstance(value, str):
        value = value.strip()
        return int(value) if value.isdigit() else 0
    return value


@dataclass
class BookDraft:
    """Editable copy of a book's fields, independent of the list."""

    title: str = ""
    author: str = ""
    genre: str = ""
    year_of_publishing: int = field(default_factory=_current_year)
    isbn: str = ""

    @classmethod
    def from_book(cls, book: Book) -> "BookDraft":
        return cls(
            title=book.title,
            author=book.author,
            genre=book.genre,
            year_of_publishing=book.year_of_publishing,
            isbn=book.isbn,
        )

    def is_valid(self) -> bool:
        """Every text field non-blank and the year a positive integer."""
        texts = (self.title, self.author, self.genre, self.isbn)
        if any(not value.strip() for value in texts):
            return False
        year = self.year_of_publishing
        return isinstance(year, int) and not isinstance(year, bool) and year > 0

    def to_fields(self) -> BookFields:
        return BookFields(
            title=self.title,
            author=self.author,
            genre=self.genre,
            year_of_publishing=self.year_of_publishing,
            isbn=self.isbn,
        )

    def update(self, **changes: Union[str, int]) -> None:
        for name, value in changes.items():
            if not hasattr(self, name):
                raise AttributeError(f"BookDraft has no field '{name}'")
            if name == "year_of_publishing":
                value = _to_year(value)
            setattr(self, name, value)


class BookClientState:
    """In-memory mirror of the user's books plus per-row UI state.

    At most one row is in edit mode. Add, save and delete each guard only
    against a second submission of themselves, so deletes of several rows and
    saves of others may all be in flight together. Overlapping loads are
    numbered and only the most recently started one updates the list.
    """

    def __init__(
        self,
        api: BookApiClient,
        on_session_expired: Optional[Callable[[], None]] = None,
    ) -> None:
        self._api = api
        self._on_session_expired = on_session_expired

        self.books: list[Book] = []
        self._load_seq = 0
        self._loads_in_flight = 0
        self.error: Optional[str] = None
        self.session_expired = False

        self.new_book = BookDraft()
        self.is_adding = False

        self.editing_id: Optional[str] = None
        self.edit_draft: Optional[BookDraft] = None
        self.saving_ids: set[str] = set()

        # insertion ordered, so the newest delete is last
        self._deleting: dict[str, None] = {}

    # --- helpers ---

    @property
    def is_loading(self) -> bool:
        return self._loads_in_flight > 0

    @property
    def deleting_ids(self) -> set[str]:
        return set(self._deleting)

    @property
    def pending_delete_id(self) -> Optional[str]:
        """The most recently started delete still in flight, if any."""
        return next(reversed(self._deleting), None)

    @property
    def can_add(self) -> bool:
        return self.new_book.is_valid() and not self.is_adding

    @property
    def can_commit(self) -> bool:
        return (
            self.editing_id is not None
            and self.edit_draft is not None
            and self.edit_draft.is_valid()
            and self.editing_id not in self.saving_ids
        )

    def is_saving(self, book_id: str) -> bool:
        return book_id in self.saving_ids

    def is_deleting(self, book_id: str) -> bool:
        return book_id in self._deleting

    def update_new_book(self, **changes: Union[str, int]) -> None:
        self.new_book.update(**changes)

    def update_edit_draft(self, **changes: Union[str, int]) -> None:
        if self.edit_draft is None:
            raise RuntimeError("No row is being edited")
        self.edit_draft.update(**changes)

    def _find(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.books if b.id == book_id), None)

    def _session_expired(self) -> None:
        logger.info("Session expired, returning to login")
        self.session_expired = True
        self.error = SESSION_EXPIRED_MESSAGE
        if self._on_session_expired is not None:
            self._on_session_expired()

    @staticmethod
    def _failure_message(action: str, error: ApiError) -> str:
        if error.code == "duplicate_isbn":
            return f"Failed to {action} book. A book with this ISBN already exists."
        return f"Failed to {action} book. Please try again."

    # --- operations ---

    async def load(self) -> bool:
        """Replace the list with the server's. Keeps the old list on failure.

        A load that finishes after a newer one was started is discarded, so
        an older snapshot never replaces a newer one.
        """
        self._load_seq += 1
        seq = self._load_seq
        self._loads_in_flight += 1
        self.error = None
        try:
            books = await self._api.list_books()
        except SessionExpiredError:
            self._session_expired()
            return False
        except ApiError as e:
            logger.warning("Failed to fetch books", error=e.message)
            if seq == self._load_seq:
                self.error = "Failed to fetch books. Please try again."
            return False
        finally:
            self._loads_in_flight -= 1

        if seq != self._load_seq:
            logger.debug("Discarding stale book list", seq=seq, latest=self._load_seq)
            return False
        self.books = books
        return True

    async def add(self) -> bool:
        """Submit the new-book draft, then reload the list."""
        if self.is_adding:
            return False
        if not self.new_book.is_valid():
            self.error = "Please fill in every field with a valid value."
            return False

        self.error = None
        self.is_adding = True
        try:
            await self._api.create_book(self.new_book.to_fields())
        except SessionExpiredError:
            self._session_expired()
            return False
        except ApiError as e:
            logger.warning("Failed to add book", error=e.message, code=e.code)
            self.error = self._failure_message("add", e)
            return False
        finally:
            self.is_adding = False

        self.new_book = BookDraft()
        await self.load()
        return True

    def begin_edit(self, book_id: str) -> bool:
        """Put a row in edit mode, silently dropping any other row's draft."""
        book = self._find(book_id)
        if book is None:
            return False
        self.editing_id = book_id
        self.edit_draft = BookDraft.from_book(book)
        return True

    def cancel_edit(self) -> None:
        """Leave edit mode and discard the draft. No request is made."""
        self.editing_id = None
        self.edit_draft = None

    async def commit_edit(self) -> bool:
        """Save the edit draft, then reload the list.

        On failure the row stays in edit mode with the draft intact.
        """
        book_id = self.editing_id
        draft = self.edit_draft
        if book_id is None or draft is None or book_id in self.saving_ids:
            return False
        if not draft.is_valid():
            self.error = "Please fill in every field with a valid value."
            return False

        self.error = None
        self.saving_ids.add(book_id)
        try:
            await self._api.update_book(book_id, draft.to_fields())
        except SessionExpiredError:
            self._session_expired()
            return False
        except ApiError as e:
            logger.warning("Failed to update book", book_id=book_id, error=e.message, code=e.code)
            self.error = self._failure_message("update", e)
            return False
        finally:
            self.saving_ids.discard(book_id)

        # another row may have entered edit mode while this save was in flight
        if self.editing_id == book_id:
            self.cancel_edit()
        await self.load()
        return True

    async def delete(self, book_id: str) -> bool:
        """Delete a row, then reload the list.

        On failure the list is left as it is, which still matches the server.
        A second delete of a row already being deleted is ignored.
        """
        if book_id in self._deleting:
            return False

        self.error = None
        self._deleting[book_id] = None
        try:
            await self._api.delete_book(book_id)
        except SessionExpiredError:
            self._session_expired()
            return False
        except ApiError as e:
            logger.warning("Failed to delete book", book_id=book_id, error=e.message)
            self.error = "Failed to delete book. Please try again."
            return False
        finally:
            self._deleting.pop(book_id, None)

        if self.editing_id == book_id:
            self.cancel_edit()
        await self.load()
        return True
