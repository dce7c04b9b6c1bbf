"""Tests for BookService over the in-memory store."""

import pytest

from src.core.auth import SessionContext
from src.core.books.service import BookService
from src.core.books.store import InMemoryBookStore
from src.core.errors import (
    DuplicateIsbnError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

ALICE = SessionContext(user_id="alice-id", username="alice")
BOB = SessionContext(user_id="bob-id", username="bob")

DUNE = {
    "title": "Dune",
    "author": "Herbert",
    "genre": "SciFi",
    "yearOfPublishing": 1965,
    "isbn": "111",
}


@pytest.fixture
def service():
    return BookService(InMemoryBookStore())


@pytest.mark.asyncio
async def test_create_sets_owner_and_id(service):
    book = await service.create(ALICE, DUNE)
    assert book.owner == ALICE.user_id
    assert book.id
    assert book.title == "Dune"
    assert book.year_of_publishing == 1965
    assert book.created_at == book.updated_at


@pytest.mark.asyncio
async def test_list_only_returns_own_books(service):
    book = await service.create(ALICE, DUNE)
    await service.create(BOB, {**DUNE, "isbn": "222"})

    assert [b.id for b in await service.list(ALICE)] == [book.id]
    assert all(b.owner == BOB.user_id for b in await service.list(BOB))


@pytest.mark.asyncio
async def test_create_validation(service):
    with pytest.raises(ValidationError):
        await service.create(ALICE, {**DUNE, "title": ""})
    with pytest.raises(ValidationError):
        await service.create(ALICE, {**DUNE, "yearOfPublishing": 0})
    with pytest.raises(ValidationError):
        await service.create(ALICE, {"title": "Dune"})
    assert await service.list(ALICE) == []


@pytest.mark.asyncio
async def test_duplicate_isbn_leaves_store_unchanged(service):
    await service.create(ALICE, DUNE)
    with pytest.raises(DuplicateIsbnError):
        await service.create(BOB, {**DUNE, "title": "Copy"})

    assert len(await service.list(ALICE)) == 1
    assert await service.list(BOB) == []


@pytest.mark.asyncio
async def test_update_and_delete_on_unknown_id_are_not_found(service):
    # NotFound wins even for a caller that owns nothing
    with pytest.raises(NotFoundError):
        await service.update(BOB, "missing", DUNE)
    with pytest.raises(NotFoundError):
        await service.delete(BOB, "missing")


@pytest.mark.asyncio
async def test_foreign_update_is_unauthorized_and_writes_nothing(service):
    book = await service.create(ALICE, DUNE)

    with pytest.raises(UnauthorizedError):
        await service.update(BOB, book.id, {**DUNE, "title": "Mine now"})

    (stored,) = await service.list(ALICE)
    assert stored.title == "Dune"
    assert stored.updated_at == book.updated_at


@pytest.mark.asyncio
async def test_foreign_update_unauthorized_even_with_invalid_isbn_clash(service):
    book = await service.create(ALICE, DUNE)
    await service.create(BOB, {**DUNE, "isbn": "222"})

    # ownership is checked before the ISBN clash
    with pytest.raises(UnauthorizedError):
        await service.update(BOB, book.id, {**DUNE, "isbn": "222"})


@pytest.mark.asyncio
async def test_foreign_delete_is_unauthorized(service):
    book = await service.create(ALICE, DUNE)
    with pytest.raises(UnauthorizedError):
        await service.delete(BOB, book.id)
    assert len(await service.list(ALICE)) == 1


@pytest.mark.asyncio
async def test_update_keeps_id_owner_and_created_at(service):
    book = await service.create(ALICE, DUNE)
    updated = await service.update(
        ALICE, book.id, {**DUNE, "title": "Dune II", "id": "x", "owner": BOB.user_id}
    )
    assert updated.id == book.id
    assert updated.owner == ALICE.user_id
    assert updated.created_at == book.created_at
    assert updated.title == "Dune II"


@pytest.mark.asyncio
async def test_update_frees_old_isbn(service):
    book = await service.create(ALICE, DUNE)
    await service.update(ALICE, book.id, {**DUNE, "isbn": "999"})

    # the old ISBN is free again, the new one is taken
    await service.create(ALICE, {**DUNE, "title": "Second copy"})
    with pytest.raises(DuplicateIsbnError):
        await service.create(ALICE, {**DUNE, "isbn": "999"})


@pytest.mark.asyncio
async def test_delete_twice(service):
    book = await service.create(ALICE, DUNE)
    await service.delete(ALICE, book.id)
    with pytest.raises(NotFoundError):
        await service.delete(ALICE, book.id)


@pytest.mark.asyncio
async def test_store_returns_copies(service):
    book = await service.create(ALICE, DUNE)
    book.title = "Mutated locally"
    (stored,) = await service.list(ALICE)
    assert stored.title == "Dune"


@pytest.mark.asyncio
async def test_foreign_update_with_invalid_payload_is_unauthorized(service):
    book = await service.create(ALICE, DUNE)
    with pytest.raises(UnauthorizedError):
        await service.update(BOB, book.id, {"title": ""})


@pytest.mark.asyncio
async def test_unknown_id_with_invalid_payload_is_not_found(service):
    with pytest.raises(NotFoundError):
        await service.update(ALICE, "missing", {"title": ""})
    with pytest.raises(NotFoundError):
        await service.update(ALICE, "missing", "not a mapping")


@pytest.mark.asyncio
async def test_partial_update_merges_over_stored_fields(service):
    book = await service.create(ALICE, DUNE)
    updated = await service.update(ALICE, book.id, {"title": "Dune Messiah"})

    assert updated.title == "Dune Messiah"
    assert updated.author == book.author
    assert updated.genre == book.genre
    assert updated.year_of_publishing == book.year_of_publishing
    assert updated.isbn == book.isbn


@pytest.mark.asyncio
async def test_own_update_with_invalid_payload_writes_nothing(service):
    book = await service.create(ALICE, DUNE)
    with pytest.raises(ValidationError):
        await service.update(ALICE, book.id, {"yearOfPublishing": -1})
    with pytest.raises(ValidationError):
        await service.update(ALICE, book.id, ["title"])

    (stored,) = await service.list(ALICE)
    assert stored == book
