"""Book schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BookFields(BaseModel):
    """The editable fields of a book, as sent on create and update.

    Unknown keys (including ``id`` and ``owner``) are ignored.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "title": "Dune",
                    "author": "Frank Herbert",
                    "genre": "SciFi",
                    "yearOfPublishing": 1965,
                    "isbn": "9780441013593",
                }
            ]
        },
    )

    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    genre: str = Field(..., min_length=1, description="Book genre")
    year_of_publishing: int = Field(
        ...,
        gt=0,
        alias="yearOfPublishing",
        description="Year the book was published",
    )
    isbn: str = Field(..., min_length=1, description="ISBN, unique across the catalog")


class BookChanges(BaseModel):
    """Partial update: only the fields that are sent get replaced."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    genre: Optional[str] = Field(default=None, min_length=1)
    year_of_publishing: Optional[int] = Field(default=None, gt=0, alias="yearOfPublishing")
    isbn: Optional[str] = Field(default=None, min_length=1)


class Book(BookFields):
    """A stored book record."""

    id: str = Field(description="Unique book identifier")
    owner: str = Field(description="Id of the user who created the book")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    msg: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    detail: str
    code: str
