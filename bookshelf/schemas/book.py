"""
Book Pydantic Schemas

Handles:
- ISBN validation
- Price validation
- Inline cover images (base64 data URIs) on JSON requests
- Pagination envelope for list responses
"""

import re
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def normalize_isbn(v: str | None) -> str | None:
    """
    Validate ISBN format and strip separators.

    Accepts:
    - ISBN-10: 10 characters, last can be X
    - ISBN-13: 13 digits

    Empty strings (e.g. blank form fields) become None.
    """
    if v is None:
        return v

    cleaned = re.sub(r"[-\s]", "", v).upper()
    if not cleaned:
        return None

    if len(cleaned) == 10:
        if not re.match(r"^\d{9}[\dX]$", cleaned):
            raise ValueError(
                "Invalid ISBN-10 format. Must be 10 characters: "
                "9 digits followed by a digit or 'X'"
            )
    elif len(cleaned) == 13:
        if not cleaned.isdigit():
            raise ValueError("Invalid ISBN-13 format. Must be exactly 13 digits")
    else:
        raise ValueError("ISBN must be either 10 or 13 characters (excluding hyphens)")

    return cleaned


def strip_required_text(v: str | None, label: str) -> str | None:
    if v is not None and not v.strip():
        raise ValueError(f"{label} cannot be empty or whitespace")
    return v.strip() if v else v


class BookBase(BaseModel):
    """Base schema with shared book fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["1984", "Pride and Prejudice"],
    )

    author: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Author name",
        examples=["George Orwell"],
    )

    isbn: str | None = Field(
        default=None,
        max_length=20,
        description="ISBN-10 or ISBN-13",
        examples=["978-0451524935"],
    )

    published_date: date | None = Field(
        default=None,
        description="Date of publication",
        examples=["1949-06-08"],
    )

    genre_id: int = Field(
        ...,
        ge=1,
        description="ID of an existing genre",
        examples=[1],
    )

    description: str | None = Field(
        default=None,
        max_length=5000,
        description="Book description or summary",
    )

    price: Decimal | None = Field(
        default=None,
        ge=0,
        le=Decimal("99999999.99"),
        decimal_places=2,
        description="Book price",
        examples=["12.99"],
    )

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return normalize_isbn(v)

    @field_validator("title")
    @classmethod
    def title_must_not_be_empty(cls, v: str) -> str:
        return strip_required_text(v, "Title")

    @field_validator("author")
    @classmethod
    def author_must_not_be_empty(cls, v: str) -> str:
        return strip_required_text(v, "Author")


class BookCreate(BookBase):
    """
    Schema for creating a new book.

    JSON requests may carry the cover inline as a data URI; multipart
    requests send it as a file part named ``cover_image`` instead.

    Example request body:
    {
        "title": "1984",
        "author": "George Orwell",
        "genre_id": 1,
        "cover_image": "data:image/png;base64,iVBORw0KGgo..."
    }
    """

    cover_image: str | None = Field(
        default=None,
        description="Inline cover image as a base64 data URI (JPEG, PNG or GIF)",
    )


# May be omitted on update, never set to null
NON_NULLABLE_UPDATE_FIELDS = ("title", "author", "genre_id")


class BookUpdate(BaseModel):
    """
    Schema for updating an existing book.

    All fields are optional; only the fields sent are changed. The cover
    is replaced only when a new one is supplied.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    author: str | None = Field(default=None, min_length=1, max_length=255)
    isbn: str | None = Field(default=None, max_length=20)
    published_date: date | None = None
    genre_id: int | None = Field(default=None, ge=1)
    description: str | None = Field(default=None, max_length=5000)
    price: Decimal | None = Field(
        default=None,
        ge=0,
        le=Decimal("99999999.99"),
        decimal_places=2,
    )
    cover_image: str | None = Field(
        default=None,
        description="New inline cover image as a base64 data URI",
    )

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return normalize_isbn(v)

    @field_validator("title")
    @classmethod
    def title_must_not_be_empty(cls, v: str | None) -> str | None:
        return strip_required_text(v, "Title")

    @field_validator("author")
    @classmethod
    def author_must_not_be_empty(cls, v: str | None) -> str | None:
        return strip_required_text(v, "Author")

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "BookUpdate":
        for field in NON_NULLABLE_UPDATE_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class BookResponse(BaseModel):
    """
    Schema for book responses.

    genre_name and creator_id are resolved from the book's genre and
    owner so clients need no extra lookups.
    """

    id: int = Field(..., description="Unique identifier")
    title: str
    author: str
    isbn: str | None = None
    published_date: date | None = None
    genre_id: int
    genre_name: str | None = Field(default=None, description="Name of the book's genre")
    user_id: int = Field(..., description="ID of the owning user")
    creator_id: str | None = Field(
        default=None,
        description="Login handle of the owning user",
    )
    description: str | None = None
    price: Decimal | None = None
    cover_image: str | None = Field(
        default=None,
        description="Stored cover file name, served under /uploads/books/",
    )
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "1984",
                "author": "George Orwell",
                "isbn": "9780451524935",
                "published_date": "1949-06-08",
                "genre_id": 1,
                "genre_name": "Fiction",
                "user_id": 1,
                "creator_id": "johndoe",
                "description": "A dystopian novel about totalitarianism",
                "price": "12.99",
                "cover_image": "cover-3f2a9c.png",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class BookDataResponse(BaseModel):
    """Envelope for single-book responses."""

    success: bool = True
    data: BookResponse


class BookListResponse(BaseModel):
    """
    Schema for paginated book list responses.

    - count: Total number of books matching the filters (all pages)
    - page / limit: The page that was returned
    - pages: Total number of pages
    """

    success: bool = True

    count: int = Field(..., ge=0, description="Total number of matching books")

    page: int = Field(..., ge=1, description="Current page number")

    limit: int = Field(..., ge=1, description="Number of items per page")

    pages: int = Field(..., ge=0, description="Total number of pages")

    data: list[BookResponse] = Field(..., description="Books on this page")
