"""
Books Router

CRUD endpoints for books.

- Listing supports search, filters, sorting and pagination
- Reads are public; writes need a bearer token
- Only the user who created a book may update or delete it
- Create and update accept JSON (cover as a base64 data URI) or
  multipart form data (cover as a file part named ``cover_image``)
"""

import math

from fastapi import APIRouter, Request, status

from bookshelf.config import get_settings
from bookshelf.dependencies import (
    BookCreatePayload,
    BookFilters,
    BookUpdatePayload,
    CatalogServiceDep,
    CurrentUser,
)
from bookshelf.schemas import (
    BookCreate,
    BookDataResponse,
    BookListResponse,
    BookResponse,
    ErrorResponse,
    MessageResponse,
)
from bookshelf.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)

# Documents the body parsed by the payload dependencies
BOOK_BODY_DOC = {
    "requestBody": {
        "content": {
            "application/json": {
                "schema": BookCreate.model_json_schema(),
            },
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "author": {"type": "string"},
                        "isbn": {"type": "string"},
                        "published_date": {"type": "string", "format": "date"},
                        "genre_id": {"type": "integer"},
                        "description": {"type": "string"},
                        "price": {"type": "string"},
                        "cover_image": {"type": "string", "format": "binary"},
                    },
                },
            },
        },
    },
}


@router.get(
    "",
    response_model=BookListResponse,
    summary="List books",
    description="""
    Paginated list of books.

    - search: matches title or author (case-insensitive substring)
    - author / genre: substring filters
    - user_id: only books created by that user
    - sortBy / sortOrder: e.g. sortBy=published_date&sortOrder=desc
    - page / limit: 1-indexed page number and page size
    """,
)
@limiter.limit(settings.rate_limit_default)
def list_books(
    request: Request,
    filters: BookFilters,
    catalog: CatalogServiceDep,
) -> BookListResponse:
    books, total = catalog.list_books(filters.to_query())

    return BookListResponse(
        count=total,
        page=filters.page,
        limit=filters.limit,
        pages=math.ceil(total / filters.limit) if total > 0 else 0,
        data=[BookResponse.model_validate(book) for book in books],
    )


@router.get(
    "/{book_id}",
    response_model=BookDataResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(
    request: Request,
    book_id: int,
    catalog: CatalogServiceDep,
) -> BookDataResponse:
    return BookDataResponse(data=catalog.get_book(book_id))


@router.post(
    "",
    response_model=BookDataResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
    description="Add a book to the catalogue. The caller becomes its owner.",
    openapi_extra=BOOK_BODY_DOC,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or genre"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        413: {"model": ErrorResponse, "description": "Cover image too large"},
    },
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    current_user: CurrentUser,
    payload: BookCreatePayload,
    catalog: CatalogServiceDep,
) -> BookDataResponse:
    data, cover = payload
    book = catalog.create_book(current_user.user_id, data, cover)
    return BookDataResponse(data=BookResponse.model_validate(book))


@router.put(
    "/{book_id}",
    response_model=BookDataResponse,
    summary="Update a book",
    description="Change any subset of fields. The cover is replaced only if a new one is sent.",
    openapi_extra=BOOK_BODY_DOC,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not the owner of the book"},
    },
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: int,
    current_user: CurrentUser,
    payload: BookUpdatePayload,
    catalog: CatalogServiceDep,
) -> BookDataResponse:
    data, cover = payload
    book = catalog.update_book(current_user.user_id, book_id, data, cover)
    return BookDataResponse(data=BookResponse.model_validate(book))


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    summary="Delete a book",
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not the owner of the book"},
    },
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: int,
    current_user: CurrentUser,
    catalog: CatalogServiceDep,
) -> MessageResponse:
    catalog.delete_book(current_user.user_id, book_id)
    return MessageResponse(message="Book deleted successfully")
