"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Provided here:
- DbSession: per-request database session
- CurrentUser: the request gate for protected routes
- AuthServiceDep / CatalogServiceDep: services bound to the request's session
- BookListParams: query parameters of GET /api/books
- BookCreatePayload / BookUpdatePayload: book bodies sent as JSON or
  multipart form data, with the cover image decoded and validated
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from bookshelf.config import get_settings
from bookshelf.database import get_db
from bookshelf.exceptions import InvalidToken, Unauthenticated
from bookshelf.models import User
from bookshelf.schemas.book import BookCreate, BookUpdate
from bookshelf.services.auth import AuthService
from bookshelf.services.book_query import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, BookQuery
from bookshelf.services.catalog import CatalogService
from bookshelf.services.images import (
    COVER_TYPES,
    CoverStorage,
    ImagePayload,
    decode_data_uri,
    validate_upload,
)
from bookshelf.services.security import verify_token

logger = logging.getLogger(__name__)
settings = get_settings()

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def get_books(db: Session = Depends(get_db)):
#
# You can write:
#   def get_books(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Request Gate (Bearer Authentication)
# =============================================================================
# auto_error=False: a missing or non-Bearer header reaches get_auth_context
# as None, so every failure is reported as the same Unauthenticated error.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved by the request gate."""

    user_id: int


def get_auth_context(
    db: DbSession,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext:
    """
    Authenticate the request from its ``Authorization: Bearer`` header.

    1. Extract the bearer token
    2. Verify signature and expiry
    3. Check that the user still exists

    Only identity is established here; ownership checks belong to the
    catalog service.

    Raises:
        Unauthenticated: Missing/malformed header, bad or expired token,
            or a token for a deleted user
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authorized, no token")

    try:
        user_id = verify_token(credentials.credentials)
    except InvalidToken as e:
        raise Unauthenticated("Not authorized, token failed") from e

    exists = db.execute(select(User.id).where(User.id == user_id)).first()
    if exists is None:
        logger.warning(f"Token presented for missing user {user_id}")
        raise Unauthenticated("Not authorized, user not found")

    return AuthContext(user_id=user_id)


CurrentUser = Annotated[AuthContext, Depends(get_auth_context)]


# =============================================================================
# Services
# =============================================================================
def get_auth_service(db: DbSession) -> AuthService:
    return AuthService(db)


def get_catalog_service(request: Request, db: DbSession) -> CatalogService:
    """
    Catalog service for this request.

    The book cache is created once at startup and lives on app.state;
    without it (e.g. lifespan not run) the service uses a disabled cache.
    """
    return CatalogService(
        db,
        storage=CoverStorage(settings.upload_dir),
        cache=getattr(request.app.state, "book_cache", None),
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


# =============================================================================
# Book Listing Parameters
# =============================================================================
class BookListParams:
    """
    Search, filter, sort and pagination parameters for GET /api/books.

    Usage:
        GET /api/books?search=gatsby&genre=fiction&sortBy=published_date&sortOrder=desc&page=2&limit=10

    sortBy/sortOrder are validated by the query builder against an
    allow-list (InvalidSort, 400).
    """

    def __init__(
        self,
        search: str | None = Query(
            default=None,
            max_length=100,
            description="Case-insensitive substring of title or author",
            examples=["gatsby"],
        ),
        author: str | None = Query(
            default=None,
            max_length=100,
            description="Filter by author (partial match, case-insensitive)",
        ),
        genre: str | None = Query(
            default=None,
            max_length=100,
            description="Filter by genre name (partial match, case-insensitive)",
        ),
        user_id: int | None = Query(
            default=None,
            ge=1,
            description="Only books created by this user",
        ),
        sort_by: str = Query(
            default=DEFAULT_SORT_BY,
            alias="sortBy",
            description="title, author, isbn, published_date, price, created_at or updated_at",
        ),
        sort_order: str = Query(
            default=DEFAULT_SORT_ORDER,
            alias="sortOrder",
            description="asc or desc",
        ),
        page: int = Query(
            default=1,
            ge=1,
            description="Page number (1-indexed)",
        ),
        limit: int = Query(
            default=settings.default_page_size,
            ge=1,
            le=settings.max_page_size,
            description=f"Books per page (max {settings.max_page_size})",
        ),
    ) -> None:
        self.search = search
        self.author = author
        self.genre = genre
        self.user_id = user_id
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.page = page
        self.limit = limit

    def to_query(self) -> BookQuery:
        return BookQuery(
            search=self.search,
            author=self.author,
            genre=self.genre,
            user_id=self.user_id,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            page=self.page,
            limit=self.limit,
        )


BookFilters = Annotated[BookListParams, Depends()]


# =============================================================================
# Book Bodies (JSON or multipart)
# =============================================================================
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _body_error(message: str) -> RequestValidationError:
    return RequestValidationError(
        [{"type": "value_error", "loc": ("body",), "msg": message}]
    )


async def _read_fields(request: Request) -> tuple[dict[str, Any], ImagePayload | None]:
    """
    Collect the book fields of a request and any uploaded cover file.

    Form fields sent empty are treated as not sent.
    """
    content_type = request.headers.get("content-type", "").lower()

    if not content_type.startswith(FORM_CONTENT_TYPES):
        try:
            body = await request.json()
        except ValueError as e:
            raise _body_error("Request body must be valid JSON") from e
        if not isinstance(body, dict):
            raise _body_error("Request body must be a JSON object")
        return body, None

    form = await request.form(max_part_size=settings.max_request_bytes)
    fields: dict[str, Any] = {}
    upload = None

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == "cover_image" and value.filename:
                upload = validate_upload(
                    await value.read(),
                    value.content_type,
                    settings.max_cover_bytes,
                )
        elif value != "":
            fields[key] = value

    return fields, upload


def _validate_body(schema: type[BaseModel], fields: dict[str, Any]) -> Any:
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        for error in errors:
            error["loc"] = ("body", *error["loc"])
        raise RequestValidationError(errors) from e


def _inline_cover(data: BookCreate | BookUpdate) -> ImagePayload | None:
    if not data.cover_image:
        return None
    return decode_data_uri(data.cover_image, COVER_TYPES, settings.max_cover_bytes)


async def get_book_create_payload(request: Request) -> tuple[BookCreate, ImagePayload | None]:
    """
    Parse a new book from JSON or multipart form data.

    The cover comes either as a ``cover_image`` file part or as a
    ``cover_image`` data URI; an uploaded file wins if both are sent.
    """
    fields, upload = await _read_fields(request)
    data = _validate_body(BookCreate, fields)
    return data, upload or _inline_cover(data)


async def get_book_update_payload(request: Request) -> tuple[BookUpdate, ImagePayload | None]:
    fields, upload = await _read_fields(request)
    data = _validate_body(BookUpdate, fields)
    return data, upload or _inline_cover(data)


BookCreatePayload = Annotated[
    tuple[BookCreate, ImagePayload | None], Depends(get_book_create_payload)
]
BookUpdatePayload = Annotated[
    tuple[BookUpdate, ImagePayload | None], Depends(get_book_update_payload)
]
