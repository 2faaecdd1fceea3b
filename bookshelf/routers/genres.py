"""
Genres Router

CRUD endpoints for genres. Reads are public; writes need a bearer token.

A genre still used by any book cannot be deleted.
"""

from fastapi import APIRouter, Request, status

from bookshelf.config import get_settings
from bookshelf.dependencies import CatalogServiceDep, CurrentUser
from bookshelf.schemas import (
    ErrorResponse,
    GenreCreate,
    GenreDataResponse,
    GenreResponse,
    GenreUpdate,
    MessageResponse,
)
from bookshelf.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/genres",
    tags=["Genres"],
    responses={
        404: {"model": ErrorResponse, "description": "Genre not found"},
    },
)


@router.get(
    "",
    response_model=list[GenreResponse],
    summary="List all genres",
    description="All genres sorted alphabetically by name.",
)
@limiter.limit(settings.rate_limit_default)
def list_genres(
    request: Request,
    catalog: CatalogServiceDep,
) -> list[GenreResponse]:
    return [GenreResponse.model_validate(genre) for genre in catalog.list_genres()]


@router.get(
    "/{genre_id}",
    response_model=GenreDataResponse,
    summary="Get a genre by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_genre(
    request: Request,
    genre_id: int,
    catalog: CatalogServiceDep,
) -> GenreDataResponse:
    return GenreDataResponse(data=GenreResponse.model_validate(catalog.get_genre(genre_id)))


@router.post(
    "",
    response_model=GenreDataResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a genre",
    responses={400: {"model": ErrorResponse, "description": "Genre name already exists"}},
)
@limiter.limit(settings.rate_limit_write)
def create_genre(
    request: Request,
    current_user: CurrentUser,
    genre_data: GenreCreate,
    catalog: CatalogServiceDep,
) -> GenreDataResponse:
    genre = catalog.create_genre(genre_data.name)
    return GenreDataResponse(data=GenreResponse.model_validate(genre))


@router.put(
    "/{genre_id}",
    response_model=GenreDataResponse,
    summary="Rename a genre",
    responses={400: {"model": ErrorResponse, "description": "Genre name already exists"}},
)
@limiter.limit(settings.rate_limit_write)
def update_genre(
    request: Request,
    genre_id: int,
    current_user: CurrentUser,
    genre_data: GenreUpdate,
    catalog: CatalogServiceDep,
) -> GenreDataResponse:
    genre = catalog.update_genre(genre_id, genre_data.name)
    return GenreDataResponse(data=GenreResponse.model_validate(genre))


@router.delete(
    "/{genre_id}",
    response_model=MessageResponse,
    summary="Delete a genre",
    responses={400: {"model": ErrorResponse, "description": "Genre is still used by books"}},
)
@limiter.limit(settings.rate_limit_write)
def delete_genre(
    request: Request,
    genre_id: int,
    current_user: CurrentUser,
    catalog: CatalogServiceDep,
) -> MessageResponse:
    catalog.delete_genre(genre_id)
    return MessageResponse(message="Genre deleted successfully")
