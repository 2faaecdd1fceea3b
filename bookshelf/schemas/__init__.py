"""
Pydantic Schemas Package

This package contains Pydantic models for request/response validation.

Schema Naming Convention:
- XxxBase: Shared fields between create/update
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields allowed when updating
- XxxResponse: Fields returned in API responses
- XxxDataResponse: {"success": true, "data": XxxResponse} envelope
"""

from bookshelf.schemas.book import (
    BookBase,
    BookCreate,
    BookDataResponse,
    BookListResponse,
    BookResponse,
    BookUpdate,
)
from bookshelf.schemas.common import ErrorResponse, MessageResponse
from bookshelf.schemas.genre import (
    GenreBase,
    GenreCreate,
    GenreDataResponse,
    GenreResponse,
    GenreUpdate,
)
from bookshelf.schemas.user import (
    AuthResponse,
    AvatarResponse,
    AvatarUpdate,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    PasswordChange,
    ProfileResponse,
    ResetPasswordRequest,
    UserCreate,
    UserResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "MessageResponse",
    # Genre schemas
    "GenreBase",
    "GenreCreate",
    "GenreUpdate",
    "GenreResponse",
    "GenreDataResponse",
    # Book schemas
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookDataResponse",
    "BookListResponse",
    # User schemas
    "UserCreate",
    "UserResponse",
    "LoginRequest",
    "PasswordChange",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "AvatarUpdate",
    # Response envelopes
    "AuthResponse",
    "AvatarResponse",
    "ForgotPasswordResponse",
    "ProfileResponse",
]
