"""
User Pydantic Schemas

These schemas define the shape of data for user and authentication
operations.

Schemas:
- UserCreate: Registration data (login handle, email, password twice)
- LoginRequest: Identifier (handle or email) plus password
- PasswordChange / ForgotPasswordRequest / ResetPasswordRequest
- AvatarUpdate: Avatar URL or inline data URI
- UserResponse: Public user projection (never exposes the password hash)
- AuthResponse / ProfileResponse / AvatarResponse: Response envelopes

The original clients sent the login handle as ``user_id``; that name is
still accepted as an alias.
"""

import re
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from bookshelf.schemas.book import BookResponse


def check_password_strength(v: str) -> str:
    """
    Validate password strength.

    Requirements:
    - At least 8 characters (enforced by min_length)
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 number
    """
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one number")
    return v


class UserCreate(BaseModel):
    """
    Schema for user registration.

    The confirm_password comparison is done by the auth service so the
    mismatch is reported as its own error kind.
    """

    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        validation_alias=AliasChoices("username", "user_id"),
        description="Unique login handle (3-50 characters, alphanumeric and underscores)",
        examples=["johndoe", "jane_doe123"],
    )

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["john@example.com"],
    )

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 chars, must include uppercase, lowercase and number)",
        examples=["SecurePass123"],
    )

    confirm_password: str = Field(
        ...,
        max_length=128,
        description="Must equal password",
    )

    @field_validator("username")
    @classmethod
    def username_must_be_valid(cls, v: str) -> str:
        """
        Validate username format.

        Rules:
        - Only alphanumeric and underscores
        - Must start with a letter
        """
        if not re.match(r"^[a-zA-Z][a-zA-Z0-9_]*$", v):
            raise ValueError(
                "Username must start with a letter and contain only "
                "letters, numbers, and underscores"
            )
        return v.lower()

    @field_validator("email")
    @classmethod
    def email_to_lowercase(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(BaseModel):
    """Login with either the login handle or the email address."""

    identifier: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("identifier", "user_id", "email"),
        description="Login handle or email address",
        examples=["johndoe", "john@example.com"],
    )

    password: str = Field(..., min_length=1, max_length=128)


class PasswordChange(BaseModel):
    """Schema for password change request."""

    current_password: str = Field(
        ...,
        min_length=1,
        description="Current password for verification",
    )

    new_password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password",
    )

    @field_validator("new_password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return check_password_strength(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def email_to_lowercase(cls, v: str) -> str:
        return v.lower()


class ResetPasswordRequest(BaseModel):
    """Plain reset token (as delivered to the user) plus the new password."""

    token: str = Field(..., min_length=1, max_length=128)

    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return check_password_strength(v)


class AvatarUpdate(BaseModel):
    avatar_url: str = Field(
        ...,
        min_length=1,
        description="http(s) image URL or data:image/...;base64,... payload",
    )


class UserResponse(BaseModel):
    """
    Public user projection.

    SECURITY: Never includes the password hash or reset token fields.
    """

    id: int = Field(..., description="Unique user identifier", examples=[1, 42])
    username: str = Field(..., description="Login handle")
    email: EmailStr = Field(..., description="User's email address")
    avatar_url: str | None = Field(default=None, description="Avatar URL or data URI")
    created_at: datetime = Field(..., description="When the user registered")
    updated_at: datetime = Field(..., description="When the user was last updated")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "username": "johndoe",
                "email": "john@example.com",
                "avatar_url": None,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class AuthResponse(BaseModel):
    """Returned by register and login."""

    success: bool = True
    token: str = Field(..., description="Bearer token for the Authorization header")
    user: UserResponse


class ForgotPasswordResponse(BaseModel):
    success: bool = True
    message: str = "Password reset token generated"
    reset_token: str = Field(
        ...,
        description="Plain reset token; deliver out of band (e.g. email)",
    )


class AvatarResponse(BaseModel):
    success: bool = True
    user: UserResponse


class ProfileResponse(BaseModel):
    """The authenticated user and the books they created, newest first."""

    success: bool = True
    user: UserResponse
    books: list[BookResponse]
