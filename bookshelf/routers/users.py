"""
Users Router

Account endpoints:
- Registration and login (returns a bearer token)
- Forgot / reset password (one-time reset token)
- Change password, avatar and profile (bearer token required)

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- Credential endpoints use the strict auth rate limit
"""

from fastapi import APIRouter, Request, status

from bookshelf.config import get_settings
from bookshelf.dependencies import AuthServiceDep, CurrentUser
from bookshelf.schemas import (
    AuthResponse,
    AvatarResponse,
    AvatarUpdate,
    BookResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MessageResponse,
    PasswordChange,
    ProfileResponse,
    ResetPasswordRequest,
    UserCreate,
    UserResponse,
)
from bookshelf.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or duplicate account"},
        429: {"description": "Rate limit exceeded"},
    },
)


# -------------------------------------------------------------------------
# Registration and Login
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a new account and receive a bearer token.

    **Password Requirements:**
    - 8-128 characters
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 number

    **Username Requirements:**
    - 3-50 characters
    - Must start with a letter
    - Only letters, numbers, and underscores
    """,
)
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    user_data: UserCreate,
    auth: AuthServiceDep,
) -> AuthResponse:
    user, token = auth.register(user_data)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Authenticate with a username or email address and a password.",
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    credentials: LoginRequest,
    auth: AuthServiceDep,
) -> AuthResponse:
    user, token = auth.login(credentials.identifier, credentials.password)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


# -------------------------------------------------------------------------
# Password Reset
# -------------------------------------------------------------------------
@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    summary="Request a password reset token",
    description="""
    Issue a one-time reset token valid for 10 minutes.

    The token is returned in the response body; delivering it to the
    user (e.g. by email) is up to the client.
    """,
    responses={404: {"model": ErrorResponse, "description": "No user with that email"}},
)
@limiter.limit(settings.rate_limit_auth)
def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    auth: AuthServiceDep,
) -> ForgotPasswordResponse:
    issued = auth.forgot_password(payload.email)
    return ForgotPasswordResponse(reset_token=issued.plain_token)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with a reset token",
)
@limiter.limit(settings.rate_limit_auth)
def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    auth: AuthServiceDep,
) -> MessageResponse:
    auth.reset_password(payload.token, payload.password)
    return MessageResponse(message="Password reset successful")


# -------------------------------------------------------------------------
# Authenticated Account Endpoints
# -------------------------------------------------------------------------
@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    responses={401: {"model": ErrorResponse, "description": "Wrong current password"}},
)
@limiter.limit(settings.rate_limit_auth)
def change_password(
    request: Request,
    payload: PasswordChange,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> MessageResponse:
    auth.change_password(current_user.user_id, payload.current_password, payload.new_password)
    return MessageResponse(message="Password updated successfully")


@router.put(
    "/avatar",
    response_model=AvatarResponse,
    summary="Update avatar",
    description="""
    Set the avatar to an image URL (http/https, ending in .jpg, .jpeg,
    .png, .gif or .webp) or to an inline base64 data URI (max 10MB).
    """,
    responses={413: {"model": ErrorResponse, "description": "Inline image too large"}},
)
@limiter.limit(settings.rate_limit_write)
def update_avatar(
    request: Request,
    payload: AvatarUpdate,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> AvatarResponse:
    user = auth.update_avatar(current_user.user_id, payload.avatar_url)
    return AvatarResponse(user=UserResponse.model_validate(user))


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Current user's profile and books",
)
@limiter.limit(settings.rate_limit_default)
def get_profile(
    request: Request,
    current_user: CurrentUser,
    auth: AuthServiceDep,
) -> ProfileResponse:
    user, books = auth.get_profile(current_user.user_id)
    return ProfileResponse(
        user=UserResponse.model_validate(user),
        books=[BookResponse.model_validate(book) for book in books],
    )
