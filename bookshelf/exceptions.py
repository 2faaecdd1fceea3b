"""
Domain Exceptions

Services raise these instead of HTTPException so that business logic
stays independent of the HTTP layer. Each class carries:

- status_code: HTTP status the handler boundary maps it to
- kind: stable machine-readable identifier returned to clients

The handlers registered in bookshelf.main turn any BookshelfError into

    {"success": false, "error": "<kind>", "detail": "<message>"}

Hierarchy:
    BookshelfError
    ├── ValidationError (400)
    ├── AuthenticationError (401)
    ├── AuthorizationError (403)
    ├── NotFoundError (404)
    ├── ConflictError (400)
    └── PayloadTooLargeError (413)
"""


class BookshelfError(Exception):
    """Base class for every error the API reports deliberately."""

    status_code: int = 500
    kind: str = "internal_error"
    default_message: str = "An internal error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# =============================================================================
# 400 - Validation
# =============================================================================
class ValidationError(BookshelfError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid request data"


class PasswordMismatch(ValidationError):
    kind = "password_mismatch"
    default_message = "Passwords do not match"


class InvalidGenre(ValidationError):
    kind = "invalid_genre"
    default_message = "Invalid genre ID"


class InvalidImageFormat(ValidationError):
    kind = "invalid_image_format"
    default_message = "Invalid image. Only JPEG, PNG and GIF are allowed."


class InvalidAvatarFormat(InvalidImageFormat):
    kind = "invalid_avatar_format"
    default_message = (
        "Avatar must be an http(s) URL ending in .jpg, .jpeg, .png, .gif or "
        ".webp, or a base64 data URI of a JPEG, PNG, GIF or WebP image"
    )


class InvalidSort(ValidationError):
    kind = "invalid_sort"
    default_message = "Unsupported sort column or direction"


class TokenExpiredOrInvalid(ValidationError):
    kind = "token_expired_or_invalid"
    default_message = "Invalid or expired reset token"


# =============================================================================
# 401 - Authentication
# =============================================================================
class AuthenticationError(BookshelfError):
    status_code = 401
    kind = "authentication_error"
    default_message = "Authentication failed"


class InvalidCredentials(AuthenticationError):
    kind = "invalid_credentials"
    default_message = "Invalid email or password"


class InvalidToken(AuthenticationError):
    kind = "invalid_token"
    default_message = "Invalid or expired token"


class Unauthenticated(AuthenticationError):
    kind = "unauthenticated"
    default_message = "Not authorized to access this route"


# =============================================================================
# 403 - Authorization
# =============================================================================
class AuthorizationError(BookshelfError):
    status_code = 403
    kind = "authorization_error"
    default_message = "Not allowed"


class Forbidden(AuthorizationError):
    kind = "forbidden"
    default_message = "Not authorized to modify this resource"


# =============================================================================
# 404 - Not Found
# =============================================================================
class NotFoundError(BookshelfError):
    status_code = 404
    kind = "not_found"
    default_message = "Resource not found"


class UserNotFound(NotFoundError):
    kind = "user_not_found"
    default_message = "User not found"


class BookNotFound(NotFoundError):
    kind = "book_not_found"
    default_message = "Book not found"


class GenreNotFound(NotFoundError):
    kind = "genre_not_found"
    default_message = "Genre not found"


# =============================================================================
# 400 - Conflicts
# =============================================================================
# The original clients expect 400 for duplicates, so conflicts keep it.
class ConflictError(BookshelfError):
    status_code = 400
    kind = "conflict"
    default_message = "Resource already exists"


class DuplicateEmail(ConflictError):
    kind = "duplicate_email"
    default_message = "Email already exists"


class DuplicateHandle(ConflictError):
    kind = "duplicate_handle"
    default_message = "User ID already exists"


class DuplicateName(ConflictError):
    kind = "duplicate_name"
    default_message = "Genre already exists"


class GenreInUse(ConflictError):
    kind = "genre_in_use"
    default_message = "Cannot delete genre that has associated books"


# =============================================================================
# 413 - Payload Too Large
# =============================================================================
class PayloadTooLargeError(BookshelfError):
    status_code = 413
    kind = "payload_too_large"
    default_message = "Payload too large"


class PayloadTooLarge(PayloadTooLargeError):
    default_message = "Image exceeds the size limit"
