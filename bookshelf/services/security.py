"""
Security Service

Handles password hashing and bearer token operations.

Security Features:
==================
1. Password hashing with bcrypt (passlib); every hash embeds its own
   random salt and verification uses a constant-time comparison
2. Signed, time-limited JWT bearer tokens (python-jose, HS256)
3. Plain passwords are never logged or returned

Usage:
    from bookshelf.services.security import hash_password, verify_password

    hashed = hash_password("SecurePass123")
    is_valid = verify_password("SecurePass123", hashed)

    token = issue_token(user.id)
    user_id = verify_token(token)  # raises InvalidToken
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookshelf.config import get_settings
from bookshelf.exceptions import InvalidToken

logger = logging.getLogger(__name__)
settings = get_settings()

# -------------------------------------------------------------------------
# Password Hashing Configuration
# -------------------------------------------------------------------------
# - schemes: bcrypt is deliberately slow and salts every hash
# - deprecated: "auto" means old hashes are automatically upgraded
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password (salt included)

    Example:
        >>> hashed = hash_password("SecurePass123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Uses constant-time comparison to prevent timing attacks.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """
    Spend the same time as a real verification without a stored hash.

    Called when a login identifier matches no user, so that response
    timing does not reveal which identifiers are registered.
    """
    pwd_context.dummy_verify()


# -------------------------------------------------------------------------
# Bearer Tokens
# -------------------------------------------------------------------------
TOKEN_TYPE = "access"


def issue_token(
    subject_id: int,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed bearer token for a user.

    The payload carries the user id as ``sub`` (a string, per
    RFC 7519) plus the ``exp`` expiration claim.

    Args:
        subject_id: ID of the user the token identifies
        expires_delta: Optional custom lifetime (defaults to
            settings.token_expire_days)

    Returns:
        Encoded JWT string

    Example:
        >>> token = issue_token(42)
        >>> token.count(".") == 2  # header.payload.signature
        True
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.token_expire_days)

    issued_at = datetime.now(UTC)
    payload = {
        "sub": str(subject_id),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "type": TOKEN_TYPE,
    }

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> int:
    """
    Validate a bearer token and return the user id it was issued for.

    Args:
        token: The JWT token string

    Returns:
        The subject (user) id

    Raises:
        InvalidToken: signature mismatch, malformed token, expired token,
            wrong token type or a missing/non-numeric subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise InvalidToken() from e

    if payload.get("type") != TOKEN_TYPE:
        logger.warning("Token type mismatch")
        raise InvalidToken()

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as e:
        raise InvalidToken() from e
