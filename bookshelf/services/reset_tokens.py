"""
Password Reset Token Service

Issues and consumes one-time password reset tokens.

Security Features:
=================
1. Tokens are 20 random bytes from the secrets module (hex encoded)
2. Only a SHA-256 hash of the token is stored on the user row
3. The plain token is returned once, for out-of-band delivery
4. Tokens expire (10 minutes by default) and are single-use: consuming a
   token clears the stored hash in the same commit as the new password
"""

import hashlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookshelf.config import get_settings
from bookshelf.exceptions import TokenExpiredOrInvalid
from bookshelf.models import User

logger = logging.getLogger(__name__)
settings = get_settings()

TOKEN_BYTES = 20


def utc_now() -> datetime:
    return datetime.now(UTC)


def hash_reset_token(token: str) -> str:
    """
    Hash a reset token using SHA-256.

    Reset tokens are already high-entropy random values, so a fast
    unsalted digest is enough to keep them useless if the table leaks.

    Returns:
        SHA-256 hash of the token (64 hex characters)
    """
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass(frozen=True)
class IssuedResetToken:
    """Result of issuing a reset token. Only ``plain_token`` leaves the server."""

    plain_token: str
    token_hash: str
    expires_at: datetime


class ResetTokenManager:
    """
    Lifecycle of the secondary credential used by the forgot-password flow.

    Args:
        db: Database session
        clock: Returns the current time; injectable so tests can move
            time forward
        lifetime: How long an issued token stays valid
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utc_now,
        lifetime: timedelta | None = None,
    ) -> None:
        self.db = db
        self.clock = clock
        self.lifetime = lifetime or timedelta(minutes=settings.reset_token_expire_minutes)

    def issue(self, user: User) -> IssuedResetToken:
        """
        Generate a reset token for a user and persist its hash.

        Issuing a new token replaces any outstanding one.

        Returns:
            IssuedResetToken with the plain token for delivery
        """
        plain_token = secrets.token_hex(TOKEN_BYTES)
        issued = IssuedResetToken(
            plain_token=plain_token,
            token_hash=hash_reset_token(plain_token),
            expires_at=self.clock() + self.lifetime,
        )

        user.reset_password_token = issued.token_hash
        user.reset_password_expires = issued.expires_at
        self.db.commit()

        logger.info(f"Password reset token issued for user {user.id}")

        return issued

    def consume(self, plain_token: str) -> User:
        """
        Resolve a reset token to its user and invalidate it.

        The stored hash and expiry are cleared on the returned user but
        NOT committed: the caller commits them together with the new
        password so the token cannot be replayed.

        Raises:
            TokenExpiredOrInvalid: No user holds this token, or it expired
        """
        # Expiry is compared in SQL so stored and current times are
        # handled by the same backend conversion.
        stmt = select(User).where(
            User.reset_password_token == hash_reset_token(plain_token),
            User.reset_password_expires > self.clock(),
        )
        user = self.db.execute(stmt).scalar_one_or_none()

        if user is None:
            logger.warning("Rejected invalid or expired password reset token")
            raise TokenExpiredOrInvalid()

        user.reset_password_token = None
        user.reset_password_expires = None

        return user
