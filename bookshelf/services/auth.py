"""
Authentication Service

Registration, login, password management and avatars.

Security Features:
=================
1. Passwords are bcrypt-hashed before storage (see services.security)
2. Login failures are indistinguishable: an unknown identifier and a
   wrong password raise the same InvalidCredentials, and an unknown
   identifier still pays for one bcrypt verification
3. Reset tokens are single-use and time-limited (see services.reset_tokens)
4. Nothing here logs a password or a plain reset token
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from bookshelf.config import get_settings
from bookshelf.exceptions import (
    ConflictError,
    DuplicateEmail,
    DuplicateHandle,
    InvalidCredentials,
    PasswordMismatch,
    UserNotFound,
)
from bookshelf.models import Book, User
from bookshelf.schemas.user import UserCreate
from bookshelf.services.images import validate_avatar
from bookshelf.services.reset_tokens import IssuedResetToken, ResetTokenManager
from bookshelf.services.security import (
    dummy_verify,
    hash_password,
    issue_token,
    verify_password,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class AuthService:
    """
    Account operations for one request.

    Args:
        db: Database session
        reset_tokens: Reset-token manager; defaults to one bound to ``db``
    """

    def __init__(self, db: Session, reset_tokens: ResetTokenManager | None = None) -> None:
        self.db = db
        self.reset_tokens = reset_tokens or ResetTokenManager(db)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------
    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def _email_taken(self, email: str) -> bool:
        stmt = select(User.id).where(func.lower(User.email) == email.lower())
        return self.db.execute(stmt).first() is not None

    def _handle_taken(self, username: str) -> bool:
        stmt = select(User.id).where(func.lower(User.username) == username.lower())
        return self.db.execute(stmt).first() is not None

    # -------------------------------------------------------------------------
    # Registration and Login
    # -------------------------------------------------------------------------
    def register(self, data: UserCreate) -> tuple[User, str]:
        """
        Create an account and sign the user in.

        Checks run in a fixed order: password confirmation, then email,
        then login handle.

        Returns:
            (user, bearer token)

        Raises:
            PasswordMismatch: password != confirm_password
            DuplicateEmail: Email already registered
            DuplicateHandle: Login handle already taken
        """
        if data.password != data.confirm_password:
            raise PasswordMismatch()

        if self._email_taken(data.email):
            raise DuplicateEmail()

        if self._handle_taken(data.username):
            raise DuplicateHandle()

        user = User(
            username=data.username,
            email=data.email,
            hashed_password=hash_password(data.password),
        )
        self.db.add(user)

        try:
            self.db.commit()
        except IntegrityError as e:
            # A concurrent registration won the race for the same email/handle
            self.db.rollback()
            raise ConflictError("Email or user ID already exists") from e

        self.db.refresh(user)
        logger.info(f"New user registered: {user.username} (id={user.id})")

        return user, issue_token(user.id)

    def login(self, identifier: str, password: str) -> tuple[User, str]:
        """
        Authenticate with a login handle or email address.

        Returns:
            (user, bearer token)

        Raises:
            InvalidCredentials: Unknown identifier or wrong password
        """
        identifier = identifier.strip().lower()
        stmt = select(User).where(
            or_(
                func.lower(User.email) == identifier,
                func.lower(User.username) == identifier,
            )
        )
        user = self.db.execute(stmt).scalars().first()

        if user is None:
            dummy_verify()
            logger.warning("Login failed: unknown identifier")
            raise InvalidCredentials()

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Login failed: wrong password for user {user.id}")
            raise InvalidCredentials()

        logger.info(f"User logged in: {user.username}")
        return user, issue_token(user.id)

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------
    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """
        Replace the password of a signed-in user.

        Raises:
            UserNotFound: The account no longer exists
            InvalidCredentials: current_password is wrong
        """
        user = self.get_user(user_id)

        if not verify_password(current_password, user.hashed_password):
            logger.warning(f"Password change rejected for user {user.id}")
            raise InvalidCredentials("Current password is incorrect")

        user.hashed_password = hash_password(new_password)
        self.db.commit()

        logger.info(f"Password changed for user {user.id}")

    def forgot_password(self, email: str) -> IssuedResetToken:
        """
        Start the reset flow for an email address.

        Delivering the plain token to the user is left to the caller.

        Raises:
            UserNotFound: No account uses this email
        """
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        user = self.db.execute(stmt).scalar_one_or_none()

        if user is None:
            raise UserNotFound("There is no user with that email")

        return self.reset_tokens.issue(user)

    def reset_password(self, plain_token: str, new_password: str) -> User:
        """
        Set a new password using a reset token.

        The token is cleared in the same commit as the new hash.

        Raises:
            TokenExpiredOrInvalid: Unknown, used or expired token
        """
        user = self.reset_tokens.consume(plain_token)
        user.hashed_password = hash_password(new_password)
        self.db.commit()

        logger.info(f"Password reset completed for user {user.id}")
        return user

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------
    def update_avatar(self, user_id: int, avatar_value: str) -> User:
        """
        Store a new avatar (URL or inline data URI) verbatim.

        Raises:
            InvalidAvatarFormat: Neither an image URL nor an image data URI
            PayloadTooLarge: Inline image larger than max_avatar_bytes
        """
        user = self.get_user(user_id)
        user.avatar_url = validate_avatar(avatar_value, settings.max_avatar_bytes)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Avatar updated for user {user.id}")
        return user

    def get_profile(self, user_id: int) -> tuple[User, list[Book]]:
        """The user and the books they created, newest first."""
        user = self.get_user(user_id)

        stmt = (
            select(Book)
            .options(selectinload(Book.genre), selectinload(Book.owner))
            .where(Book.user_id == user.id)
            .order_by(Book.created_at.desc(), Book.id.desc())
        )
        books = list(self.db.execute(stmt).scalars().all())

        return user, books
