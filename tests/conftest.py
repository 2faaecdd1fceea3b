"""
pytest Fixtures for Bookshelf API Tests

Shared fixtures used across all test files.

For database tests, we use:
- session scope for the engine (expensive to create)
- function scope for sessions (isolation between tests)

Every test runs inside a transaction that is rolled back afterwards, so
tests never see each other's rows.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# Rate limiting and Redis caching are disabled, covers go to a temp dir.
import os
import tempfile

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="bookshelf-covers-")

from collections.abc import Callable, Generator, Iterator
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookshelf.database import Base, get_db
from bookshelf.main import app
from bookshelf.models import Book, Genre, User
from bookshelf.services.security import hash_password, issue_token

DEFAULT_PASSWORD = "SecurePass123"

# Smallest valid-looking payloads; only the declared MIME type is checked
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
GIF_BYTES = b"GIF89a" + b"\x00" * 32


# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory database. Some PostgreSQL behaviour (e.g. enforced
# foreign keys) is not available here; the services check those rules
# themselves.

@pytest.fixture(scope="session")
def engine():
    """
    Create a SQLite in-memory database engine.

    StaticPool keeps the connection alive for the entire session.
    Without it, SQLite in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    The session is wrapped in a transaction that's rolled back,
    ensuring test isolation without needing to recreate tables.
    """
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )

    connection = engine.connect()
    transaction = connection.begin()
    session = TestSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database.

    We override the get_db dependency to use our test session.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# USER FIXTURES
# =============================================================================
@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory for users with a known password."""

    def _make_user(
        username: str,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=hash_password(password),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user_a(make_user) -> User:
    return make_user("alice")


@pytest.fixture
def user_b(make_user) -> User:
    return make_user("bob")


def auth_header(user: User) -> dict[str, str]:
    """Authorization header for a user, as a logged-in client would send it."""
    return {"Authorization": f"Bearer {issue_token(user.id)}"}


def chunked(body: bytes, size: int = 512) -> Iterator[bytes]:
    """Yield a body in pieces; httpx then sends it without a Content-Length."""
    for start in range(0, len(body), size):
        yield body[start:start + size]


@pytest.fixture
def headers_a(user_a: User) -> dict[str, str]:
    return auth_header(user_a)


@pytest.fixture
def headers_b(user_b: User) -> dict[str, str]:
    return auth_header(user_b)


# =============================================================================
# CATALOG FIXTURES
# =============================================================================
@pytest.fixture
def fiction(db_session: Session) -> Genre:
    genre = Genre(name="Fiction")
    db_session.add(genre)
    db_session.commit()
    db_session.refresh(genre)
    return genre


@pytest.fixture
def mystery(db_session: Session) -> Genre:
    genre = Genre(name="Mystery")
    db_session.add(genre)
    db_session.commit()
    db_session.refresh(genre)
    return genre


@pytest.fixture
def make_book(db_session: Session) -> Callable[..., Book]:
    """Factory for books inserted directly through the session."""

    def _make_book(owner: User, genre: Genre, **fields) -> Book:
        fields.setdefault("title", "1984")
        fields.setdefault("author", "George Orwell")
        book = Book(genre_id=genre.id, user_id=owner.id, **fields)
        db_session.add(book)
        db_session.commit()
        db_session.refresh(book)
        return book

    return _make_book


@pytest.fixture
def sample_book(make_book, user_a: User, fiction: Genre) -> Book:
    """1984, owned by alice, in Fiction."""
    return make_book(
        user_a,
        fiction,
        title="1984",
        author="George Orwell",
        isbn="9780451524935",
        published_date=date(1949, 6, 8),
        price=Decimal("12.99"),
        description="A dystopian novel set in a totalitarian society.",
    )
