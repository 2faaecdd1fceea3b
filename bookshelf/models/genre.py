"""
Genre Model

Represents a book genre. Genres are shared reference data: every book
points at exactly one genre, and a genre cannot be removed while any
book still points at it.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookshelf.database import Base

if TYPE_CHECKING:
    from bookshelf.models.book import Book


class Genre(Base):
    """
    Genre model representing book categories.

    Table: genres

    Relationships:
    - books: One-to-Many (books.genre_id -> genres.id)

    Example:
        genre = Genre(name="Science Fiction")
    """

    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True)

    # unique=True creates a UNIQUE constraint in the database
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
        comment="Genre name (e.g., 'Science Fiction', 'Mystery')"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # passive_deletes: the RESTRICT foreign key, not the ORM, guards deletes
    books: Mapped[List["Book"]] = relationship(
        "Book",
        back_populates="genre",
        passive_deletes="all",
    )

    def __repr__(self) -> str:
        return f"Genre(id={self.id}, name='{self.name}')"
