"""
Book Model

The central model of the Bookshelf API.

Each book belongs to exactly one genre and exactly one owner (the user
who created it). Only the owner may update or delete it; that check lives
in the catalog service, not here.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookshelf.database import Base

if TYPE_CHECKING:
    from bookshelf.models.genre import Genre
    from bookshelf.models.user import User


class Book(Base):
    """
    Book model representing books in a user's collection.

    Table: books

    Fields:
    - title, author: required free text
    - isbn: International Standard Book Number (optional)
    - published_date: publication date (optional)
    - description: free-text summary (optional)
    - price: Numeric(10, 2) (optional)
    - cover_image: file name of the stored cover (optional)

    Relationships:
    - genre: Many-to-One (books.genre_id -> genres.id, RESTRICT on delete)
    - owner: Many-to-One (books.user_id -> users.id)

    Example:
        book = Book(
            title="1984",
            author="George Orwell",
            genre_id=1,
            user_id=1,
        )
    """

    __tablename__ = "books"

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Basic Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
        comment="Author name as entered by the owner"
    )

    # Not unique: two users may catalogue the same edition
    isbn: Mapped[str | None] = mapped_column(
        String(20),
        index=True,
        nullable=True,
        comment="International Standard Book Number"
    )

    published_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Date of publication"
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Book description or summary"
    )

    price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Book price"
    )

    cover_image: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="File name of the stored cover image"
    )

    # -------------------------------------------------------------------------
    # Foreign Keys
    # -------------------------------------------------------------------------
    genre_id: Mapped[int] = mapped_column(
        ForeignKey("genres.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
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

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    genre: Mapped["Genre"] = relationship("Genre", back_populates="books")

    owner: Mapped["User"] = relationship("User", back_populates="books")

    # -------------------------------------------------------------------------
    # Joined Projections
    # -------------------------------------------------------------------------
    # Read by the response schemas (from_attributes=True)
    @property
    def genre_name(self) -> str | None:
        return self.genre.name if self.genre is not None else None

    @property
    def creator_id(self) -> str | None:
        """Login handle of the owning user."""
        return self.owner.username if self.owner is not None else None

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', author='{self.author}')"
