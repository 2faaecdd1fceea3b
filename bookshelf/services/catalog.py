"""
Catalog Service

Books and genres: listing, lookups and owner-gated writes.

Ownership is checked here, per operation. The request gate only tells
us who the caller is (an AuthContext); whether they may touch a given
book is decided by comparing that id with books.user_id.

Collaborators are passed in explicitly:
- db: the request's database session
- storage: CoverStorage for book cover files
- cache: BookCache for single-book lookups (may be disabled)
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bookshelf.config import get_settings
from bookshelf.exceptions import (
    BookNotFound,
    DuplicateName,
    Forbidden,
    GenreInUse,
    GenreNotFound,
    InvalidGenre,
)
from bookshelf.models import Book, Genre
from bookshelf.schemas.book import BookCreate, BookResponse, BookUpdate
from bookshelf.services.book_query import (
    BookQuery,
    build_count_statement,
    build_page_statement,
)
from bookshelf.services.cache import BookCache
from bookshelf.services.images import CoverStorage, ImagePayload

logger = logging.getLogger(__name__)
settings = get_settings()

# Book columns a client may write, create and update alike
BOOK_WRITABLE_FIELDS = (
    "title",
    "author",
    "isbn",
    "published_date",
    "genre_id",
    "description",
    "price",
)


class CatalogService:
    def __init__(
        self,
        db: Session,
        storage: CoverStorage,
        cache: BookCache | None = None,
    ) -> None:
        self.db = db
        self.storage = storage
        self.cache = cache or BookCache(None, settings.cache_ttl_books)

    # =========================================================================
    # Books
    # =========================================================================
    def _load_book(self, book_id: int) -> Book:
        stmt = (
            select(Book)
            .options(selectinload(Book.genre), selectinload(Book.owner))
            .where(Book.id == book_id)
        )
        book = self.db.execute(stmt).scalar_one_or_none()
        if book is None:
            raise BookNotFound(f"Book with id {book_id} not found")
        return book

    def _owned_book(self, owner_id: int, book_id: int) -> Book:
        book = self._load_book(book_id)
        if book.user_id != owner_id:
            logger.warning(f"User {owner_id} denied access to book {book_id}")
            raise Forbidden("Not authorized to modify this book")
        return book

    def _require_genre(self, genre_id: int) -> Genre:
        genre = self.db.get(Genre, genre_id)
        if genre is None:
            raise InvalidGenre(f"Invalid genre ID: {genre_id}")
        return genre

    def _commit_with_cover(self, new_cover: str | None) -> None:
        """Commit, removing a just-written cover file if the commit fails."""
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            if new_cover:
                self.storage.remove(new_cover)
            raise

    def list_books(self, query: BookQuery) -> tuple[list[Book], int]:
        """
        One page of books matching the query, plus the total match count.

        The page and count statements are built independently from the
        same predicate list.

        Raises:
            InvalidSort: Unknown sortBy or sortOrder
        """
        # Built first: it validates the sort parameters
        page_stmt = build_page_statement(query)

        books = list(self.db.execute(page_stmt).scalars().all())
        total = self.db.execute(build_count_statement(query)).scalar_one()

        return books, total

    def get_book(self, book_id: int) -> BookResponse:
        """
        A single book with its genre name and owner handle.

        Served from the cache when possible.

        Raises:
            BookNotFound: No book with this id
        """
        cached = self.cache.get_book(book_id)
        if cached is not None:
            return BookResponse.model_validate(cached)

        response = BookResponse.model_validate(self._load_book(book_id))
        self.cache.set_book(book_id, response.model_dump(mode="json"))

        return response

    def create_book(
        self,
        owner_id: int,
        data: BookCreate,
        cover: ImagePayload | None = None,
    ) -> Book:
        """
        Add a book owned by ``owner_id``.

        Raises:
            InvalidGenre: genre_id does not reference an existing genre
        """
        self._require_genre(data.genre_id)

        fields = data.model_dump(include=set(BOOK_WRITABLE_FIELDS))
        book = Book(**fields, user_id=owner_id)

        new_cover = self.storage.save(cover) if cover is not None else None
        book.cover_image = new_cover

        self.db.add(book)
        self._commit_with_cover(new_cover)

        logger.info(f"Book created: {book.id} '{book.title}' by user {owner_id}")
        return self._load_book(book.id)

    def update_book(
        self,
        owner_id: int,
        book_id: int,
        data: BookUpdate,
        cover: ImagePayload | None = None,
    ) -> Book:
        """
        Change the fields that were sent, and the cover if a new one was.

        The previous cover file is removed after the row is committed
        (best-effort: a failure is logged and the update still succeeds).

        Raises:
            BookNotFound: No book with this id
            Forbidden: The caller does not own the book
            InvalidGenre: A new genre_id does not exist
        """
        book = self._owned_book(owner_id, book_id)

        changes = data.model_dump(include=set(BOOK_WRITABLE_FIELDS), exclude_unset=True)
        if "genre_id" in changes:
            self._require_genre(changes["genre_id"])

        for field, value in changes.items():
            setattr(book, field, value)

        old_cover = None
        new_cover = None
        if cover is not None:
            old_cover = book.cover_image
            new_cover = self.storage.save(cover)
            book.cover_image = new_cover

        self._commit_with_cover(new_cover)

        if old_cover:
            self.storage.remove(old_cover)
        self.cache.invalidate_book(book_id)

        logger.info(f"Book updated: {book_id} by user {owner_id}")
        return self._load_book(book_id)

    def delete_book(self, owner_id: int, book_id: int) -> None:
        """
        Delete a book and, best-effort, its cover file.

        Raises:
            BookNotFound: No book with this id
            Forbidden: The caller does not own the book
        """
        book = self._owned_book(owner_id, book_id)
        cover = book.cover_image

        self.db.delete(book)
        self.db.commit()

        if cover:
            self.storage.remove(cover)
        self.cache.invalidate_book(book_id)

        logger.info(f"Book deleted: {book_id} by user {owner_id}")

    # =========================================================================
    # Genres
    # =========================================================================
    def _name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        stmt = select(Genre.id).where(func.lower(Genre.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Genre.id != exclude_id)
        return self.db.execute(stmt).first() is not None

    def list_genres(self) -> list[Genre]:
        stmt = select(Genre).order_by(Genre.name)
        return list(self.db.execute(stmt).scalars().all())

    def get_genre(self, genre_id: int) -> Genre:
        genre = self.db.get(Genre, genre_id)
        if genre is None:
            raise GenreNotFound(f"Genre with id {genre_id} not found")
        return genre

    def create_genre(self, name: str) -> Genre:
        """
        Raises:
            DuplicateName: A genre with this name already exists
        """
        if self._name_taken(name):
            raise DuplicateName(f"Genre '{name}' already exists")

        genre = Genre(name=name)
        self.db.add(genre)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateName(f"Genre '{name}' already exists") from e

        self.db.refresh(genre)
        logger.info(f"Genre created: {genre.id} '{genre.name}'")
        return genre

    def update_genre(self, genre_id: int, name: str) -> Genre:
        """
        Rename a genre.

        Cached books embed their genre name, so every cached book is
        dropped after a rename.

        Raises:
            GenreNotFound: No genre with this id
            DuplicateName: Another genre already uses the name
        """
        genre = self.get_genre(genre_id)

        if self._name_taken(name, exclude_id=genre_id):
            raise DuplicateName(f"Genre '{name}' already exists")

        genre.name = name
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateName(f"Genre '{name}' already exists") from e

        self.db.refresh(genre)
        self.cache.invalidate_all_books()

        logger.info(f"Genre renamed: {genre_id} -> '{name}'")
        return genre

    def delete_genre(self, genre_id: int) -> None:
        """
        Raises:
            GenreNotFound: No genre with this id
            GenreInUse: At least one book still references the genre
        """
        genre = self.get_genre(genre_id)

        stmt = select(func.count(Book.id)).where(Book.genre_id == genre_id)
        in_use = self.db.execute(stmt).scalar_one()
        if in_use:
            raise GenreInUse(f"Cannot delete genre: {in_use} book(s) still use it")

        self.db.delete(genre)
        self.db.commit()

        logger.info(f"Genre deleted: {genre_id}")
