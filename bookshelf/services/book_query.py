"""
Book Query Builder

Builds the filtered, sorted and paginated read queries behind
GET /api/books.

The filter predicates are built once by build_book_predicates() and
shared by two independent statements:

- the page query: SELECT books ... WHERE <predicates> ORDER BY ... LIMIT/OFFSET
- the count query: SELECT count(*) ... WHERE <predicates>

SQLAlchemy binds every filter value as a parameter. Sort column and
direction are never interpolated: they are looked up in SORT_COLUMNS and
SORT_DIRECTIONS, and anything else raises InvalidSort.
"""

from dataclasses import dataclass

from sqlalchemy import ColumnElement, Select, func, or_, select
from sqlalchemy.orm import selectinload

from bookshelf.exceptions import InvalidSort
from bookshelf.models import Book, Genre

DEFAULT_SORT_BY = "title"
DEFAULT_SORT_ORDER = "asc"

# Public sort key -> mapped column
SORT_COLUMNS = {
    "title": Book.title,
    "author": Book.author,
    "isbn": Book.isbn,
    "published_date": Book.published_date,
    "price": Book.price,
    "created_at": Book.created_at,
    "updated_at": Book.updated_at,
}

SORT_DIRECTIONS = frozenset({"asc", "desc"})

LIKE_ESCAPE = "\\"


@dataclass
class BookQuery:
    """
    Filter, sort and page parameters for a book listing.

    Unset (None or empty) filters are left out of the WHERE clause
    entirely rather than matched against a wildcard.
    """

    search: str | None = None
    author: str | None = None
    genre: str | None = None
    user_id: int | None = None
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        """Page 1 -> offset 0, page 2 -> offset limit, ..."""
        return (self.page - 1) * self.limit


def contains_pattern(term: str) -> str:
    """
    LIKE pattern matching ``term`` anywhere in a column.

    LIKE wildcards in the user's text are escaped so "50%" matches the
    literal string.
    """
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )
    return f"%{escaped}%"


def build_book_predicates(query: BookQuery) -> list[ColumnElement[bool]]:
    """
    Build the WHERE conjunction for a listing.

    Text filters are case-insensitive substring matches (ILIKE on
    PostgreSQL, lower() LIKE lower() elsewhere). The genre filter refers
    to Genre.name, so statements using these predicates must join genres
    (see filtered_select()).

    Returns:
        Predicates to be AND-ed together; empty when nothing is filtered
    """
    predicates: list[ColumnElement[bool]] = []

    if query.search:
        pattern = contains_pattern(query.search)
        predicates.append(
            or_(
                Book.title.ilike(pattern, escape=LIKE_ESCAPE),
                Book.author.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if query.author:
        predicates.append(Book.author.ilike(contains_pattern(query.author), escape=LIKE_ESCAPE))

    if query.genre:
        predicates.append(Genre.name.ilike(contains_pattern(query.genre), escape=LIKE_ESCAPE))

    if query.user_id is not None:
        predicates.append(Book.user_id == query.user_id)

    return predicates


def resolve_ordering(sort_by: str, sort_order: str) -> list[ColumnElement]:
    """
    Translate client sort parameters into ORDER BY clauses.

    Book.id is appended as a tiebreaker so consecutive pages never
    overlap or skip rows when the sort column has duplicates.

    Raises:
        InvalidSort: Unknown column or direction
    """
    column = SORT_COLUMNS.get(sort_by)
    if column is None:
        allowed = ", ".join(sorted(SORT_COLUMNS))
        raise InvalidSort(f"sortBy must be one of: {allowed}")

    direction = sort_order.lower()
    if direction not in SORT_DIRECTIONS:
        raise InvalidSort("sortOrder must be 'asc' or 'desc'")

    if direction == "desc":
        return [column.desc(), Book.id.desc()]
    return [column.asc(), Book.id.asc()]


def filtered_select(columns, predicates: list[ColumnElement[bool]]) -> Select:
    """SELECT ``columns`` FROM books LEFT JOIN genres WHERE <predicates>."""
    return (
        select(columns)
        .select_from(Book)
        .outerjoin(Genre, Book.genre_id == Genre.id)
        .where(*predicates)
    )


def build_page_statement(query: BookQuery) -> Select:
    """Statement returning one page of books with genre and owner loaded."""
    return (
        filtered_select(Book, build_book_predicates(query))
        .options(selectinload(Book.genre), selectinload(Book.owner))
        .order_by(*resolve_ordering(query.sort_by, query.sort_order))
        .offset(query.offset)
        .limit(query.limit)
    )


def build_count_statement(query: BookQuery) -> Select:
    """Statement counting every book that matches the filters."""
    return filtered_select(func.count(Book.id), build_book_predicates(query))
