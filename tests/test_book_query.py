"""
Tests for the Book Query Builder

Predicates, sort validation and pagination, run against the test
database through CatalogService.list_books().
"""

import pytest

from bookshelf.exceptions import InvalidSort
from bookshelf.services.book_query import (
    BookQuery,
    build_book_predicates,
    contains_pattern,
    resolve_ordering,
)
from bookshelf.services.catalog import CatalogService
from bookshelf.services.images import CoverStorage


@pytest.fixture
def catalog(db_session, tmp_path) -> CatalogService:
    return CatalogService(db_session, storage=CoverStorage(tmp_path))


@pytest.fixture
def twenty_five_books(make_book, user_a, fiction):
    return [
        make_book(user_a, fiction, title=f"Book {i:02d}", author=f"Author {i % 5}")
        for i in range(1, 26)
    ]


class TestPredicates:
    def test_no_filters_no_predicates(self):
        assert build_book_predicates(BookQuery()) == []

    def test_empty_strings_are_ignored(self):
        assert build_book_predicates(BookQuery(search="", author="", genre="")) == []

    def test_each_filter_adds_one_predicate(self):
        query = BookQuery(search="gatsby", author="fitz", genre="fic", user_id=3)
        assert len(build_book_predicates(query)) == 4

    def test_like_wildcards_are_escaped(self):
        assert contains_pattern("50%_off") == "%50\\%\\_off%"


class TestOrdering:
    def test_default_is_title_ascending(self):
        query = BookQuery()
        assert (query.sort_by, query.sort_order) == ("title", "asc")

    def test_unknown_column_rejected(self):
        with pytest.raises(InvalidSort):
            resolve_ordering("title; DROP TABLE books", "asc")

    def test_unknown_direction_rejected(self):
        with pytest.raises(InvalidSort):
            resolve_ordering("title", "sideways")

    def test_direction_is_case_insensitive(self):
        assert len(resolve_ordering("price", "DESC")) == 2

    def test_list_books_validates_sort(self, catalog):
        with pytest.raises(InvalidSort):
            catalog.list_books(BookQuery(sort_by="hashed_password"))


class TestPagination:
    def test_offset(self):
        assert BookQuery(page=1, limit=10).offset == 0
        assert BookQuery(page=3, limit=10).offset == 20

    def test_last_page_is_partial(self, catalog, twenty_five_books):
        books, total = catalog.list_books(BookQuery(page=3, limit=10))

        assert total == 25
        assert len(books) == 5

    def test_pages_partition_the_result_set(self, catalog, twenty_five_books):
        seen = []
        for page in (1, 2, 3):
            books, total = catalog.list_books(BookQuery(page=page, limit=10))
            assert total == 25
            seen.extend(book.id for book in books)

        assert len(seen) == 25
        assert set(seen) == {book.id for book in twenty_five_books}

    def test_ties_are_broken_by_id(self, catalog, twenty_five_books):
        """All books share five authors; pages must still not overlap."""
        first, _ = catalog.list_books(BookQuery(sort_by="author", page=1, limit=12))
        second, _ = catalog.list_books(BookQuery(sort_by="author", page=2, limit=12))

        assert not {b.id for b in first} & {b.id for b in second}

    def test_page_beyond_end_is_empty(self, catalog, twenty_five_books):
        books, total = catalog.list_books(BookQuery(page=4, limit=10))

        assert books == []
        assert total == 25


class TestFiltering:
    def test_search_is_case_insensitive_substring(self, catalog, make_book, user_a, fiction):
        make_book(user_a, fiction, title="The Great Gatsby", author="F. Scott Fitzgerald")
        make_book(user_a, fiction, title="1984", author="George Orwell")

        for term in ("gatsby", "GATSBY", "Great G"):
            books, total = catalog.list_books(BookQuery(search=term))
            assert total == 1
            assert books[0].title == "The Great Gatsby"

    def test_search_matches_author(self, catalog, make_book, user_a, fiction):
        make_book(user_a, fiction, title="1984", author="George Orwell")

        books, _ = catalog.list_books(BookQuery(search="orwell"))
        assert [b.title for b in books] == ["1984"]

    def test_count_uses_same_filters(self, catalog, make_book, user_a, fiction):
        for i in range(12):
            make_book(user_a, fiction, title=f"Dune {i}", author="Frank Herbert")
        make_book(user_a, fiction, title="Emma", author="Jane Austen")

        books, total = catalog.list_books(BookQuery(search="dune", limit=5))

        assert total == 12
        assert len(books) == 5

    def test_genre_filter_matches_name(self, catalog, make_book, user_a, fiction, mystery):
        make_book(user_a, fiction, title="1984")
        make_book(user_a, mystery, title="The Hound of the Baskervilles")

        books, total = catalog.list_books(BookQuery(genre="myst"))

        assert total == 1
        assert books[0].genre_name == "Mystery"

    def test_user_filter(self, catalog, make_book, user_a, user_b, fiction):
        make_book(user_a, fiction, title="Mine")
        make_book(user_b, fiction, title="Theirs")

        books, total = catalog.list_books(BookQuery(user_id=user_b.id))

        assert total == 1
        assert books[0].creator_id == "bob"

    def test_wildcards_in_search_are_literal(self, catalog, make_book, user_a, fiction):
        make_book(user_a, fiction, title="100% Pure")
        make_book(user_a, fiction, title="1000 Pure")

        books, _ = catalog.list_books(BookQuery(search="100%"))
        assert [b.title for b in books] == ["100% Pure"]
