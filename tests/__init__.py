"""
Test Suite for Bookshelf API

Test Organization:
- conftest.py: Shared fixtures (test database, client, users, genres, books)
- test_security.py: Password hashing and bearer tokens
- test_reset_tokens.py: Password reset token lifecycle
- test_book_query.py: Listing predicates, sorting and pagination
- test_images.py: Image validation and cover storage
- test_cache.py: Book cache component
- test_auth.py: /api/users endpoints
- test_request_gate.py: Bearer authentication of protected routes
- test_books.py: /api/books endpoints
- test_genres.py: /api/genres endpoints

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_books.py
"""
