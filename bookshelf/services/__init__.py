"""
Services Package

This package contains business logic services that are:
- Separate from HTTP handling (routers)
- Reusable across different parts of the application
- Easier to test in isolation

Current services:
- auth.py: Registration, login, password change/reset, avatar, profile
- book_query.py: Filtered, sorted, paginated book statements
- cache.py: Redis caching of book responses with invalidation
- catalog.py: Book and genre CRUD with ownership checks
- images.py: Image validation and cover file storage
- rate_limiter.py: Rate limiting with slowapi and Redis backend
- reset_tokens.py: One-time password reset tokens
- security.py: Password hashing and JWT utilities
"""
