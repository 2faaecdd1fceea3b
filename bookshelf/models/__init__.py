"""
SQLAlchemy Models Package

This package contains all database models for the Bookshelf API.

Model Relationships:
- User  -> Book: One-to-Many (a user owns the books they create)
- Genre -> Book: One-to-Many (every book has exactly one genre)

Import all models here to:
1. Make them available as: from bookshelf.models import Book, Genre, User
2. Ensure Alembic discovers them for migrations
"""

from bookshelf.models.user import User
from bookshelf.models.genre import Genre
from bookshelf.models.book import Book

__all__ = [
    "User",
    "Genre",
    "Book",
]
