"""
API Routers Package

Router Structure:
- users.py: /api/users/* endpoints (accounts, passwords, avatar, profile)
- books.py: /api/books/* endpoints
- genres.py: /api/genres/* endpoints

Each router is imported and registered under /api in main.py.
"""

from bookshelf.routers.books import router as books_router
from bookshelf.routers.genres import router as genres_router
from bookshelf.routers.users import router as users_router

__all__ = [
    "books_router",
    "genres_router",
    "users_router",
]
