"""
Bookshelf API Application Package

REST backend for cataloguing a personal book collection.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- exceptions.py: Domain error hierarchy mapped to HTTP responses
- main.py: FastAPI application factory and configuration
- dependencies.py: Request gate, services and request parsing dependencies
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (auth, catalog, queries, images, caching, rate limiting)
"""

__version__ = "1.0.0"
