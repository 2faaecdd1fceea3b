#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample data for development.

USAGE:
    # From the project root with the virtualenv activated
    python scripts/seed_data.py

This script:
1. Connects to the database using app settings
2. Clears existing data (optional)
3. Creates a demo user, sample genres and books owned by the demo user

Demo login: demo / DemoPass123
"""

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from bookshelf.database import SessionLocal, create_tables
from bookshelf.models import Book, Genre, User
from bookshelf.services.security import hash_password

DEMO_USERNAME = "demo"
DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "DemoPass123"


def clear_data(db: Session) -> None:
    """Clear all existing data from the database."""
    print("Clearing existing data...")
    db.execute(delete(Book))
    db.execute(delete(Genre))
    db.execute(delete(User))
    db.commit()
    print("Data cleared.")


def create_demo_user(db: Session) -> User:
    print("Creating demo user...")
    user = User(
        username=DEMO_USERNAME,
        email=DEMO_EMAIL,
        hashed_password=hash_password(DEMO_PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    print(f"Created user '{user.username}' (password: {DEMO_PASSWORD}).")
    return user


def create_genres(db: Session) -> dict[str, Genre]:
    """Create sample genres."""
    print("Creating genres...")
    genre_names = [
        "Fiction",
        "Science Fiction",
        "Fantasy",
        "Mystery",
        "Romance",
        "Non-Fiction",
    ]

    genres = {}
    for name in genre_names:
        genre = Genre(name=name)
        db.add(genre)
        genres[name] = genre

    db.commit()
    for genre in genres.values():
        db.refresh(genre)

    print(f"Created {len(genres)} genres.")
    return genres


def create_books(db: Session, owner: User, genres: dict[str, Genre]) -> list[Book]:
    """Create sample books owned by the demo user."""
    print("Creating books...")

    books_data = [
        {
            "title": "1984",
            "author": "George Orwell",
            "isbn": "9780451524935",
            "description": "A dystopian novel set in a totalitarian society under constant surveillance.",
            "published_date": date(1949, 6, 8),
            "price": Decimal("12.99"),
            "genre": "Fiction",
        },
        {
            "title": "The Great Gatsby",
            "author": "F. Scott Fitzgerald",
            "isbn": "9780743273565",
            "description": "Jay Gatsby's pursuit of Daisy Buchanan in the Jazz Age.",
            "published_date": date(1925, 4, 10),
            "price": Decimal("10.99"),
            "genre": "Fiction",
        },
        {
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "isbn": "9780141439518",
            "description": "A romantic novel following the emotional development of Elizabeth Bennet.",
            "published_date": date(1813, 1, 28),
            "price": Decimal("8.99"),
            "genre": "Romance",
        },
        {
            "title": "Murder on the Orient Express",
            "author": "Agatha Christie",
            "isbn": "9780062693662",
            "description": "Hercule Poirot investigates a murder on a train stuck in a snowdrift.",
            "published_date": date(1934, 1, 1),
            "price": Decimal("14.99"),
            "genre": "Mystery",
        },
        {
            "title": "Foundation",
            "author": "Isaac Asimov",
            "isbn": "9780553293357",
            "description": "The first novel in the Foundation series about the fall of the Galactic Empire.",
            "published_date": date(1951, 5, 1),
            "price": Decimal("15.99"),
            "genre": "Science Fiction",
        },
        {
            "title": "The Hobbit",
            "author": "J.R.R. Tolkien",
            "isbn": "9780547928227",
            "description": "Bilbo Baggins embarks on a quest to reclaim the Lonely Mountain.",
            "published_date": date(1937, 9, 21),
            "price": Decimal("14.99"),
            "genre": "Fantasy",
        },
        {
            "title": "A Brief History of Time",
            "author": "Stephen Hawking",
            "isbn": "9780553380163",
            "description": "From the Big Bang to black holes, for readers without a physics background.",
            "published_date": date(1988, 4, 1),
            "price": Decimal("18.00"),
            "genre": "Non-Fiction",
        },
    ]

    books = []
    for data in books_data:
        genre_name = data.pop("genre")
        book = Book(**data, genre_id=genres[genre_name].id, user_id=owner.id)
        db.add(book)
        books.append(book)

    db.commit()
    for book in books:
        db.refresh(book)

    print(f"Created {len(books)} books.")
    return books


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()
    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        user = create_demo_user(db)
        genres = create_genres(db)
        books = create_books(db, user, genres)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print("  - Users: 1")
        print(f"  - Genres: {len(genres)}")
        print(f"  - Books: {len(books)}")
        print("\nYou can now access the API at http://localhost:5000")
        print("API documentation at http://localhost:5000/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
