"""
Redis Caching Service

Caches single-book lookups (GET /api/books/{id}) in Redis.

Invalidation policy:
- Entries live for settings.cache_ttl_books seconds
- Updating or deleting a book deletes that book's entry
- Renaming a genre deletes every book entry (they embed genre_name)
- Listings are never cached; they depend on too many parameters

The cache is an explicit component: one BookCache is created at startup
(see bookshelf.main.lifespan), kept on app.state and injected into the
catalog service. If Redis is disabled or unreachable the cache degrades
to a no-op and every lookup goes to the database.
"""

import json
import logging
from typing import Any, Optional

import redis
from redis.exceptions import RedisError

from bookshelf.config import get_settings

logger = logging.getLogger(__name__)

BOOK_KEY_PREFIX = "book"


def make_cache_key(prefix: str, *args) -> str:
    """
    Generate a consistent cache key from prefix and arguments.

    Examples:
        make_cache_key("book", 1) -> "book:1"
    """
    parts = [prefix]
    parts.extend(str(arg) for arg in args if arg is not None)
    return ":".join(parts)


def connect_redis(url: str) -> Optional[redis.Redis]:
    """
    Create a Redis client and check that the server answers.

    Returns:
        Redis client instance or None if the connection fails
    """
    try:
        client = redis.from_url(
            url,
            decode_responses=True,  # Return strings instead of bytes
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        client.ping()
        logger.info("Successfully connected to Redis")
        return client
    except RedisError as e:
        logger.warning(f"Failed to connect to Redis: {e}. Caching disabled.")
        return None


class BookCache:
    """
    JSON cache of serialized book responses.

    Args:
        client: Connected Redis client, or None for a disabled cache
        ttl: Time-to-live of each entry in seconds
    """

    def __init__(self, client: Optional[redis.Redis], ttl: int) -> None:
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_settings(cls) -> "BookCache":
        settings = get_settings()
        client = connect_redis(settings.redis_url) if settings.cache_enabled else None
        return cls(client, settings.cache_ttl_books)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get_book(self, book_id: int) -> Optional[dict[str, Any]]:
        """Cached response for a book, or None on miss/error."""
        if self.client is None:
            return None

        key = make_cache_key(BOOK_KEY_PREFIX, book_id)
        try:
            value = self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

        if value is None:
            logger.debug(f"Cache MISS: {key}")
            return None

        logger.debug(f"Cache HIT: {key}")
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Cache JSON decode error for {key}: {e}")
            return None

    def set_book(self, book_id: int, value: dict[str, Any]) -> bool:
        """Store a serialized book. Returns True if it was cached."""
        if self.client is None:
            return False

        key = make_cache_key(BOOK_KEY_PREFIX, book_id)
        try:
            self.client.setex(key, self.ttl, json.dumps(value, default=str))
            logger.debug(f"Cache SET: {key} (TTL: {self.ttl}s)")
            return True
        except RedisError as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    def invalidate_book(self, book_id: int) -> None:
        """Drop the entry of one book."""
        if self.client is None:
            return

        key = make_cache_key(BOOK_KEY_PREFIX, book_id)
        try:
            self.client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
        except RedisError as e:
            logger.warning(f"Cache delete error for {key}: {e}")

    def invalidate_all_books(self) -> int:
        """
        Drop every book entry.

        Returns:
            Number of keys deleted
        """
        if self.client is None:
            return 0

        pattern = make_cache_key(BOOK_KEY_PREFIX, "*")
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if not keys:
                return 0
            deleted = self.client.delete(*keys)
            logger.debug(f"Cache DELETE PATTERN: {pattern} ({deleted} keys)")
            return deleted
        except RedisError as e:
            logger.warning(f"Cache delete pattern error for {pattern}: {e}")
            return 0

    def stats(self) -> dict:
        """Cache statistics for the health endpoint."""
        if self.client is None:
            return {"status": "disconnected"}

        try:
            info = self.client.info("stats")
            return {
                "status": "connected",
                "hits": info.get("keyspace_hits", 0),
                "misses": info.get("keyspace_misses", 0),
                "keys": self.client.dbsize(),
            }
        except RedisError:
            return {"status": "error"}

    def close(self) -> None:
        """Close the Redis connection on shutdown."""
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("Redis connection closed")
