"""Stable email to user id mapping."""

import logging
import uuid

from progresstracker.services.cache import Cache

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Canonical form used for every cache key derived from an email."""
    return email.strip().lower()


class IdentityResolver:
    """Maps a verified email to an opaque user id, creating it on first use.

    The mapping is append-only: whichever writer stores an id first wins, and
    every later caller sees that id.
    """

    def __init__(self, cache: Cache, ttl: int | None = None):
        self.cache = cache
        self.ttl = ttl or None

    @staticmethod
    def key(email: str) -> str:
        return f"user:{normalize_email(email)}"

    async def lookup(self, email: str) -> str | None:
        """Return the user id for an email, or None if none was issued."""
        user_id = await self.cache.get(self.key(email))
        return user_id if isinstance(user_id, str) else None

    async def resolve(self, email: str) -> str:
        """Return the user id for an email, creating one if needed."""
        existing = await self.lookup(email)
        if existing:
            return existing

        candidate = str(uuid.uuid4())
        if await self.cache.add(self.key(email), candidate, self.ttl):
            logger.info(f"Created user id for {normalize_email(email)}")
            return candidate

        # Lost the race; adopt the id that was stored first
        winner = await self.lookup(email)
        if winner is None:
            # The winning entry expired between the two calls
            await self.cache.set(self.key(email), candidate, self.ttl)
            return candidate
        return winner
