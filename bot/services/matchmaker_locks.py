"""
Advisory per-queue locks for the matchmaker.

A queue name maps to the token of whoever holds it, kept in memory only.
Acquisition never waits: a caller that finds the lock held is expected to give
up and let a later trigger retry. Nothing here survives a restart.
"""

from contextlib import asynccontextmanager
from itertools import count
from typing import AsyncGenerator, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class MatchmakerLockRegistry:
    """Keyed try-lock registry, one entry per queue name."""

    def __init__(self):
        self._held: Dict[str, int] = {}
        self._tokens = count(1)

    @staticmethod
    def _key(queue_name: str) -> str:
        return queue_name.lower()

    def acquire_token(self, queue_name: str) -> Optional[int]:
        """Take the lock for a queue if it is free. Returns its token, or None."""
        key = self._key(queue_name)
        if key in self._held:
            return None
        token = next(self._tokens)
        self._held[key] = token
        return token

    def try_acquire(self, queue_name: str) -> bool:
        """Take the lock for a queue if it is free. Never blocks."""
        return self.acquire_token(queue_name) is not None

    def release(self, queue_name: str, token: Optional[int] = None) -> bool:
        """
        Release a queue's lock.

        With a token, only the acquisition that produced it is released; a lock
        taken again after clear_all() stays held.
        """
        key = self._key(queue_name)
        if key not in self._held:
            return False
        if token is not None and self._held[key] != token:
            logger.warning(f"Stale release of matchmaker lock {key} ignored")
            return False
        del self._held[key]
        return True

    def is_locked(self, queue_name: str) -> bool:
        return self._key(queue_name) in self._held

    def held(self) -> List[str]:
        """Names of all currently held locks."""
        return sorted(self._held)

    def clear_all(self) -> int:
        """Force-release every lock. Returns how many were held."""
        count_held = len(self._held)
        self._held.clear()
        if count_held:
            logger.warning(f"Force-cleared {count_held} matchmaker lock(s)")
        return count_held

    @asynccontextmanager
    async def hold(self, queue_name: str) -> AsyncGenerator[bool, None]:
        """
        Scoped acquisition.

        Yields whether the lock was acquired; if it was, it is released on
        every exit path, exceptions included, unless it was force-cleared and
        taken by someone else in the meantime.
        """
        token = self.acquire_token(queue_name)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.release(queue_name, token)
