"""
Rate limiting for queue commands.

Simple in-memory rate limiting using deques and time-based windows, so a
player cannot flood the matchmaker with join/leave toggles.
"""

import time
import asyncio
from functools import wraps
from collections import defaultdict, deque
import logging

from bot.config import Config

logger = logging.getLogger(__name__)

class SimpleRateLimiter:
    """In-memory rate limiter keyed by user and command."""

    def __init__(self):
        self._requests = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def is_allowed(self, user_id: int, command: str, limit: int, window: int) -> bool:
        """Check if user can execute command within rate limit."""
        if limit <= 0 or window <= 0:
            return False

        key = f"{user_id}:{command}"
        now = time.monotonic()

        async with self._lock:
            requests = self._requests[key]
            while requests and requests[0] < now - window:
                requests.popleft()

            if len(requests) < limit:
                requests.append(now)
                return True

            return False

def rate_limit(command: str, limit: int = 1, window: int = 60):
    """Decorator for rate limiting prefix commands. The bot owner is exempt."""
    def decorator(func):
        @wraps(func)
        async def wrapper(self, ctx, *args, **kwargs):
            if ctx.author.id == Config.OWNER_DISCORD_ID:
                return await func(self, ctx, *args, **kwargs)

            if not await self.bot.rate_limiter.is_allowed(ctx.author.id, command, limit, window):
                logger.info(f"Rate limited {ctx.author} on {command}")
                await ctx.send(f"⏰ Slow down! Please wait before using `{command}` again.")
                return

            return await func(self, ctx, *args, **kwargs)
        return wrapper
    return decorator
