"""
Services package for the ladder bot.

Stateful collaborators shared across cogs and operations: locks, scheduling,
notifications, configuration and rate limiting.
"""

from .matchmaker_locks import MatchmakerLockRegistry
from .rate_limiter import SimpleRateLimiter
from .scheduler import TaskScheduler, ScheduledTask

__all__ = ['MatchmakerLockRegistry', 'SimpleRateLimiter', 'TaskScheduler', 'ScheduledTask']
