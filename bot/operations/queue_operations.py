"""
Queue Operations Module

Business logic for joining and leaving queues and for the queue lifecycle.

Key functionality:
- enqueue(): toggle a player's waiting entry after eligibility checks
- toggle_autoqueue(): persistent per-queue automatic requeue
- create_queue() / retire_queue(): queue lifecycle
- set_requirements(): per-queue matchmaking requirement override

Commands receive an EnqueueResult describing what happened and decide how to
reply; nothing here talks to Discord.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from bot.database.models import Player, Queue
from bot.services.matchmaking_settings import (
    MatchmakingRequirement, MatchmakingSettingsProvider, flatten_requirements
)
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class QueueOperationError(Exception):
    """Base exception for queue operation errors"""
    pass


class QueueValidationError(QueueOperationError):
    """Raised when queue input validation fails"""
    pass


class EnqueueStatus(Enum):
    QUEUED = "queued"
    UNQUEUED = "unqueued"
    ALREADY_QUEUED = "already_queued"
    NOT_REGISTERED = "not_registered"
    QUEUE_NOT_FOUND = "queue_not_found"
    QUEUE_EXPIRED = "queue_expired"
    BANNED = "banned"
    PENDING_LIMIT = "pending_limit"


@dataclass
class EnqueueResult:
    status: EnqueueStatus
    queue_name: str
    player: Optional[Player] = None
    queue: Optional[Queue] = None

    @property
    def ok(self) -> bool:
        return self.status in (EnqueueStatus.QUEUED, EnqueueStatus.UNQUEUED,
                               EnqueueStatus.ALREADY_QUEUED)


class QueueOperations:
    """
    Queue membership and lifecycle operations.

    A successful join schedules `trigger(queue_name)` after the configured
    join delay, so a burst of joins is matched in one round.
    """

    def __init__(self, database, settings: MatchmakingSettingsProvider, scheduler,
                 trigger: Optional[Callable[[str], Awaitable]] = None):
        self.db = database
        self.settings = settings
        self.scheduler = scheduler
        self.trigger = trigger
        self.logger = logger

    def schedule_trigger(self, queue_name: str):
        """Schedule a matchmaking run for a queue after the join delay."""
        if self.trigger is None:
            return None
        delay = self.settings.global_settings().join_trigger_delay_seconds
        return self.scheduler.schedule(
            delay, self.trigger, queue_name, name=f"matchmake:{queue_name}"
        )

    async def enqueue(self, discord_id: int, queue_name: str, silent: bool = False,
                      auto: bool = False, trigger: bool = True) -> EnqueueResult:
        """
        Toggle a player's presence in a queue's waiting pool.

        Args:
            discord_id: Discord user ID of the player
            queue_name: Queue name, case-insensitive
            silent: Never remove an existing entry (autoqueue and reactions)
            auto: Mark the entry, new or existing, as automatically enqueued
            trigger: Schedule a matchmaking run when an entry is created

        Returns:
            EnqueueResult with the outcome
        """
        player = await self.db.get_player_by_discord_id(discord_id)
        if player is None:
            return EnqueueResult(EnqueueStatus.NOT_REGISTERED, queue_name)

        queue = await self.db.get_queue_by_name(queue_name)
        if queue is None:
            return EnqueueResult(EnqueueStatus.QUEUE_NOT_FOUND, queue_name, player)
        if queue.expired:
            return EnqueueResult(EnqueueStatus.QUEUE_EXPIRED, queue.name, player, queue)

        # Leaving is always allowed, banned or not
        existing = await self.db.get_waiting_entry(player.id, queue.id)
        if existing is not None and not silent:
            await self.db.delete_waiting_entry(existing.id)
            self.logger.info(f"{player.name} left {queue.name}")
            return EnqueueResult(EnqueueStatus.UNQUEUED, queue.name, player, queue)

        if player.banned:
            return EnqueueResult(EnqueueStatus.BANNED, queue.name, player, queue)

        if existing is not None:
            if auto and not existing.auto_enqueued:
                await self.db.mark_waiting_entry_auto(existing.id)
            return EnqueueResult(EnqueueStatus.ALREADY_QUEUED, queue.name, player, queue)

        settings = self.settings.for_queue(queue)
        pending = await self.db.count_pending_matches(player.id, queue.id)
        if pending >= settings.pending_match_cap:
            return EnqueueResult(EnqueueStatus.PENDING_LIMIT, queue.name, player, queue)

        await self.db.create_waiting_entry(player.id, queue.id, auto_enqueued=auto)
        self.logger.info(f"{player.name} joined {queue.name}{' (auto)' if auto else ''}")
        if trigger:
            self.schedule_trigger(queue.name)
        return EnqueueResult(EnqueueStatus.QUEUED, queue.name, player, queue)

    async def toggle_autoqueue(self, discord_id: int,
                               queue_name: str) -> Tuple[bool, Optional[EnqueueResult]]:
        """
        Turn autoqueue on or off for a player in a queue.

        Enabling also enqueues the player silently. Disabling leaves any
        current waiting entry in place.

        Returns:
            (autoqueue now enabled, EnqueueResult) where the result is None
            when autoqueue was switched off
        """
        player = await self.db.get_player_by_discord_id(discord_id)
        if player is None:
            return False, EnqueueResult(EnqueueStatus.NOT_REGISTERED, queue_name)
        queue = await self.db.get_queue_by_name(queue_name)
        if queue is None:
            return False, EnqueueResult(EnqueueStatus.QUEUE_NOT_FOUND, queue_name, player)
        if queue.expired:
            return False, EnqueueResult(EnqueueStatus.QUEUE_EXPIRED, queue.name, player, queue)

        existing = await self.db.get_autoqueue(player.id, queue.id)
        if existing is not None:
            await self.db.delete_autoqueue(existing.id)
            self.logger.info(f"{player.name} disabled autoqueue for {queue.name}")
            return False, None

        await self.db.create_autoqueue(player.id, queue.id)
        self.logger.info(f"{player.name} enabled autoqueue for {queue.name}")
        result = await self.enqueue(discord_id, queue.name, silent=True, auto=True)
        return True, result

    async def get_player_queues(self, discord_id: int) -> Optional[List[Queue]]:
        """Queues the player is waiting in, or None if they are not registered."""
        player = await self.db.get_player_by_discord_id(discord_id)
        if player is None:
            return None
        return await self.db.get_player_waiting_queues(player.id)

    # ============================================================================
    # Queue lifecycle
    # ============================================================================

    async def create_queue(self, name: str, message_id: Optional[int] = None,
                           reaction: Optional[str] = None,
                           required_role: Optional[int] = None) -> Queue:
        """Create a queue, or update the join message settings of an existing one."""
        name = name.strip()
        if not name or len(name) > 100:
            raise QueueValidationError("Queue name must be 1-100 characters")
        if any(char.isspace() for char in name):
            raise QueueValidationError("Queue name cannot contain spaces")
        if (message_id is None) != (reaction is None):
            raise QueueValidationError("A join message needs both a message ID and a reaction")

        queue = await self.db.upsert_queue(name, message_id, reaction, required_role)
        self.logger.info(f"Queue {queue.name} saved (message={message_id}, reaction={reaction})")
        return queue

    async def retire_queue(self, name: str) -> Tuple[Queue, int, int]:
        """
        Expire a queue and clear its waiting pool and autoqueue entries.

        Returns:
            (queue, waiting entries removed, autoqueue entries removed)
        """
        queue = await self.db.get_queue_by_name(name)
        if queue is None:
            raise QueueValidationError(f"Queue '{name}' not found")
        waiting, autoqueues = await self.db.retire_queue(queue.id)
        self.logger.info(
            f"Queue {queue.name} retired ({waiting} waiting, {autoqueues} autoqueue entries removed)"
        )
        return queue, waiting, autoqueues

    async def set_requirements(self, name: str,
                               requirements: Optional[Sequence[MatchmakingRequirement]]) -> Queue:
        """Store a queue-specific requirement list, or clear it with None."""
        queue = await self.db.get_queue_by_name(name)
        if queue is None:
            raise QueueValidationError(f"Queue '{name}' not found")
        payload = json.dumps(flatten_requirements(requirements)) if requirements else None
        await self.db.set_queue_requirements(queue.id, payload)
        self.logger.info(f"Matchmaking requirements for {queue.name} set to {payload}")
        return queue
