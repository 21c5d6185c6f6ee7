from typing import Optional, List, Sequence, Tuple
from datetime import datetime
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlalchemy import select, update, delete, func, or_

from bot.config import Config
from bot.constants import MatchResultConstants
from bot.database.models import (
    Base, Player, Queue, PlayerRating, WaitingEntry, AutoQueue, Match, utc_now
)
from bot.utils.logger import setup_logger


class WaitingEntryMissingError(Exception):
    """Raised when a waiting entry disappeared before its match was created"""
    pass


class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        # Convert sqlite URL to async if needed
        database_url = self.database_url
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
            future=True
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context are committed together on success,
        or rolled back together on failure. Exceptions must be allowed to
        propagate out of the context for rollback to occur.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    # Player operations
    async def get_player_by_discord_id(self, discord_id: int) -> Optional[Player]:
        """Get a player by their Discord ID"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Player).where(Player.discord_id == discord_id)
            )
            return result.scalar_one_or_none()

    async def get_player_by_name(self, name: str) -> Optional[Player]:
        """Get a player by name, case-insensitively"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Player).where(Player.lowercase_name == name.lower())
            )
            return result.scalar_one_or_none()

    async def create_player(self, discord_id: int, name: str) -> Player:
        """Create a new player"""
        async with self.transaction() as session:
            player = Player(
                discord_id=discord_id,
                name=name,
                lowercase_name=name.lower(),
                banned=False
            )
            session.add(player)
            await session.flush()
            return player

    async def rename_player(self, player_id: int, name: str):
        async with self.transaction() as session:
            await session.execute(
                update(Player)
                .where(Player.id == player_id)
                .values(name=name, lowercase_name=name.lower())
            )

    async def set_player_banned(self, player_id: int, banned: bool) -> Tuple[int, int]:
        """
        Set a player's ban flag. A ban also removes the player from every
        waiting pool and autoqueue in the same transaction.

        Returns:
            (waiting entries removed, autoqueue entries removed)
        """
        async with self.transaction() as session:
            await session.execute(
                update(Player).where(Player.id == player_id).values(banned=banned)
            )
            if not banned:
                return 0, 0
            waiting = await session.execute(
                delete(WaitingEntry).where(WaitingEntry.player_id == player_id)
            )
            autoqueues = await session.execute(
                delete(AutoQueue).where(AutoQueue.player_id == player_id)
            )
            return waiting.rowcount, autoqueues.rowcount

    # Queue operations
    async def get_queue_by_name(self, name: str) -> Optional[Queue]:
        """Get a queue by name, case-insensitively"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Queue).where(Queue.lowercase_name == name.lower())
            )
            return result.scalar_one_or_none()

    async def get_queue_by_reaction(self, message_id: int, reaction: str) -> Optional[Queue]:
        """Get the queue whose join message and emoji match a reaction"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Queue).where(
                    Queue.message_id == message_id,
                    Queue.reaction == reaction
                )
            )
            return result.scalars().first()

    async def get_active_queues(self) -> List[Queue]:
        """Get all non-expired queues"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Queue).where(Queue.expired == False).order_by(Queue.id)
            )
            return list(result.scalars().all())

    async def upsert_queue(self, name: str, message_id: Optional[int] = None,
                           reaction: Optional[str] = None,
                           required_role: Optional[int] = None) -> Queue:
        """Create a queue, or update the Discord settings of an existing one"""
        async with self.transaction() as session:
            result = await session.execute(
                select(Queue).where(Queue.lowercase_name == name.lower())
            )
            queue = result.scalar_one_or_none()
            if queue is None:
                queue = Queue(name=name, lowercase_name=name.lower(), expired=False)
                session.add(queue)
            queue.message_id = message_id
            queue.reaction = reaction
            queue.required_role = required_role
            await session.flush()
            return queue

    async def set_queue_requirements(self, queue_id: int, requirements_json: Optional[str]):
        async with self.transaction() as session:
            await session.execute(
                update(Queue)
                .where(Queue.id == queue_id)
                .values(matchmaking_requirements=requirements_json)
            )

    async def retire_queue(self, queue_id: int) -> Tuple[int, int]:
        """
        Mark a queue expired and delete its waiting and autoqueue entries.

        Returns:
            (waiting entries removed, autoqueue entries removed)
        """
        async with self.transaction() as session:
            await session.execute(
                update(Queue).where(Queue.id == queue_id).values(expired=True)
            )
            waiting = await session.execute(
                delete(WaitingEntry).where(WaitingEntry.queue_id == queue_id)
            )
            autoqueues = await session.execute(
                delete(AutoQueue).where(AutoQueue.queue_id == queue_id)
            )
            return waiting.rowcount, autoqueues.rowcount

    # Waiting pool operations
    async def get_waiting_entries(self, queue_id: int) -> List[WaitingEntry]:
        """Waiting entries of a queue, oldest first, with players loaded"""
        async with self.get_session() as session:
            result = await session.execute(
                select(WaitingEntry)
                .options(selectinload(WaitingEntry.player))
                .where(WaitingEntry.queue_id == queue_id)
                .order_by(WaitingEntry.enqueued_at.asc(), WaitingEntry.id.asc())
            )
            return list(result.scalars().all())

    async def get_waiting_entry(self, player_id: int, queue_id: int) -> Optional[WaitingEntry]:
        async with self.get_session() as session:
            result = await session.execute(
                select(WaitingEntry).where(
                    WaitingEntry.player_id == player_id,
                    WaitingEntry.queue_id == queue_id
                )
            )
            return result.scalar_one_or_none()

    async def get_player_waiting_queues(self, player_id: int) -> List[Queue]:
        """Queues a player is currently waiting in"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Queue)
                .join(WaitingEntry, WaitingEntry.queue_id == Queue.id)
                .where(WaitingEntry.player_id == player_id)
                .order_by(Queue.name)
            )
            return list(result.scalars().all())

    async def create_waiting_entry(self, player_id: int, queue_id: int,
                                   auto_enqueued: bool = False) -> WaitingEntry:
        async with self.transaction() as session:
            entry = WaitingEntry(
                player_id=player_id,
                queue_id=queue_id,
                enqueued_at=utc_now(),
                auto_enqueued=auto_enqueued
            )
            session.add(entry)
            await session.flush()
            return entry

    async def delete_waiting_entry(self, entry_id: int) -> bool:
        async with self.transaction() as session:
            result = await session.execute(
                delete(WaitingEntry).where(WaitingEntry.id == entry_id)
            )
            return result.rowcount > 0

    async def touch_waiting_entry(self, entry_id: int, enqueued_at: datetime):
        """Reset a waiting entry's enqueue time"""
        async with self.transaction() as session:
            await session.execute(
                update(WaitingEntry)
                .where(WaitingEntry.id == entry_id)
                .values(enqueued_at=enqueued_at)
            )

    async def mark_waiting_entry_auto(self, entry_id: int):
        async with self.transaction() as session:
            await session.execute(
                update(WaitingEntry)
                .where(WaitingEntry.id == entry_id)
                .values(auto_enqueued=True)
            )

    # Rating operations
    async def ensure_player_ratings(self, queue_id: int, player_ids: Sequence[int]) -> int:
        """
        Create default rating rows for players that have none in this queue.

        Returns:
            Number of rating rows created
        """
        async with self.transaction() as session:
            result = await session.execute(
                select(PlayerRating.player_id).where(
                    PlayerRating.queue_id == queue_id,
                    PlayerRating.player_id.in_(list(player_ids))
                )
            )
            existing = set(result.scalars().all())
            missing = [player_id for player_id in dict.fromkeys(player_ids) if player_id not in existing]
            for player_id in missing:
                session.add(PlayerRating(
                    player_id=player_id,
                    queue_id=queue_id,
                    rating=Config.STARTING_RATING,
                    peak_rating=Config.STARTING_RATING
                ))
            return len(missing)

    async def get_queue_ratings(self, queue_id: int) -> List[Tuple[int, int]]:
        """(player_id, rating) for non-banned players of a queue, highest rating first"""
        async with self.get_session() as session:
            result = await session.execute(
                select(PlayerRating.player_id, PlayerRating.rating)
                .join(Player, Player.id == PlayerRating.player_id)
                .where(PlayerRating.queue_id == queue_id, Player.banned == False)
                .order_by(PlayerRating.rating.desc(), PlayerRating.player_id.asc())
            )
            return [(row.player_id, row.rating) for row in result.all()]

    # Match operations
    async def get_recent_decided_matches(self, player_id: int, queue_id: int,
                                         limit: int) -> List[Match]:
        """A player's most recently decided matches in a queue, newest first"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Match)
                .where(
                    Match.queue_id == queue_id,
                    or_(Match.player1_id == player_id, Match.player2_id == player_id),
                    Match.result != MatchResultConstants.PENDING
                )
                .order_by(
                    func.coalesce(Match.decided_at, Match.created_at).desc(),
                    Match.id.desc()
                )
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_pending_matches(self, player_id: int, queue_id: int) -> List[Match]:
        """A player's pending matches in a queue, oldest first"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Match)
                .where(
                    Match.queue_id == queue_id,
                    or_(Match.player1_id == player_id, Match.player2_id == player_id),
                    Match.result == MatchResultConstants.PENDING
                )
                .order_by(Match.created_at.asc(), Match.id.asc())
            )
            return list(result.scalars().all())

    async def count_pending_matches(self, player_id: int, queue_id: int) -> int:
        async with self.get_session() as session:
            result = await session.execute(
                select(func.count(Match.id)).where(
                    Match.queue_id == queue_id,
                    or_(Match.player1_id == player_id, Match.player2_id == player_id),
                    Match.result == MatchResultConstants.PENDING
                )
            )
            return result.scalar() or 0

    async def create_match_from_entries(self, queue_id: int, entry1_id: int, entry2_id: int,
                                        rank1: str, rank2: str) -> Match:
        """
        Atomically create a pending match and remove both waiting entries.

        Raises:
            WaitingEntryMissingError: If either entry no longer exists; nothing
                is written in that case.
        """
        async with self.transaction() as session:
            result = await session.execute(
                select(WaitingEntry).where(WaitingEntry.id.in_([entry1_id, entry2_id]))
            )
            entries = {entry.id: entry for entry in result.scalars().all()}
            for entry_id in (entry1_id, entry2_id):
                if entry_id not in entries or entries[entry_id].queue_id != queue_id:
                    raise WaitingEntryMissingError(
                        f"Waiting entry {entry_id} is no longer in queue {queue_id}"
                    )

            match = Match(
                queue_id=queue_id,
                player1_id=entries[entry1_id].player_id,
                player2_id=entries[entry2_id].player_id,
                result=MatchResultConstants.PENDING,
                rank1=rank1,
                rank2=rank2,
                created_at=utc_now()
            )
            session.add(match)
            await session.delete(entries[entry1_id])
            await session.delete(entries[entry2_id])
            await session.flush()
            return match

    # Autoqueue operations
    async def get_autoqueue(self, player_id: int, queue_id: int) -> Optional[AutoQueue]:
        async with self.get_session() as session:
            result = await session.execute(
                select(AutoQueue).where(
                    AutoQueue.player_id == player_id,
                    AutoQueue.queue_id == queue_id
                )
            )
            return result.scalar_one_or_none()

    async def create_autoqueue(self, player_id: int, queue_id: int) -> AutoQueue:
        async with self.transaction() as session:
            row = AutoQueue(player_id=player_id, queue_id=queue_id)
            session.add(row)
            await session.flush()
            return row

    async def delete_autoqueue(self, autoqueue_id: int):
        async with self.transaction() as session:
            await session.execute(delete(AutoQueue).where(AutoQueue.id == autoqueue_id))

    async def get_autoqueue_entries(self, queue_id: int) -> List[AutoQueue]:
        """Autoqueue rows of a queue, with players loaded"""
        async with self.get_session() as session:
            result = await session.execute(
                select(AutoQueue)
                .options(selectinload(AutoQueue.player))
                .where(AutoQueue.queue_id == queue_id)
                .order_by(AutoQueue.id)
            )
            return list(result.scalars().all())
