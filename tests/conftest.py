"""Shared fixtures: a temporary SQLite database and recording collaborators."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import update

from bot.constants import MatchResultConstants
from bot.database.database import Database
from bot.database.models import Match, PlayerRating, utc_now
from bot.operations.matchmaking_operations import MatchmakingOperations
from bot.services.matchmaker_locks import MatchmakerLockRegistry
from bot.services.matchmaking_settings import MatchmakingSettingsProvider


class RecordingNotifier:
    """Notifier double that keeps every message instead of sending it."""

    def __init__(self):
        self.announcements: List[tuple] = []
        self.direct_messages: List[tuple] = []
        self.admin_messages: List[str] = []

    async def announce_match(self, match_id, queue_name, side1, side2):
        self.announcements.append((match_id, queue_name, side1, side2))

    async def notify_player(self, discord_id, text):
        self.direct_messages.append((discord_id, text))

    async def notify_admins(self, text):
        self.admin_messages.append(text)


class ManualScheduler:
    """Scheduler double: records delayed calls and runs them on demand."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    def schedule(self, delay_seconds, callback, *args, name=None):
        call = {'delay': delay_seconds, 'callback': callback, 'args': args, 'name': name}
        self.calls.append(call)
        return call

    def named(self, prefix: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if (call['name'] or '').startswith(prefix)]

    async def run_all(self):
        calls, self.calls = self.calls, []
        for call in calls:
            await call['callback'](*call['args'])


class StaticConfigService:
    """Stands in for ConfigurationService with fixed overrides."""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self.values = values or {}

    def get(self, key, default=None):
        return self.values.get(key, default)


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'ladder.db'}")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def config_service():
    # Matchmake as soon as two players wait
    return StaticConfigService({'matchmaking.requirements': [2, 0]})


@pytest.fixture
def now():
    # Rounds run an hour after the players joined
    return utc_now() + timedelta(hours=1)


@pytest.fixture
def matchmaking(db, notifier, scheduler, config_service, now):
    return MatchmakingOperations(
        db, notifier, scheduler,
        locks=MatchmakerLockRegistry(),
        settings=MatchmakingSettingsProvider(config_service),
        clock=lambda: now
    )


@pytest.fixture
async def queue(db):
    return await db.upsert_queue("Ranked")


async def add_players(db, *names: str):
    """Register players with discord ids 1000, 1001, ... in the given order."""
    players = []
    for offset, name in enumerate(names):
        players.append(await db.create_player(1000 + offset, name))
    return players


async def set_rating(db, player_id: int, queue_id: int, rating: int):
    await db.ensure_player_ratings(queue_id, [player_id])
    async with db.transaction() as session:
        await session.execute(
            update(PlayerRating)
            .where(PlayerRating.player_id == player_id, PlayerRating.queue_id == queue_id)
            .values(rating=rating)
        )


async def add_match(db, queue_id: int, player1_id: int, player2_id: int,
                    result: str = MatchResultConstants.PENDING,
                    created_at: Optional[datetime] = None,
                    decided_at: Optional[datetime] = None) -> Match:
    async with db.transaction() as session:
        match = Match(
            queue_id=queue_id,
            player1_id=player1_id,
            player2_id=player2_id,
            result=result,
            created_at=created_at or utc_now(),
            decided_at=decided_at
        )
        session.add(match)
        await session.flush()
        return match
