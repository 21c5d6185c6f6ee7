from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text,
    ForeignKey, BigInteger, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

from bot.constants import MatchResultConstants

Base = declarative_base()


def utc_now() -> datetime:
    """Naive UTC timestamp, the form SQLite round-trips unchanged."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    discord_id = Column(BigInteger, unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    lowercase_name = Column(String(100), nullable=False, unique=True)
    banned = Column(Boolean, default=False, nullable=False)

    # Metadata
    registered_at = Column(DateTime, default=utc_now)

    ratings = relationship("PlayerRating", back_populates="player", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Player(discord_id={self.discord_id}, name='{self.name}')>"

class Queue(Base):
    __tablename__ = 'queues'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    lowercase_name = Column(String(100), nullable=False, unique=True)
    expired = Column(Boolean, default=False, nullable=False)

    # Discord integration: reacting to message_id with reaction enqueues
    message_id = Column(BigInteger, nullable=True, index=True)
    reaction = Column(String(100), nullable=True)
    required_role = Column(BigInteger, nullable=True)

    # JSON list overriding the global matchmaking requirements
    matchmaking_requirements = Column(Text, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return f"<Queue(name='{self.name}', expired={self.expired})>"

class PlayerRating(Base):
    __tablename__ = 'player_ratings'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    queue_id = Column(Integer, ForeignKey('queues.id'), nullable=False)

    rating = Column(Integer, default=1500, nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    draws = Column(Integer, default=0, nullable=False)
    losses = Column(Integer, default=0, nullable=False)
    aborts = Column(Integer, default=0, nullable=False)
    peak_rating = Column(Integer, default=1500, nullable=False)

    player = relationship("Player", back_populates="ratings")
    queue = relationship("Queue")

    __table_args__ = (
        UniqueConstraint('player_id', 'queue_id'),
        Index('ix_player_ratings_queue_rating', 'queue_id', 'rating'),
    )

    def __repr__(self):
        return f"<PlayerRating(player_id={self.player_id}, queue_id={self.queue_id}, rating={self.rating})>"

class WaitingEntry(Base):
    """A player looking for a match in a queue."""
    __tablename__ = 'waiting_entries'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    queue_id = Column(Integer, ForeignKey('queues.id'), nullable=False)
    enqueued_at = Column(DateTime, default=utc_now, nullable=False)
    auto_enqueued = Column(Boolean, default=False, nullable=False)

    player = relationship("Player")
    queue = relationship("Queue")

    __table_args__ = (UniqueConstraint('player_id', 'queue_id'),)

    def __repr__(self):
        return f"<WaitingEntry(player_id={self.player_id}, queue_id={self.queue_id}, enqueued_at={self.enqueued_at})>"

class AutoQueue(Base):
    """Opt-in to being requeued automatically after each matchmaking round."""
    __tablename__ = 'autoqueues'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    queue_id = Column(Integer, ForeignKey('queues.id'), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    player = relationship("Player")
    queue = relationship("Queue")

    __table_args__ = (UniqueConstraint('player_id', 'queue_id'),)

class Match(Base):
    __tablename__ = 'matches'

    id = Column(Integer, primary_key=True)
    queue_id = Column(Integer, ForeignKey('queues.id'), nullable=False)
    player1_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    player2_id = Column(Integer, ForeignKey('players.id'), nullable=False)

    # PENDING, DRAW, ABORT or the winner's lowercase name
    result = Column(String(100), default=MatchResultConstants.PENDING, nullable=False)
    rating_change1 = Column(Integer, nullable=True)
    rating_change2 = Column(Integer, nullable=True)

    # Tier labels at creation time
    rank1 = Column(String(20))
    rank2 = Column(String(20))

    created_at = Column(DateTime, default=utc_now, nullable=False)
    decided_at = Column(DateTime, nullable=True)

    queue = relationship("Queue")
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])

    __table_args__ = (
        Index('ix_matches_queue_result', 'queue_id', 'result'),
    )

    def opponent_of(self, player_id: int) -> int:
        """Return the other participant's player id."""
        if self.player1_id == player_id:
            return self.player2_id
        if self.player2_id == player_id:
            return self.player1_id
        raise ValueError(f"Player {player_id} did not play match {self.id}")

    def __repr__(self):
        return f"<Match(id={self.id}, queue_id={self.queue_id}, result='{self.result}')>"

class Configuration(Base):
    __tablename__ = 'configurations'

    id = Column(Integer, primary_key=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(Text, nullable=False)  # JSON-encoded
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, nullable=False)
    action = Column(String(50), nullable=False)
    details = Column(Text)  # JSON-encoded
    created_at = Column(DateTime, default=utc_now)
