"""
Matchmaking Operations Module

Orchestrates one matchmaking round for a queue:

    lock -> gate -> lazy ratings -> percentiles -> history -> weights
         -> solver -> finalize pairs -> schedule autoqueue requeue -> odd rollover

Only one round per queue runs at a time. A trigger that finds the queue's lock
held is dropped; the periodic sweep and later joins provide the retry. A round
never raises: every exit is described by a MatchmakingReport and the lock is
released on every path.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from bot.config import Config
from bot.database.models import Queue, WaitingEntry, utc_now
from bot.operations.match_finalizer import MatchFinalizer
from bot.operations.matching_solver import MatchingError, solve_pairs
from bot.operations.pairing_history import PairingHistoryCollector
from bot.operations.pairing_weights import Edge, PairingWeightBuilder
from bot.operations.queue_operations import EnqueueStatus, QueueOperations
from bot.services.matchmaker_locks import MatchmakerLockRegistry
from bot.services.matchmaking_settings import (
    MatchmakingRequirement, MatchmakingSettings, MatchmakingSettingsProvider
)
from bot.utils.ranking import percentiles_by_player
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)

ODD_PLAYER_MESSAGE = (
    'There were an odd number of players in the queue during this round '
    'of matchmaking, and we were unable to find you a match. You are still in the '
    'queue and will be matched with an opponent soon.'
)


class MatchmakingError(Exception):
    """Base exception for matchmaking errors"""
    pass


class MatchmakingDataError(MatchmakingError):
    """Raised when stored data contradicts what the round expects"""
    pass


class MatchmakingOutcome(Enum):
    LOCKED = "locked"
    QUEUE_NOT_FOUND = "queue_not_found"
    NO_PLAYERS = "no_players"
    GATE_CLOSED = "gate_closed"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class MatchmakingReport:
    """What one matchmaking round did."""
    queue_name: str
    outcome: Optional[MatchmakingOutcome] = None
    phase: str = "start"
    match_ids: List[int] = field(default_factory=list)
    deferred_player_id: Optional[int] = None
    autoqueued_player_ids: List[int] = field(default_factory=list)
    skipped_pairs: int = 0
    error: Optional[str] = None


def matchmaking_gate_open(pool_size: int, oldest_wait_ms: float,
                          requirements: Sequence[MatchmakingRequirement],
                          expired: bool = False) -> bool:
    """
    Whether a queue may matchmake now.

    Open when any requirement has both its pool size and its wait time met by
    the current pool and its oldest entry. Always closed for expired queues.
    """
    if expired:
        return False
    return any(
        pool_size >= requirement.min_players and oldest_wait_ms >= requirement.min_wait_ms
        for requirement in requirements
    )


class MatchmakingOperations:
    """
    Matchmaker for all queues.

    Owns the per-queue lock registry, the last graph built per queue, and the
    QueueOperations used both by join commands and by autoqueue requeues.
    """

    def __init__(self, database, notifier, scheduler,
                 locks: Optional[MatchmakerLockRegistry] = None,
                 settings: Optional[MatchmakingSettingsProvider] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.db = database
        self.notifier = notifier
        self.scheduler = scheduler
        self.locks = locks or MatchmakerLockRegistry()
        self.settings = settings or MatchmakingSettingsProvider()
        self.clock = clock
        self.finalizer = MatchFinalizer(database, notifier)
        self.queue_ops = QueueOperations(
            database, self.settings, scheduler, trigger=self.run_matchmaking
        )
        self.last_edges: Dict[str, Tuple[Edge, ...]] = {}
        self.logger = logger

    # ============================================================================
    # Round entry points
    # ============================================================================

    async def run_matchmaking(self, queue_name: str) -> MatchmakingReport:
        """
        Run one matchmaking round for a queue.

        Safe to call from any trigger: the periodic sweep, a join, or an admin
        command. Returns immediately with LOCKED if a round is already running.
        """
        report = MatchmakingReport(queue_name=queue_name)

        async with self.locks.hold(queue_name) as acquired:
            if not acquired:
                self.logger.info(f"Matchmaker currently locked for {queue_name}")
                report.outcome = MatchmakingOutcome.LOCKED
                return report

            try:
                await self._run_round(report)
            except Exception as e:
                report.outcome = MatchmakingOutcome.FAILED
                report.error = str(e)
                self.logger.error(
                    f"Matchmaking for {queue_name} aborted during {report.phase}: {e}",
                    exc_info=True
                )
                await self.notifier.notify_admins(
                    f"⚠️ Matchmaking for `{queue_name}` failed during {report.phase}: {e}"
                )

        return report

    async def try_matchmaking_all(self, spacing_seconds: Optional[float] = None) -> List[MatchmakingReport]:
        """Run a round for every active queue, one after another."""
        if spacing_seconds is None:
            spacing_seconds = Config.SWEEP_QUEUE_SPACING_SECONDS

        reports = []
        queues = await self.db.get_active_queues()
        for index, queue in enumerate(queues):
            if index and spacing_seconds:
                await asyncio.sleep(spacing_seconds)
            reports.append(await self.run_matchmaking(queue.name))
        return reports

    def clear_locks(self) -> int:
        """Administrative override: force-release every queue lock."""
        return self.locks.clear_all()

    # ============================================================================
    # Round phases
    # ============================================================================

    async def _run_round(self, report: MatchmakingReport):
        report.phase = "loading waiting pool"
        queue = await self.db.get_queue_by_name(report.queue_name)
        if queue is None:
            self.logger.warning(f"Matchmaking requested for unknown queue {report.queue_name}")
            report.outcome = MatchmakingOutcome.QUEUE_NOT_FOUND
            return

        entries = await self.db.get_waiting_entries(queue.id)
        banned = [entry.player.name for entry in entries if entry.player.banned]
        if banned:
            self.logger.warning(f"Leaving banned players out of {queue.name}: {', '.join(banned)}")
            entries = [entry for entry in entries if not entry.player.banned]
        if not entries:
            self.logger.info(f"No players waiting in {queue.name}")
            report.outcome = MatchmakingOutcome.NO_PLAYERS
            return

        settings = self.settings.for_queue(queue)
        now = self.clock()
        oldest_wait_ms = (now - entries[0].enqueued_at).total_seconds() * 1000
        if not matchmaking_gate_open(len(entries), oldest_wait_ms, settings.requirements, queue.expired):
            self.logger.info(
                f"Matchmaking conditions not met for {queue.name} "
                f"({len(entries)} waiting, oldest {oldest_wait_ms / 1000:.0f}s)"
            )
            report.outcome = MatchmakingOutcome.GATE_CLOSED
            return

        report.phase = "creating ratings"
        created = await self.db.ensure_player_ratings(queue.id, [entry.player_id for entry in entries])
        if created:
            self.logger.info(f"Created {created} rating row(s) for new players in {queue.name}")

        # The newest player sits out; they are only told once the pairs are in
        deferred = entries.pop() if len(entries) % 2 == 1 else None

        if entries:
            try:
                await self._pair_and_finalize(queue, entries, settings, report)
            finally:
                if report.autoqueued_player_ids:
                    self._schedule_requeue(queue.name, settings, report.autoqueued_player_ids)

        if deferred is not None:
            report.phase = "odd player rollover"
            await self._roll_over(queue, deferred, now)
            report.deferred_player_id = deferred.player_id

        report.outcome = MatchmakingOutcome.COMPLETED

    async def _roll_over(self, queue: Queue, entry: WaitingEntry, now: datetime):
        """Keep the newest entry waiting for the next round, with a fresh timestamp."""
        await self.db.touch_waiting_entry(entry.id, now)
        self.logger.info(f"{entry.player.name} rolled over to the next round of {queue.name}")
        await self.notifier.notify_player(entry.player.discord_id, ODD_PLAYER_MESSAGE)

    async def _pair_and_finalize(self, queue: Queue, entries: List[WaitingEntry],
                                 settings: MatchmakingSettings, report: MatchmakingReport):
        report.phase = "ranking"
        ranked = percentiles_by_player(await self.db.get_queue_ratings(queue.id))
        missing = [entry.player.name for entry in entries if entry.player_id not in ranked]
        if missing:
            raise MatchmakingDataError(
                f"No usable rating in {queue.name} for: {', '.join(missing)}"
            )

        report.phase = "collecting history"
        collector = PairingHistoryCollector(self.db, settings.recent_match_window)
        histories = await collector.collect(queue.id, [entry.player_id for entry in entries])

        report.phase = "building weights"
        builder = PairingWeightBuilder(settings.max_matches, settings.recent_match_window)
        graph = builder.build([ranked[entry.player_id].percentile for entry in entries], histories)
        self.last_edges[queue.name] = graph.edges

        report.phase = "solving"
        try:
            pairs = solve_pairs(graph.size, graph.edges)
        except MatchingError as e:
            raise MatchmakingDataError(str(e)) from e

        report.phase = "finalizing matches"
        for i, j in pairs:
            match = await self.finalizer.finalize(
                queue,
                entries[i], ranked[entries[i].player_id],
                entries[j], ranked[entries[j].player_id],
            )
            if match is None:
                report.skipped_pairs += 1
                continue
            report.match_ids.append(match.id)
            report.autoqueued_player_ids.extend(
                entry.player_id for entry in (entries[i], entries[j]) if entry.auto_enqueued
            )

    # ============================================================================
    # Autoqueue requeue
    # ============================================================================

    def _schedule_requeue(self, queue_name: str, settings: MatchmakingSettings,
                          player_ids: Sequence[int]):
        self.scheduler.schedule(
            settings.requeue_cooldown_seconds,
            self.requeue_autoqueue,
            queue_name,
            tuple(player_ids),
            name=f"requeue:{queue_name}"
        )

    async def requeue_autoqueue(self, queue_name: str,
                                player_ids: Optional[Sequence[int]] = None) -> int:
        """
        Re-enqueue autoqueued players of a queue.

        After a round only the matched players whose entries were auto-enqueued
        are passed in; without player_ids every autoqueued player is considered.
        Players who switched autoqueue off since are skipped. Each player goes
        through the normal enqueue checks (pending match cap, ban, expiry). One
        matchmaking trigger is scheduled if anyone was queued.

        Returns:
            Number of players put back in the waiting pool
        """
        queue = await self.db.get_queue_by_name(queue_name)
        if queue is None or queue.expired:
            return 0

        requeued = 0
        for row in await self.db.get_autoqueue_entries(queue.id):
            if player_ids is not None and row.player_id not in player_ids:
                continue
            result = await self.queue_ops.enqueue(
                row.player.discord_id, queue.name, silent=True, auto=True, trigger=False
            )
            if result.status == EnqueueStatus.QUEUED:
                requeued += 1

        if requeued:
            self.logger.info(f"Requeued {requeued} autoqueued player(s) to {queue.name}")
            self.queue_ops.schedule_trigger(queue.name)
        return requeued
