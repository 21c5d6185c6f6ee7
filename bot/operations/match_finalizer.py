"""
Match finalization for the matchmaker.

Turns one solved pair into a pending Match: the match row is created and both
waiting entries are removed in a single transaction, then the pairing is
announced.
"""

from typing import Optional

from bot.database.database import WaitingEntryMissingError
from bot.database.models import Match, Queue, WaitingEntry
from bot.services.notifier import MatchSide
from bot.utils.ranking import RankedPlayer, tier_label
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class MatchFinalizer:
    """Materializes solved pairs as pending matches."""

    def __init__(self, database, notifier):
        self.db = database
        self.notifier = notifier
        self.logger = logger

    async def finalize(self, queue: Queue,
                       entry1: WaitingEntry, ranked1: RankedPlayer,
                       entry2: WaitingEntry, ranked2: RankedPlayer) -> Optional[Match]:
        """
        Create the match for one pair.

        All-or-nothing: if either waiting entry vanished, nothing is written,
        the pair is skipped and None is returned. Other persistence errors
        propagate after the transaction rolls back.

        Returns:
            The created Match, or None when the pair was skipped
        """
        rank1 = tier_label(ranked1.percentile)
        rank2 = tier_label(ranked2.percentile)

        try:
            match = await self.db.create_match_from_entries(
                queue.id, entry1.id, entry2.id, rank1, rank2
            )
        except WaitingEntryMissingError as e:
            self.logger.error(
                f"Skipping pair {entry1.player.name} vs {entry2.player.name} in {queue.name}: {e}"
            )
            return None

        self.logger.info(
            f"Match {match.id} created in {queue.name}: "
            f"{entry1.player.name} ({rank1}) vs {entry2.player.name} ({rank2})"
        )

        await self.notifier.announce_match(
            match.id,
            queue.name,
            MatchSide(entry1.player.discord_id, entry1.player.name, rank1),
            MatchSide(entry2.player.discord_id, entry2.player.name, rank2),
        )
        return match
