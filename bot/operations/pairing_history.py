"""
Pairing history collection for the matchmaker.

For each waiting player, fetches who they are still scheduled to play and who
they played most recently in the queue being matchmade. Read-only.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from bot.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class PairingHistory:
    """Opponent ids a player should preferably not be paired with again."""
    player_id: int
    pending_opponents: Tuple[int, ...]   # pending matches, oldest first
    recent_opponents: Tuple[int, ...]    # decided matches, newest first


class PairingHistoryCollector:
    """Builds PairingHistory for every waiting player of a queue."""

    def __init__(self, database, recent_window: int = 5):
        self.db = database
        self.recent_window = recent_window

    async def collect_for_player(self, queue_id: int, player_id: int) -> PairingHistory:
        pending = await self.db.get_pending_matches(player_id, queue_id)
        recent = await self.db.get_recent_decided_matches(player_id, queue_id, self.recent_window)
        return PairingHistory(
            player_id=player_id,
            pending_opponents=tuple(match.opponent_of(player_id) for match in pending),
            recent_opponents=tuple(match.opponent_of(player_id) for match in recent),
        )

    async def collect(self, queue_id: int, player_ids: Sequence[int]) -> List[PairingHistory]:
        """History for each player, in the order given. Completes before returning."""
        histories = []
        for player_id in player_ids:
            histories.append(await self.collect_for_player(queue_id, player_id))
        logger.debug(f"Collected pairing history for {len(histories)} players in queue {queue_id}")
        return histories
