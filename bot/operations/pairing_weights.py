"""
Pairing weight construction for the matchmaker.

Each ordered pair (i, j) of waiting players gets an integer penalty counting
the reasons not to pair them, encoded positionally so a more severe reason
always outweighs every combination of less severe ones:

1. Skill distance band, from the percentile gap (most severe)
2. A pending match between i and j, oldest pending slot first
3. j appearing in i's recently decided matches, newest first (least severe)

History slots follow a fixed rule: for each slot multiply by the base, add 1
when j occupies the slot, multiply by the base again. The band term sits
above every history digit. Edge weights are the ceiling minus the larger of
the two directed penalties, so the solver must maximize.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from bot.constants import WeightConstants
from bot.operations.pairing_history import PairingHistory

Edge = Tuple[int, int, int]


@dataclass(frozen=True)
class PairingGraph:
    """Complete weighted graph over a waiting pool, ready for the solver."""
    base: int
    history_width: int
    penalties: Tuple[Tuple[int, ...], ...]  # directed, penalties[i][j]
    edges: Tuple[Edge, ...]                 # (i, j, weight) with i < j

    @property
    def size(self) -> int:
        return len(self.penalties)


class PairingWeightBuilder:
    """Turns percentiles and pairing history into a PairingGraph."""

    def __init__(self, max_matches: int, history_window: int = 5):
        if max_matches < 2:
            raise ValueError("max_matches must be at least 2")
        self.max_matches = max_matches
        self.history_window = history_window

    def base_for(self, pool_size: int) -> int:
        # A matching sums pool_size / 2 edges; the base must absorb that sum
        # without one priority level carrying into the next.
        return max(self.max_matches, pool_size, 2)

    def history_width(self, histories: Sequence[PairingHistory]) -> int:
        longest_pending = max((len(h.pending_opponents) for h in histories), default=0)
        return max(self.history_window, longest_pending)

    @staticmethod
    def distance_band_exponent(distance: float) -> Optional[int]:
        """Exponent of the band a percentile distance falls in, None below all bands."""
        for threshold, exponent in WeightConstants.DISTANCE_BANDS:
            if distance >= threshold:
                return exponent
        return None

    def band_penalty(self, distance: float, base: int, width: int) -> int:
        exponent = self.distance_band_exponent(distance)
        if exponent is None:
            return 0
        return base ** (2 * width + exponent)

    @staticmethod
    def history_slots(history: PairingHistory, width: int) -> List[Optional[int]]:
        """Pending opponents, then recent opponents, padded to width slots."""
        slots: List[Optional[int]] = list(history.pending_opponents)
        remaining = max(width - len(slots), 0)
        slots.extend(history.recent_opponents[:remaining])
        slots.extend([None] * (width - len(slots)))
        return slots

    def history_penalty(self, history: PairingHistory, opponent_id: int,
                        base: int, width: int) -> int:
        weight = 0
        for occupant in self.history_slots(history, width):
            weight *= base
            if occupant == opponent_id:
                weight += 1
            weight *= base
        return weight

    @staticmethod
    def max_history_penalty(base: int, width: int) -> int:
        """Penalty when the opponent fills every history slot."""
        return sum(base ** (2 * slot + 1) for slot in range(width))

    def edge_ceiling(self, base: int, width: int) -> int:
        return base ** (2 * width + WeightConstants.EDGE_CEILING_EXPONENT)

    def directed_penalty(self, i: int, j: int, percentiles: Sequence[float],
                         histories: Sequence[PairingHistory], base: int, width: int) -> int:
        weight = self.history_penalty(histories[i], histories[j].player_id, base, width)
        return weight + self.band_penalty(abs(percentiles[i] - percentiles[j]), base, width)

    def build(self, percentiles: Sequence[float],
              histories: Sequence[PairingHistory]) -> PairingGraph:
        """
        Build the complete graph over a pool.

        Args:
            percentiles: Rank percentile per pool index
            histories: PairingHistory per pool index, same order

        Returns:
            PairingGraph whose edges favor the least objectionable pairings
        """
        if len(percentiles) != len(histories):
            raise ValueError("percentiles and histories must describe the same pool")

        size = len(histories)
        base = self.base_for(size)
        width = self.history_width(histories)

        penalties = tuple(
            tuple(
                0 if i == j else self.directed_penalty(i, j, percentiles, histories, base, width)
                for j in range(size)
            )
            for i in range(size)
        )

        ceiling = self.edge_ceiling(base, width)
        edges = tuple(
            (i, j, ceiling - max(penalties[i][j], penalties[j][i]))
            for i in range(size)
            for j in range(i + 1, size)
        )

        return PairingGraph(base=base, history_width=width, penalties=penalties, edges=edges)
