"""
Rank and percentile utilities for queue ratings.

Provides the tie-aware percentile ranking consumed by the matchmaker and the
percentile -> tier label mapping shown in match announcements.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from bot.constants import TierConstants


@dataclass(frozen=True)
class RankedPlayer:
    """A rated player with its competition rank and rank percentile."""
    player_id: int
    rating: int
    rank: int           # 1-based, ties share the lowest rank of the group
    percentile: float   # 0.0 = top of the queue, 1.0 = bottom


def compute_percentiles(ratings: Sequence[Tuple[int, int]]) -> List[RankedPlayer]:
    """
    Rank every (player_id, rating) pair of a queue.

    Players with equal rating form a tie group. Each member gets the rank of
    the first index of its group (standard competition ranking) and the
    percentile (first_index + last_index) / 2 / (pool_size - 1). A pool of one
    player gets percentile 0.

    Args:
        ratings: (player_id, rating) pairs sorted by rating descending

    Returns:
        RankedPlayer list in input order

    Raises:
        ValueError: If the ratings are not sorted descending
    """
    for (_, previous), (_, current) in zip(ratings, ratings[1:]):
        if current > previous:
            raise ValueError("Ratings must be sorted by rating descending")

    ranked: List[RankedPlayer] = []
    last_index = len(ratings) - 1
    group_start = 0
    for index, (_, rating) in enumerate(ratings):
        if index < last_index and ratings[index + 1][1] == rating:
            continue

        # index closes the tie group [group_start, index]
        if last_index > 0:
            percentile = (group_start + index) / 2.0 / last_index
        else:
            percentile = 0.0
        for member in range(group_start, index + 1):
            player_id, member_rating = ratings[member]
            ranked.append(RankedPlayer(
                player_id=player_id,
                rating=member_rating,
                rank=group_start + 1,
                percentile=percentile
            ))
        group_start = index + 1

    return ranked


def percentiles_by_player(ratings: Sequence[Tuple[int, int]]) -> Dict[int, RankedPlayer]:
    """Same as compute_percentiles, keyed by player id."""
    return {entry.player_id: entry for entry in compute_percentiles(ratings)}


def tier_label(percentile: float) -> str:
    """Map a rank percentile to its display tier."""
    for upper_bound, label in TierConstants.TIER_BREAKPOINTS:
        if percentile < upper_bound:
            return label
    return TierConstants.LOWEST_TIER
