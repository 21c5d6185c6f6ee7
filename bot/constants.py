"""
Bot-wide constants for the ladder matchmaking bot.

This module contains the fixed values the matchmaker relies on. Tunable values
(thresholds, cooldowns, caps) live in bot.config.Config instead.
"""

class TierConstants:
    """Skill tiers derived from rank percentile (0.0 = best)."""

    # Upper percentile bound (exclusive) for each tier, best first
    TIER_BREAKPOINTS = (
        (0.10, "Diamond"),
        (0.25, "Platinum"),
        (0.50, "Gold"),
        (0.75, "Silver"),
    )
    LOWEST_TIER = "Bronze"

class WeightConstants:
    """Constants for the pairing weight encoding."""

    # (minimum percentile distance, exponent of the band term), most severe first
    DISTANCE_BANDS = (
        (0.5, 8),
        (0.4, 6),
        (0.3, 4),
        (0.2, 2),
        (0.1, 0),
    )

    # Edge weights are subtracted from base ** (history digits + this)
    EDGE_CEILING_EXPONENT = 10

class MatchResultConstants:
    """Stored values of Match.result other than a winner's lowercase name."""

    PENDING = "PENDING"
    DRAW = "DRAW"
    ABORT = "ABORT"

class UIConstants:
    """Constants for Discord UI elements."""

    DEFAULT_EMBED_COLOR = 0x3498db  # Blue
    ERROR_COLOR = 0xe74c3c         # Red for errors

    QUEUE_NAME_WIDTH = 16
    MATCH_ID_WIDTH = 6
