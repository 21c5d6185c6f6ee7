"""
Effective matchmaking settings.

Values resolve in order: Config defaults, runtime overrides stored through
ConfigurationService ('matchmaking.*' keys), then a queue's own requirement list.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence, Tuple

from bot.config import Config
from bot.utils.time_parser import format_duration_ms, parse_duration_ms


@dataclass(frozen=True)
class MatchmakingRequirement:
    """Open the gate once min_players wait and the oldest waited min_wait_ms."""
    min_players: int
    min_wait_ms: int


@dataclass(frozen=True)
class MatchmakingSettings:
    requirements: Tuple[MatchmakingRequirement, ...]
    max_matches: int
    pending_match_cap: int
    recent_match_window: int
    requeue_cooldown_seconds: float
    join_trigger_delay_seconds: float


def parse_requirements(values: Sequence[Any]) -> Tuple[MatchmakingRequirement, ...]:
    """
    Parse a requirement list.

    Accepts the flat form [n1, ms1, n2, ms2, ...] or a list of [n, ms] pairs.

    Raises:
        ValueError: On odd-length flat lists, malformed pairs or negative values
    """
    values = list(values)
    if values and all(isinstance(value, (list, tuple)) for value in values):
        pairs = []
        for value in values:
            if len(value) != 2:
                raise ValueError(f"Requirement {value!r} is not a (players, milliseconds) pair")
            pairs.append((value[0], value[1]))
    else:
        if len(values) % 2 != 0:
            raise ValueError("Requirements must be (players, milliseconds) pairs")
        pairs = list(zip(values[0::2], values[1::2]))

    requirements = []
    for min_players, min_wait_ms in pairs:
        min_players, min_wait_ms = int(min_players), int(min_wait_ms)
        if min_players < 0 or min_wait_ms < 0:
            raise ValueError("Requirement values must not be negative")
        requirements.append(MatchmakingRequirement(min_players, min_wait_ms))
    return tuple(requirements)


def flatten_requirements(requirements: Sequence[MatchmakingRequirement]) -> list:
    """Inverse of parse_requirements, in the flat storage form."""
    flat = []
    for requirement in requirements:
        flat.extend([requirement.min_players, requirement.min_wait_ms])
    return flat


class MatchmakingSettingsProvider:
    """Resolves MatchmakingSettings for the whole bot or a single queue."""

    def __init__(self, config_service=None):
        self.config_service = config_service

    def _override(self, key: str, default: Any) -> Any:
        if self.config_service is None:
            return default
        return self.config_service.get(f'matchmaking.{key}', default)

    def global_settings(self) -> MatchmakingSettings:
        return MatchmakingSettings(
            requirements=parse_requirements(
                self._override('requirements', Config.MATCHMAKING_REQUIREMENTS)
            ),
            max_matches=int(self._override('max_matches', Config.MAX_MATCHES)),
            pending_match_cap=int(self._override('pending_match_cap', Config.PENDING_MATCH_CAP)),
            recent_match_window=int(self._override('recent_match_window', Config.RECENT_MATCH_WINDOW)),
            requeue_cooldown_seconds=float(
                self._override('requeue_cooldown_seconds', Config.REQUEUE_COOLDOWN_SECONDS)
            ),
            join_trigger_delay_seconds=float(
                self._override('join_trigger_delay_seconds', Config.JOIN_TRIGGER_DELAY_SECONDS)
            ),
        )

    def for_queue(self, queue: Optional[Any]) -> MatchmakingSettings:
        settings = self.global_settings()
        if queue is None or not queue.matchmaking_requirements:
            return settings
        return replace(
            settings,
            requirements=parse_requirements(json.loads(queue.matchmaking_requirements))
        )


def parse_requirement_args(args: Sequence[str]) -> Tuple[MatchmakingRequirement, ...]:
    """
    Parse admin command arguments like ["8", "0", "4", "10m"].

    Player counts are plain integers; wait times accept anything
    parse_duration_ms does.
    """
    if len(args) % 2 != 0:
        raise ValueError("Requirements must be given as <players> <wait> pairs")
    flat = []
    for players, wait in zip(args[0::2], args[1::2]):
        if not players.isdigit():
            raise ValueError(f"'{players}' is not a player count")
        flat.extend([int(players), parse_duration_ms(wait)])
    return parse_requirements(flat)


def describe_requirements(requirements: Sequence[MatchmakingRequirement]) -> str:
    if not requirements:
        return "never"
    return " or ".join(
        f"{requirement.min_players}+ players after {format_duration_ms(requirement.min_wait_ms)}"
        for requirement in requirements
    )
