import json
from types import SimpleNamespace

import pytest

from bot.config import Config
from bot.operations.matchmaking_operations import matchmaking_gate_open
from bot.services.matchmaking_settings import (
    MatchmakingRequirement, MatchmakingSettingsProvider, describe_requirements,
    flatten_requirements, parse_requirement_args, parse_requirements
)

from conftest import StaticConfigService


class TestParseRequirements:

    def test_flat_form(self):
        assert parse_requirements([8, 0, 4, 600000]) == (
            MatchmakingRequirement(8, 0), MatchmakingRequirement(4, 600000)
        )

    def test_pair_form(self):
        assert parse_requirements([[2, 1800000]]) == (MatchmakingRequirement(2, 1800000),)

    def test_flatten_inverts_parse(self):
        assert flatten_requirements(parse_requirements([[4, 10], [2, 20]])) == [4, 10, 2, 20]

    @pytest.mark.parametrize("values", [[8, 0, 4], [[1, 2, 3]], [2, -1], [-2, 0]])
    def test_invalid(self, values):
        with pytest.raises(ValueError):
            parse_requirements(values)

    def test_admin_arguments_accept_durations(self):
        assert parse_requirement_args(["4", "10m", "2", "1800000"]) == (
            MatchmakingRequirement(4, 600000), MatchmakingRequirement(2, 1800000)
        )

    @pytest.mark.parametrize("args", [["4"], ["four", "10m"], ["4", "soon"]])
    def test_invalid_admin_arguments(self, args):
        with pytest.raises(ValueError):
            parse_requirement_args(args)

    def test_describe(self):
        text = describe_requirements(parse_requirements([8, 0, 2, 1800000]))

        assert text == "8+ players after 0s or 2+ players after 30m"
        assert describe_requirements(()) == "never"


class TestSettingsProvider:

    def test_defaults_from_config(self):
        settings = MatchmakingSettingsProvider().global_settings()

        assert settings.requirements == parse_requirements(Config.MATCHMAKING_REQUIREMENTS)
        assert settings.max_matches == Config.MAX_MATCHES
        assert settings.pending_match_cap == Config.PENDING_MATCH_CAP
        assert settings.requeue_cooldown_seconds == Config.REQUEUE_COOLDOWN_SECONDS

    def test_runtime_overrides(self):
        provider = MatchmakingSettingsProvider(StaticConfigService({
            'matchmaking.requirements': [[6, 0]],
            'matchmaking.max_matches': 12,
        }))

        settings = provider.global_settings()
        assert settings.requirements == (MatchmakingRequirement(6, 0),)
        assert settings.max_matches == 12

    def test_queue_override_replaces_requirements_only(self):
        provider = MatchmakingSettingsProvider(StaticConfigService({'matchmaking.max_matches': 12}))
        queue = SimpleNamespace(matchmaking_requirements=json.dumps([2, 5000]))

        settings = provider.for_queue(queue)
        assert settings.requirements == (MatchmakingRequirement(2, 5000),)
        assert settings.max_matches == 12

    def test_queue_without_override(self):
        provider = MatchmakingSettingsProvider()
        queue = SimpleNamespace(matchmaking_requirements=None)

        assert provider.for_queue(queue) == provider.global_settings()


class TestMatchmakingGate:

    requirements = parse_requirements([8, 0, 4, 600000, 2, 1800000])

    @pytest.mark.parametrize("pool, oldest_ms, expected", [
        (8, 0, True),
        (7, 0, False),
        (4, 600000, True),
        (4, 599999, False),
        (2, 1800000, True),
        (3, 1000000, False),
        (1, 10 ** 9, False),
        (0, 0, False),
    ])
    def test_any_requirement_opens_the_gate(self, pool, oldest_ms, expected):
        assert matchmaking_gate_open(pool, oldest_ms, self.requirements) is expected

    def test_expired_queue_never_opens(self):
        assert not matchmaking_gate_open(100, 10 ** 9, self.requirements, expired=True)

    def test_no_requirements_never_opens(self):
        assert not matchmaking_gate_open(100, 10 ** 9, ())
