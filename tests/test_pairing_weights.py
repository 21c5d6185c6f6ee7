import pytest

from bot.operations.pairing_history import PairingHistory
from bot.operations.pairing_weights import PairingWeightBuilder


def history(player_id, pending=(), recent=()):
    return PairingHistory(player_id, tuple(pending), tuple(recent))


@pytest.fixture
def builder():
    return PairingWeightBuilder(max_matches=10, history_window=5)


class TestDistanceBands:

    @pytest.mark.parametrize("distance, exponent", [
        (1.0, 8), (0.5, 8), (0.45, 6), (0.4, 6), (0.35, 4),
        (0.25, 2), (0.2, 2), (0.15, 0), (0.1, 0), (0.099, None), (0.0, None),
    ])
    def test_band_exponent(self, distance, exponent):
        assert PairingWeightBuilder.distance_band_exponent(distance) == exponent

    def test_band_penalty_sits_above_history_digits(self, builder):
        assert builder.band_penalty(0.1, 10, 5) == 10 ** 10
        assert builder.band_penalty(0.5, 10, 5) == 10 ** 18
        assert builder.band_penalty(0.05, 10, 5) == 0

    @pytest.mark.parametrize("base", [2, 3, 10, 40])
    @pytest.mark.parametrize("width", [1, 5, 8])
    def test_tier_dominance(self, builder, base, width):
        max_history = PairingWeightBuilder.max_history_penalty(base, width)

        assert max_history < builder.band_penalty(0.1, base, width)
        for lower, higher in [(0.1, 0.2), (0.2, 0.3), (0.3, 0.4), (0.4, 0.5)]:
            assert (builder.band_penalty(lower, base, width) + max_history
                    < builder.band_penalty(higher, base, width))


class TestHistoryPenalty:

    def test_slots_pending_first_then_recent_padded(self):
        slots = PairingWeightBuilder.history_slots(history(1, pending=[2], recent=[3, 4]), 5)

        assert slots == [2, 3, 4, None, None]

    def test_pending_fills_window_before_recent(self):
        slots = PairingWeightBuilder.history_slots(
            history(1, pending=[2, 3, 4], recent=[5, 6, 7, 8, 9]), 5
        )

        assert slots == [2, 3, 4, 5, 6]

    def test_literal_digit_rule(self, builder):
        # hit in the first of five slots: ((0*10+1)*10) * 100**4
        assert builder.history_penalty(history(1, recent=[2]), 2, 10, 5) == 10 ** 9
        # hit in the last slot
        assert builder.history_penalty(history(1, recent=[3, 3, 3, 3, 2]), 2, 10, 5) == 10
        assert builder.history_penalty(history(1, recent=[3]), 2, 10, 5) == 0

    def test_pending_outweighs_every_recent_slot(self, builder):
        h = history(1, pending=[2], recent=[3, 3, 3, 3, 3])

        assert builder.history_penalty(h, 2, 10, 5) > builder.history_penalty(h, 3, 10, 5)

    def test_newer_recent_match_weighs_more(self, builder):
        h = history(1, recent=[2, 3])

        assert builder.history_penalty(h, 2, 10, 5) > builder.history_penalty(h, 3, 10, 5)

    def test_repeat_opponent_accumulates(self, builder):
        h = history(1, recent=[2, 2, 3])

        assert builder.history_penalty(h, 2, 10, 5) == 10 ** 9 + 10 ** 7


class TestBuild:

    def test_requires_base_of_two(self):
        with pytest.raises(ValueError):
            PairingWeightBuilder(max_matches=1)

    def test_base_grows_with_pool(self, builder):
        assert builder.base_for(4) == 10
        assert builder.base_for(24) == 24

    def test_width_follows_longest_pending_list(self, builder):
        histories = [history(1, pending=[2, 3, 4, 5, 6, 7]), history(2)]

        assert builder.history_width(histories) == 6
        assert builder.history_width([history(1), history(2)]) == 5

    def test_edges_cover_each_unordered_pair_once(self, builder):
        graph = builder.build([0.0, 0.5, 1.0], [history(1), history(2), history(3)])

        assert [(i, j) for i, j, _ in graph.edges] == [(0, 1), (0, 2), (1, 2)]
        assert graph.size == 3

    def test_edge_weight_uses_larger_direction(self, builder):
        percentiles = [0.0, 0.0]
        histories = [history(1, recent=[2]), history(2)]
        graph = builder.build(percentiles, histories)

        ceiling = builder.edge_ceiling(graph.base, graph.history_width)
        assert graph.penalties[0][1] == 10 ** 9
        assert graph.penalties[1][0] == 0
        assert graph.edges == ((0, 1, ceiling - 10 ** 9),)

    def test_asymmetry_comes_only_from_history(self, builder):
        percentiles = [0.0, 0.3, 0.7, 1.0]
        histories = [
            history(1, pending=[2], recent=[3]),
            history(2, recent=[4, 1]),
            history(3),
            history(4, recent=[1]),
        ]
        graph = builder.build(percentiles, histories)
        base, width = graph.base, graph.history_width

        for i in range(4):
            for j in range(4):
                if i == j:
                    continue
                band = builder.band_penalty(abs(percentiles[i] - percentiles[j]), base, width)
                hij = builder.history_penalty(histories[i], histories[j].player_id, base, width)
                hji = builder.history_penalty(histories[j], histories[i].player_id, base, width)
                assert graph.penalties[i][j] - hij == band
                assert graph.penalties[i][j] - graph.penalties[j][i] == hij - hji

    def test_mismatched_inputs_rejected(self, builder):
        with pytest.raises(ValueError):
            builder.build([0.0, 1.0], [history(1)])
