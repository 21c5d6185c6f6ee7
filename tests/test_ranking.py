import pytest

from bot.utils.ranking import compute_percentiles, percentiles_by_player, tier_label


class TestComputePercentiles:

    def test_distinct_ratings_spread_evenly(self):
        ranked = compute_percentiles([(1, 2000), (2, 1800), (3, 1600), (4, 1400), (5, 1200)])

        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5]
        assert [r.percentile for r in ranked] == [0.0, 0.25, 0.5, 0.75, 1.0]

    def test_tie_group_shares_rank_and_midpoint(self):
        ranked = compute_percentiles([(1, 1600), (2, 1500), (3, 1500), (4, 1500), (5, 1400)])

        assert [r.rank for r in ranked] == [1, 2, 2, 2, 5]
        # indices 1..3 -> midpoint 2 -> 2 / 4
        assert {r.percentile for r in ranked[1:4]} == {0.5}
        assert ranked[4].percentile == 1.0

    def test_everyone_tied(self):
        ranked = compute_percentiles([(1, 1500), (2, 1500), (3, 1500), (4, 1500)])

        assert all(r.rank == 1 for r in ranked)
        assert all(r.percentile == 0.5 for r in ranked)

    def test_single_player_gets_top_percentile(self):
        ranked = compute_percentiles([(7, 1500)])

        assert ranked[0].rank == 1
        assert ranked[0].percentile == 0.0

    def test_empty_pool(self):
        assert compute_percentiles([]) == []

    def test_percentile_non_decreasing_as_rating_falls(self):
        ratings = [(i, rating) for i, rating in enumerate([2100, 2100, 1900, 1700, 1700, 1700, 1200, 900])]
        ranked = compute_percentiles(ratings)

        percentiles = [r.percentile for r in ranked]
        assert percentiles == sorted(percentiles)
        for a, b in zip(ranked, ranked[1:]):
            if a.rating == b.rating:
                assert a.percentile == b.percentile

    def test_unsorted_input_rejected(self):
        with pytest.raises(ValueError):
            compute_percentiles([(1, 1400), (2, 1500)])

    def test_keyed_by_player(self):
        by_player = percentiles_by_player([(10, 1700), (20, 1500)])

        assert by_player[10].percentile == 0.0
        assert by_player[20].percentile == 1.0


class TestTierLabel:

    @pytest.mark.parametrize("percentile, label", [
        (0.0, "Diamond"),
        (0.099, "Diamond"),
        (0.10, "Platinum"),
        (0.249, "Platinum"),
        (0.25, "Gold"),
        (0.50, "Silver"),
        (0.74, "Silver"),
        (0.75, "Bronze"),
        (1.0, "Bronze"),
    ])
    def test_breakpoints(self, percentile, label):
        assert tier_label(percentile) == label
