from bot.constants import MatchResultConstants
from bot.operations.match_finalizer import MatchFinalizer
from bot.utils.ranking import RankedPlayer

from conftest import add_players


async def waiting_pair(db, queue):
    alice, bob = await add_players(db, "Alice", "Bob")
    await db.create_waiting_entry(alice.id, queue.id)
    await db.create_waiting_entry(bob.id, queue.id)
    return await db.get_waiting_entries(queue.id)


class TestMatchFinalizer:

    async def test_creates_pending_match_and_clears_pool(self, db, queue, notifier):
        entry1, entry2 = await waiting_pair(db, queue)
        finalizer = MatchFinalizer(db, notifier)

        match = await finalizer.finalize(
            queue,
            entry1, RankedPlayer(entry1.player_id, 1700, 1, 0.0),
            entry2, RankedPlayer(entry2.player_id, 1500, 2, 1.0),
        )

        assert match.result == MatchResultConstants.PENDING
        assert (match.player1_id, match.player2_id) == (entry1.player_id, entry2.player_id)
        assert (match.rank1, match.rank2) == ("Diamond", "Bronze")
        assert await db.get_waiting_entries(queue.id) == []

        match_id, queue_name, side1, side2 = notifier.announcements[0]
        assert match_id == match.id
        assert queue_name == "Ranked"
        assert (side1.name, side1.tier, side1.discord_id) == ("Alice", "Diamond", 1000)
        assert (side2.name, side2.tier) == ("Bob", "Bronze")

    async def test_missing_entry_skips_whole_pair(self, db, queue, notifier):
        entry1, entry2 = await waiting_pair(db, queue)
        await db.delete_waiting_entry(entry2.id)
        finalizer = MatchFinalizer(db, notifier)

        match = await finalizer.finalize(
            queue,
            entry1, RankedPlayer(entry1.player_id, 1500, 1, 0.0),
            entry2, RankedPlayer(entry2.player_id, 1500, 1, 0.0),
        )

        assert match is None
        assert await db.get_pending_matches(entry1.player_id, queue.id) == []
        remaining = await db.get_waiting_entries(queue.id)
        assert [entry.id for entry in remaining] == [entry1.id]
        assert notifier.announcements == []
