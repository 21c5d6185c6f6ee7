from datetime import timedelta

from bot.database.models import utc_now
from bot.operations.pairing_history import PairingHistoryCollector

from conftest import add_match, add_players


class TestPairingHistoryCollector:

    async def test_pending_oldest_first_recent_newest_first(self, db, queue):
        a, b, c, d = await add_players(db, "A", "B", "C", "D")
        base = utc_now() - timedelta(days=1)
        await add_match(db, queue.id, a.id, c.id, created_at=base + timedelta(minutes=5))
        await add_match(db, queue.id, b.id, a.id, created_at=base + timedelta(minutes=1))
        await add_match(db, queue.id, a.id, d.id, result="a",
                        created_at=base, decided_at=base + timedelta(hours=1))
        await add_match(db, queue.id, c.id, a.id, result="DRAW",
                        created_at=base, decided_at=base + timedelta(hours=2))

        history = await PairingHistoryCollector(db).collect_for_player(queue.id, a.id)

        assert history.player_id == a.id
        assert history.pending_opponents == (b.id, c.id)
        assert history.recent_opponents == (c.id, d.id)

    async def test_recent_window_and_queue_scope(self, db, queue):
        other = await db.upsert_queue("Casual")
        a, b = await add_players(db, "A", "B")
        base = utc_now() - timedelta(days=1)
        for minute in range(7):
            await add_match(db, queue.id, a.id, b.id, result="ABORT",
                            created_at=base, decided_at=base + timedelta(minutes=minute))
        await add_match(db, other.id, a.id, b.id)

        history = await PairingHistoryCollector(db, recent_window=5).collect_for_player(queue.id, a.id)

        assert history.pending_opponents == ()
        assert len(history.recent_opponents) == 5

    async def test_collect_preserves_order(self, db, queue):
        a, b, c = await add_players(db, "A", "B", "C")
        await add_match(db, queue.id, a.id, b.id)

        histories = await PairingHistoryCollector(db).collect(queue.id, [c.id, a.id, b.id])

        assert [h.player_id for h in histories] == [c.id, a.id, b.id]
        assert histories[0].pending_opponents == ()
        assert histories[1].pending_opponents == (b.id,)
        assert histories[2].pending_opponents == (a.id,)
