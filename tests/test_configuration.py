import json

from sqlalchemy import select

from bot.database.models import AuditLog
from bot.services.configuration import ConfigurationService
from bot.services.matchmaking_settings import MatchmakingRequirement, MatchmakingSettingsProvider


class TestConfigurationService:

    async def test_set_persists_and_audits(self, db):
        service = ConfigurationService(db)
        await service.load_all()

        await service.set('matchmaking.requirements', [4, 0], user_id=77)
        await service.set('matchmaking.requirements', [2, 0], user_id=78)

        assert service.get('matchmaking.requirements') == [2, 0]

        reloaded = ConfigurationService(db)
        await reloaded.load_all()
        assert reloaded.get('matchmaking.requirements') == [2, 0]
        assert reloaded.get('matchmaking.max_matches', 10) == 10

        async with db.get_session() as session:
            logs = (await session.execute(select(AuditLog).order_by(AuditLog.id))).scalars().all()
        assert [log.user_id for log in logs] == [77, 78]
        assert json.loads(logs[1].details) == {
            'key': 'matchmaking.requirements', 'old_value': [4, 0], 'new_value': [2, 0]
        }

    async def test_overrides_feed_matchmaking_settings(self, db):
        service = ConfigurationService(db)
        await service.set('matchmaking.requirements', [[6, 60000]], user_id=1)

        settings = MatchmakingSettingsProvider(service).global_settings()

        assert settings.requirements == (MatchmakingRequirement(6, 60000),)
