"""
Housekeeping Cog - Background Tasks

Runs the periodic matchmaking sweep over every active queue, so queues whose
wait-time requirement is met eventually matchmake even without new joins.
"""

from discord.ext import commands, tasks

from bot.config import Config
from bot.operations.matchmaking_operations import MatchmakingOutcome
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class HousekeepingCog(commands.Cog):
    """Background matchmaking sweep"""

    def __init__(self, bot):
        self.bot = bot
        self.logger = logger
        self.matchmaking_sweep.change_interval(seconds=Config.MATCHMAKING_INTERVAL_SECONDS)

    async def cog_load(self):
        self.matchmaking_sweep.start()
        self.logger.info("HousekeepingCog: Matchmaking sweep started")

    def cog_unload(self):
        """Stop background tasks when cog is unloaded"""
        self.matchmaking_sweep.cancel()
        self.logger.info("HousekeepingCog: Matchmaking sweep stopped")

    @tasks.loop(seconds=300)
    async def matchmaking_sweep(self):
        """Try matchmaking in every active queue"""
        try:
            reports = await self.bot.matchmaking.try_matchmaking_all()
            created = sum(len(report.match_ids) for report in reports)
            failed = [r.queue_name for r in reports if r.outcome == MatchmakingOutcome.FAILED]
            if created:
                self.logger.info(f"Matchmaking sweep created {created} match(es)")
            if failed:
                self.logger.warning(f"Matchmaking sweep failed for: {', '.join(failed)}")
        except Exception as e:
            self.logger.error(f"Error in matchmaking sweep: {e}", exc_info=True)

    @matchmaking_sweep.before_loop
    async def before_matchmaking_sweep(self):
        """Wait for bot to be ready before starting the sweep"""
        await self.bot.wait_until_ready()


async def setup(bot):
    await bot.add_cog(HousekeepingCog(bot))
