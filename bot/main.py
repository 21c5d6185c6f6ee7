import asyncio
import logging
import traceback
from typing import Optional

import discord
from discord.ext import commands

from bot.config import Config
from bot.database.database import Database
from bot.operations.matchmaking_operations import MatchmakingOperations
from bot.services.configuration import ConfigurationService
from bot.services.matchmaker_locks import MatchmakerLockRegistry
from bot.services.matchmaking_settings import MatchmakingSettingsProvider
from bot.services.notifier import DiscordNotifier
from bot.services.rate_limiter import SimpleRateLimiter
from bot.services.scheduler import TaskScheduler
from bot.utils.error_embeds import ErrorEmbeds
from bot.utils.logger import setup_logger

class LadderBot(commands.Bot):
    def __init__(self):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.members = True
        intents.reactions = True

        super().__init__(
            command_prefix=Config.COMMAND_PREFIX,
            intents=intents,
            help_command=commands.DefaultHelpCommand()
        )

        self.db: Optional[Database] = None
        self.rate_limiter = SimpleRateLimiter()
        self.config_service: Optional[ConfigurationService] = None
        self.scheduler = TaskScheduler()
        self.locks = MatchmakerLockRegistry()
        self.notifier = DiscordNotifier(self, Config.MATCH_CHANNEL_ID, Config.ADMIN_CHANNEL_ID)
        self.matchmaking: Optional[MatchmakingOperations] = None
        self.logger = setup_logger(__name__)

    async def setup_hook(self):
        """Called when the bot is starting up"""
        self.logger.info("Setting up Ladder Bot...")

        # Initialize database
        self.db = Database()
        await self.db.initialize()

        # Initialize configuration service and load runtime overrides
        self.config_service = ConfigurationService(self.db)
        await self.config_service.load_all()
        self.logger.info("Configuration service initialized")

        self.matchmaking = MatchmakingOperations(
            self.db,
            self.notifier,
            self.scheduler,
            locks=self.locks,
            settings=MatchmakingSettingsProvider(self.config_service)
        )

        await self.load_cogs()

        self.logger.info("Ladder Bot setup complete!")

    async def load_cogs(self):
        """Load all cogs"""
        cogs_to_load = [
            'bot.cogs.admin',
            'bot.cogs.queue_commands',
            'bot.cogs.housekeeping',
        ]

        for cog in cogs_to_load:
            try:
                await self.load_extension(cog)
                self.logger.info(f"Loaded cog: {cog}")
            except Exception as e:
                self.logger.error(f"Failed to load cog {cog}: {e}", exc_info=True)

    async def on_ready(self):
        """Called when the bot is ready"""
        self.logger.info(f'{self.user} has connected to Discord!')
        self.logger.info(f'Bot is in {len(self.guilds)} guilds')

        await self.change_presence(
            activity=discord.Game(name=f"Ladder | {Config.COMMAND_PREFIX}help")
        )

    async def on_command_error(self, ctx: commands.Context, error: Exception):
        """Global error handler for commands"""
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, commands.CheckFailure):
            self.logger.info(f"Permission denied for command '{ctx.command.name if ctx.command else 'Unknown'}' by user {ctx.author}")
            await ctx.send(embed=ErrorEmbeds.permission_denied())
            return

        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"❌ Missing required argument: `{error.param.name}`")
            return

        if isinstance(error, commands.BadArgument):
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(error)))
            return

        if isinstance(error, commands.CommandOnCooldown):
            await ctx.send(f"❌ Command is on cooldown. Try again in {error.retry_after:.2f} seconds.")
            return

        self.logger.error(f"Unexpected error in command {ctx.command}: {error}")
        self.logger.error(''.join(traceback.format_exception(type(error), error, error.__traceback__)))

        await ctx.send(embed=ErrorEmbeds.command_error("The developers have been notified."))

    async def close(self):
        """Cleanup when bot is shutting down"""
        self.logger.info("Shutting down Ladder Bot...")

        cancelled = self.scheduler.cancel_all()
        if cancelled:
            self.logger.info(f"Cancelled {cancelled} scheduled task(s)")

        if self.db:
            await self.db.close()

        await super().close()

async def main():
    """Main entry point"""
    Config.validate()

    bot = LadderBot()

    try:
        await bot.start(Config.DISCORD_TOKEN)
    except KeyboardInterrupt:
        await bot.close()
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        traceback.print_exc()
    finally:
        await bot.close()

if __name__ == "__main__":
    asyncio.run(main())
