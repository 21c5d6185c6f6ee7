import discord
from discord.ext import commands
from typing import Optional, Sequence

from bot.config import Config
from bot.constants import UIConstants
from bot.operations.matchmaking_operations import MatchmakingOutcome
from bot.operations.player_operations import PlayerOperations, PlayerValidationError
from bot.operations.queue_operations import QueueValidationError
from bot.operations.pairing_weights import Edge
from bot.services.matchmaking_settings import (
    describe_requirements, flatten_requirements, parse_requirement_args
)
from bot.utils.error_embeds import ErrorEmbeds
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)

MESSAGE_CHUNK = 1900


def format_edges(edges: Sequence[Edge]) -> str:
    """One 'i j weight' line per edge, as fed to the solver."""
    return "\n".join(f"{i} {j} {weight}" for i, j, weight in edges)


def chunk_lines(text: str, size: int = MESSAGE_CHUNK):
    """Split text on line boundaries into pieces no longer than size."""
    chunk = []
    length = 0
    for line in text.splitlines():
        if chunk and length + len(line) + 1 > size:
            yield "\n".join(chunk)
            chunk, length = [], 0
        chunk.append(line)
        length += len(line) + 1
    if chunk:
        yield "\n".join(chunk)


class AdminCog(commands.Cog):
    """Admin-only commands for managing queues and the matchmaker"""

    def __init__(self, bot):
        self.bot = bot
        self.matchmaking = bot.matchmaking
        self.queue_ops = bot.matchmaking.queue_ops
        self.player_ops = PlayerOperations(bot.db)
        self.logger = logger

    def cog_check(self, ctx):
        """Check if user is the bot owner or holds the admin role"""
        if ctx.author.id == Config.OWNER_DISCORD_ID:
            return True
        roles = getattr(ctx.author, 'roles', None) or []
        return bool(Config.ADMIN_ROLE_ID) and any(role.id == Config.ADMIN_ROLE_ID for role in roles)

    @commands.command(name='shutdown')
    async def shutdown_bot(self, ctx):
        """Shutdown the bot"""
        await ctx.send("🔴 Shutting down Ladder Bot...")
        await self.bot.close()

    @commands.command(name='reload')
    async def reload_cog(self, ctx, cog_name: str):
        """Reload a specific cog"""
        try:
            await self.bot.reload_extension(f'bot.cogs.{cog_name}')
            await ctx.send(f"✅ Reloaded `{cog_name}` cog successfully.")
        except Exception as e:
            await ctx.send(f"❌ Failed to reload `{cog_name}`: {e}")

    # ============================================================================
    # Matchmaker controls
    # ============================================================================

    @commands.command(name='trymatchmaking')
    async def try_matchmaking(self, ctx, queue_name: Optional[str] = None):
        """Run matchmaking now for one queue, or for every active queue"""
        await ctx.send("⏳ Running matchmaking...")
        if queue_name:
            reports = [await self.matchmaking.run_matchmaking(queue_name)]
        else:
            reports = await self.matchmaking.try_matchmaking_all()

        embed = discord.Embed(title="Matchmaking Results", color=UIConstants.DEFAULT_EMBED_COLOR)
        for report in reports:
            value = report.outcome.value.replace('_', ' ')
            if report.outcome == MatchmakingOutcome.COMPLETED:
                value = f"{len(report.match_ids)} match(es) created"
                if report.deferred_player_id is not None:
                    value += ", 1 player rolled over"
                if report.skipped_pairs:
                    value += f", {report.skipped_pairs} pair(s) skipped"
            elif report.outcome == MatchmakingOutcome.FAILED:
                value = f"failed during {report.phase}: {report.error}"
            embed.add_field(name=report.queue_name, value=value[:1024], inline=False)
        if not reports:
            embed.description = "There are no active queues."
        await ctx.send(embed=embed)

    @commands.command(name='clearlocks')
    async def clear_locks(self, ctx):
        """Force-release every matchmaker lock"""
        held = self.matchmaking.locks.held()
        count = self.matchmaking.clear_locks()
        self.logger.warning(f"{ctx.author} cleared matchmaker locks: {held}")
        await ctx.send(f"🔓 Cleared {count} matchmaker lock(s).")

    @commands.command(name='printlastmatchmake')
    async def print_last_matchmake(self, ctx, queue_name: Optional[str] = None):
        """Show the edge list of the last pairing graph built"""
        last_edges = self.matchmaking.last_edges
        if queue_name is None:
            if not last_edges:
                await ctx.send("No matchmaking graph has been built yet.")
                return
            queue_name = next(reversed(last_edges))

        edges = next(
            (edges for name, edges in last_edges.items() if name.lower() == queue_name.lower()),
            None
        )
        if edges is None:
            await ctx.send(f"No matchmaking graph recorded for `{queue_name}`.")
            return

        await ctx.send(f"Last graph for `{queue_name}` ({len(edges)} edges):")
        for chunk in chunk_lines(format_edges(edges)):
            await ctx.send(f"```\n{chunk}\n```")

    @commands.command(name='setmatchmakingrequirements')
    async def set_matchmaking_requirements(self, ctx, *args: str):
        """
        Set when matchmaking may run: [queue] <players> <wait> [<players> <wait> ...]

        Without a queue name the global requirements are changed. A queue name
        with no pairs clears that queue's override. Waits accept 10m, 1h30m or
        plain milliseconds.
        """
        queue_name = None
        if args and not args[0].isdigit():
            queue_name, args = args[0], args[1:]

        try:
            requirements = parse_requirement_args(args)
        except ValueError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
            return

        if queue_name is None:
            if not requirements:
                current = self.matchmaking.settings.global_settings().requirements
                await ctx.send(f"Global matchmaking requirements: {describe_requirements(current)}")
                return
            await self.bot.config_service.set(
                'matchmaking.requirements', flatten_requirements(requirements), ctx.author.id
            )
            await ctx.send(f"✅ Global matchmaking requirements: {describe_requirements(requirements)}")
            return

        try:
            queue = await self.queue_ops.set_requirements(queue_name, requirements or None)
        except QueueValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
            return

        if requirements:
            await ctx.send(f"✅ `{queue.name}` requirements: {describe_requirements(requirements)}")
        else:
            await ctx.send(f"✅ `{queue.name}` now uses the global requirements.")

    # ============================================================================
    # Queue lifecycle
    # ============================================================================

    @commands.command(name='createqueue')
    async def create_queue(self, ctx, name: str, message_id: Optional[int] = None,
                           reaction: Optional[str] = None,
                           required_role: Optional[discord.Role] = None):
        """Create a queue, optionally joinable by reacting to a message"""
        try:
            queue = await self.queue_ops.create_queue(
                name, message_id, reaction, required_role.id if required_role else None
            )
        except QueueValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
            return

        if message_id is not None and ctx.guild is not None:
            await self._add_join_reaction(ctx, message_id, reaction)
        await ctx.send(f"✅ Queue `{queue.name}` is open.")

    async def _add_join_reaction(self, ctx, message_id: int, reaction: str):
        try:
            message = await ctx.channel.fetch_message(message_id)
            await message.add_reaction(reaction)
        except discord.HTTPException as e:
            self.logger.warning(f"Could not add join reaction to message {message_id}: {e}")

    @commands.command(name='retirequeue')
    async def retire_queue(self, ctx, name: str):
        """Retire a queue and remove everyone waiting in it"""
        try:
            queue, waiting, autoqueues = await self.queue_ops.retire_queue(name)
        except QueueValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
            return
        await ctx.send(
            f"🗑️ Queue `{queue.name}` retired. Removed {waiting} waiting and "
            f"{autoqueues} autoqueue entr{'y' if autoqueues == 1 else 'ies'}."
        )

    # ============================================================================
    # Player moderation
    # ============================================================================

    @commands.command(name='ban')
    async def ban_player(self, ctx, member: discord.User):
        """Ban a player from queueing and ranking"""
        await self._set_banned(ctx, member, True)

    @commands.command(name='unban')
    async def unban_player(self, ctx, member: discord.User):
        """Lift a player's ban"""
        await self._set_banned(ctx, member, False)

    async def _set_banned(self, ctx, member: discord.User, banned: bool):
        try:
            player = await self.player_ops.set_banned(member.id, banned)
        except PlayerValidationError:
            await ctx.send(embed=ErrorEmbeds.not_registered(member))
            return
        await ctx.send(f"✅ {player.name} has been {'banned' if banned else 'unbanned'}.")


async def setup(bot):
    await bot.add_cog(AdminCog(bot))
