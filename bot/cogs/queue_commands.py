"""
Queue Commands Cog

Player-facing commands: registration, joining and leaving queues, autoqueue,
listing current queues, and joining by reacting to a queue's message.
"""

import discord
from discord.ext import commands

from bot.constants import UIConstants
from bot.database.models import Queue
from bot.operations.player_operations import PlayerOperations, PlayerValidationError
from bot.operations.queue_operations import EnqueueResult, EnqueueStatus
from bot.services.rate_limiter import rate_limit
from bot.utils.error_embeds import ErrorEmbeds
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)


def has_required_role(member, queue: Queue) -> bool:
    """Whether a guild member may join a queue restricted to a role."""
    if not queue.required_role:
        return True
    roles = getattr(member, 'roles', None) or []
    return any(role.id == queue.required_role for role in roles)


class QueueCommandsCog(commands.Cog):
    """Commands for players to register and queue for matches"""

    def __init__(self, bot):
        self.bot = bot
        self.player_ops = PlayerOperations(bot.db)
        self.queue_ops = bot.matchmaking.queue_ops
        self.logger = logger

    def _result_reply(self, result: EnqueueResult):
        """(content, embed) for an EnqueueResult."""
        status = result.status
        if status == EnqueueStatus.QUEUED:
            return f"✅ You have joined the queue `{result.queue_name}`.", None
        if status == EnqueueStatus.UNQUEUED:
            return f"👋 You have left the queue `{result.queue_name}`.", None
        if status == EnqueueStatus.ALREADY_QUEUED:
            return f"You are already in the queue `{result.queue_name}`.", None
        if status == EnqueueStatus.NOT_REGISTERED:
            return None, ErrorEmbeds.not_registered()
        if status == EnqueueStatus.QUEUE_NOT_FOUND:
            return None, ErrorEmbeds.queue_not_found(result.queue_name)
        if status == EnqueueStatus.QUEUE_EXPIRED:
            return None, ErrorEmbeds.queue_expired(result.queue_name)
        if status == EnqueueStatus.BANNED:
            return None, ErrorEmbeds.banned()
        limit = self.bot.matchmaking.settings.for_queue(result.queue).pending_match_cap
        return None, ErrorEmbeds.pending_limit(result.queue_name, limit)

    async def _check_role(self, ctx, queue_name: str) -> bool:
        queue = await self.bot.db.get_queue_by_name(queue_name)
        if queue is not None and not has_required_role(ctx.author, queue):
            await ctx.send(embed=ErrorEmbeds.permission_denied())
            return False
        return True

    @commands.command(name='register')
    @rate_limit('register', limit=3, window=60)
    async def register(self, ctx, *, name: str):
        """Register for the ladder, or change your registered name"""
        try:
            player, created = await self.player_ops.register(ctx.author.id, name)
        except PlayerValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
            return

        if created:
            await ctx.send(f"✅ Registered as **{player.name}**.")
        else:
            await ctx.send(f"✅ Your name is now **{player.name}**.")

    @commands.command(name='queue', aliases=['q'])
    @rate_limit('queue', limit=5, window=30)
    async def queue(self, ctx, queue_name: str):
        """Join a queue, or leave it if you are already waiting"""
        if not await self._check_role(ctx, queue_name):
            return
        result = await self.queue_ops.enqueue(ctx.author.id, queue_name)
        content, embed = self._result_reply(result)
        await ctx.send(content=content, embed=embed)

    @commands.command(name='autoqueue', aliases=['aq'])
    @rate_limit('autoqueue', limit=5, window=30)
    async def autoqueue(self, ctx, queue_name: str):
        """Toggle automatically rejoining a queue after each round of matches"""
        if not await self._check_role(ctx, queue_name):
            return
        enabled, result = await self.queue_ops.toggle_autoqueue(ctx.author.id, queue_name)
        if result is None:
            await ctx.send(f"Autoqueue disabled for `{queue_name}`.")
            return
        if not enabled:
            content, embed = self._result_reply(result)
            await ctx.send(content=content, embed=embed)
            return

        message = f"🔁 Autoqueue enabled for `{result.queue_name}`."
        if result.status == EnqueueStatus.PENDING_LIMIT:
            message += " You will be queued once you finish some pending matches."
        await ctx.send(message)

    @commands.command(name='queued')
    async def queued(self, ctx):
        """List the queues you are currently waiting in"""
        queues = await self.queue_ops.get_player_queues(ctx.author.id)
        if queues is None:
            await ctx.send(embed=ErrorEmbeds.not_registered())
            return

        embed = discord.Embed(title="Your Queues", color=UIConstants.DEFAULT_EMBED_COLOR)
        if queues:
            embed.description = "\n".join(f"• `{queue.name}`" for queue in queues)
        else:
            embed.description = "You are not waiting in any queue."
        await ctx.send(embed=embed)

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        """Join a queue by reacting to its message"""
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return

        queue = await self.bot.db.get_queue_by_reaction(payload.message_id, str(payload.emoji))
        if queue is None:
            return

        await self._remove_reaction(payload)

        if not has_required_role(payload.member, queue):
            await self.bot.notifier.notify_player(
                payload.user_id, f"You need the required role to join `{queue.name}`."
            )
            return

        result = await self.queue_ops.enqueue(payload.user_id, queue.name, silent=True)
        content, embed = self._result_reply(result)
        if content is None:
            content = embed.description
        await self.bot.notifier.notify_player(payload.user_id, content)

    async def _remove_reaction(self, payload: discord.RawReactionActionEvent):
        try:
            channel = self.bot.get_channel(payload.channel_id)
            if channel is None:
                return
            message = await channel.fetch_message(payload.message_id)
            await message.remove_reaction(payload.emoji, discord.Object(id=payload.user_id))
        except discord.HTTPException as e:
            self.logger.warning(f"Could not remove queue reaction from {payload.user_id}: {e}")


async def setup(bot):
    await bot.add_cog(QueueCommandsCog(bot))
