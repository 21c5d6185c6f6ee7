"""
Discord-backed notifications for the matchmaker.

Every public coroutine is fire-and-forget from the caller's point of view:
delivery failures are logged here and never raised.
"""

from dataclasses import dataclass
from typing import Optional
import logging

import discord

from bot.constants import UIConstants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchSide:
    """One participant as shown in a match announcement."""
    discord_id: int
    name: str
    tier: str


def format_match_announcement(match_id: int, queue_name: str,
                              side1: MatchSide, side2: MatchSide) -> str:
    """Build the match channel announcement line."""
    return (
        f"Match ID# `{str(match_id).rjust(UIConstants.MATCH_ID_WIDTH)}` - "
        f"Queue `{queue_name.ljust(UIConstants.QUEUE_NAME_WIDTH)}`: "
        f"<@{side1.discord_id}> {side1.name} ({side1.tier}) vs. "
        f"<@{side2.discord_id}> {side2.name} ({side2.tier})"
    )


class DiscordNotifier:
    """Sends matchmaker messages through a discord.py client."""

    def __init__(self, client: discord.Client, match_channel_id: int,
                 admin_channel_id: Optional[int] = None):
        self.client = client
        self.match_channel_id = match_channel_id
        self.admin_channel_id = admin_channel_id

    async def _channel(self, channel_id: int):
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        return channel

    async def announce_match(self, match_id: int, queue_name: str,
                             side1: MatchSide, side2: MatchSide):
        try:
            channel = await self._channel(self.match_channel_id)
            await channel.send(format_match_announcement(match_id, queue_name, side1, side2))
        except Exception as e:
            logger.warning(f"Failed to announce match {match_id} in {queue_name}: {e}")

    async def notify_player(self, discord_id: int, text: str):
        try:
            user = self.client.get_user(discord_id) or await self.client.fetch_user(discord_id)
            await user.send(text)
        except Exception as e:
            logger.warning(f"Failed to send direct message to {discord_id}: {e}")

    async def notify_admins(self, text: str):
        if not self.admin_channel_id:
            return
        try:
            channel = await self._channel(self.admin_channel_id)
            await channel.send(text)
        except Exception as e:
            logger.warning(f"Failed to send admin notification: {e}")
