"""
Centralized error embeds for consistent command replies.

Provides standardized error messages so queue and admin commands report
problems the same way.
"""

from typing import Optional

import discord

from bot.config import Config
from bot.constants import UIConstants


class ErrorEmbeds:
    """Centralized error embed factory for consistent error handling."""

    @staticmethod
    def not_registered(member: Optional[discord.abc.User] = None) -> discord.Embed:
        """Create embed for a user who has not registered yet."""
        who = member.mention if member else "You"
        return discord.Embed(
            title="Not Registered",
            description=f"{who} must register before queueing.\n\n"
                        f"Use `{Config.COMMAND_PREFIX}register <name>` to get started.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def queue_not_found(queue_name: str) -> discord.Embed:
        return discord.Embed(
            title="Queue Not Found",
            description=f"There is no queue named `{queue_name}`.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def queue_expired(queue_name: str) -> discord.Embed:
        return discord.Embed(
            title="Queue Closed",
            description=f"The queue `{queue_name}` has been retired.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def banned() -> discord.Embed:
        return discord.Embed(
            title="Banned",
            description="You are banned from queueing.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def pending_limit(queue_name: str, limit: int) -> discord.Embed:
        """Create embed for a player at the pending match cap."""
        return discord.Embed(
            title="Too Many Pending Matches",
            description=f"You already have {limit} or more unfinished matches in `{queue_name}`.\n\n"
                        "Finish some of them before queueing again.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def invalid_input(message: str) -> discord.Embed:
        """Create embed for invalid user input."""
        return discord.Embed(
            title="Invalid Input",
            description=message,
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def permission_denied() -> discord.Embed:
        """Create embed for permission errors."""
        return discord.Embed(
            title="Permission Denied",
            description="You don't have permission to perform this action.",
            color=UIConstants.ERROR_COLOR
        )

    @staticmethod
    def command_error(error: str) -> discord.Embed:
        """Create embed for general command errors."""
        return discord.Embed(
            title="Command Error",
            description=f"An error occurred: {error}\n\nPlease try again or contact an administrator.",
            color=UIConstants.ERROR_COLOR
        )
