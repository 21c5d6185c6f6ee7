"""
Player Operations Module

Registration and moderation of ladder players.

Names are unique case-insensitively; registering again with a new name
renames the existing player.
"""

import re
from typing import Tuple

from bot.database.models import Player
from bot.utils.logger import setup_logger

logger = setup_logger(__name__)

NAME_PATTERN = re.compile(r'^[A-Za-z0-9_\-.]{1,32}$')


class PlayerOperationError(Exception):
    """Base exception for player operation errors"""
    pass


class PlayerValidationError(PlayerOperationError):
    """Raised when player data validation fails"""
    pass


class PlayerOperations:
    """Business logic operations for Player management."""

    def __init__(self, database):
        self.db = database
        self.logger = logger

    def _validate_name(self, name: str) -> str:
        name = (name or '').strip()
        if not NAME_PATTERN.match(name):
            raise PlayerValidationError(
                "Names must be 1-32 characters of letters, digits, '_', '-' or '.'"
            )
        return name

    async def register(self, discord_id: int, name: str) -> Tuple[Player, bool]:
        """
        Register a Discord user, or rename them if already registered.

        Args:
            discord_id: Discord user ID
            name: Desired display name

        Returns:
            (player, created) where created is False for a rename

        Raises:
            PlayerValidationError: If the name is invalid or taken by someone else
        """
        name = self._validate_name(name)

        owner = await self.db.get_player_by_name(name)
        if owner is not None and owner.discord_id != discord_id:
            raise PlayerValidationError(f"The name '{owner.name}' is already taken")

        player = await self.db.get_player_by_discord_id(discord_id)
        if player is None:
            player = await self.db.create_player(discord_id, name)
            self.logger.info(f"Registered player {name} ({discord_id})")
            return player, True

        if player.name != name:
            old_name = player.name
            await self.db.rename_player(player.id, name)
            player.name = name
            player.lowercase_name = name.lower()
            self.logger.info(f"Renamed player {old_name} to {name} ({discord_id})")
        return player, False

    async def set_banned(self, discord_id: int, banned: bool) -> Player:
        """
        Ban or unban a player. Banned players cannot queue and are not ranked;
        a ban also takes them out of every waiting pool and autoqueue.
        """
        player = await self.db.get_player_by_discord_id(discord_id)
        if player is None:
            raise PlayerValidationError("That user is not registered")
        waiting, autoqueues = await self.db.set_player_banned(player.id, banned)
        player.banned = banned
        if banned:
            self.logger.info(
                f"Player {player.name} banned "
                f"({waiting} waiting entries, {autoqueues} autoqueues removed)"
            )
        else:
            self.logger.info(f"Player {player.name} unbanned")
        return player
