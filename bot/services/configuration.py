"""
Runtime configuration for the ladder bot.

Keeps admin-set overrides (matchmaking requirements, weight base, cooldowns)
in the configurations table, cached in memory, with an audit trail.
"""

import json
import logging
from typing import Any, Dict
from sqlalchemy import select
from bot.database.models import Configuration, AuditLog

logger = logging.getLogger(__name__)

class ConfigurationService:
    """Manages runtime configuration with simple caching and audit trail."""

    def __init__(self, database):
        """
        Args:
            database: Initialized Database instance
        """
        self.db = database
        self._cache: Dict[str, Any] = {}

    async def load_all(self):
        """Load all configurations from database into memory."""
        new_cache = {}
        async with self.db.get_session() as session:
            result = await session.execute(select(Configuration))
            for config in result.scalars().all():
                try:
                    new_cache[config.key] = json.loads(config.value)
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON for config key '{config.key}', skipping")

        self._cache = new_cache
        logger.info(f"Loaded {len(self._cache)} configuration parameters")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key (e.g., 'matchmaking.requirements')
            default: Default value if key not found
        """
        return self._cache.get(key, default)

    async def set(self, key: str, value: Any, user_id: int):
        """
        Set configuration value and persist it, recording who changed it.

        Args:
            key: Configuration key
            value: Configuration value (will be JSON-encoded)
            user_id: Discord user ID for audit trail
        """
        async with self.db.transaction() as session:
            result = await session.execute(
                select(Configuration).where(Configuration.key == key)
            )
            config = result.scalar_one_or_none()

            old_value = None
            if config:
                try:
                    old_value = json.loads(config.value)
                except json.JSONDecodeError:
                    old_value = {"error": "invalid JSON", "raw": config.value}
                config.value = json.dumps(value)
            else:
                session.add(Configuration(key=key, value=json.dumps(value)))

            session.add(AuditLog(
                user_id=user_id,
                action='config_set',
                details=json.dumps({
                    'key': key,
                    'old_value': old_value,
                    'new_value': value
                })
            ))

        self._cache[key] = value
        logger.info(f"Configuration '{key}' set to {value!r} by {user_id}")
