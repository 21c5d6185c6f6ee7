import os
from dotenv import load_dotenv

load_dotenv()


def _parse_int_list(raw: str):
    return [int(part.strip()) for part in raw.split(',') if part.strip()]


class Config:
    """Bot configuration settings"""

    # Discord settings
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    DISCORD_GUILD_ID = int(os.getenv('DISCORD_GUILD_ID', 0))
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))
    ADMIN_ROLE_ID = int(os.getenv('ADMIN_ROLE_ID', 0))
    MATCH_CHANNEL_ID = int(os.getenv('MATCH_CHANNEL_ID', 0))
    ADMIN_CHANNEL_ID = int(os.getenv('ADMIN_CHANNEL_ID', 0))

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///ladder.db')

    # Bot settings
    COMMAND_PREFIX = os.getenv('COMMAND_PREFIX', 'm!')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Rating settings
    STARTING_RATING = 1500

    # Matchmaking settings
    # Flat list of (minimum pool size, minimum wait in ms) pairs
    MATCHMAKING_REQUIREMENTS = _parse_int_list(
        os.getenv('MATCHMAKING_REQUIREMENTS', '8,0,4,600000,2,1800000')
    )
    MAX_MATCHES = int(os.getenv('MAX_MATCHES', 10))  # Weight encoding base
    MATCHMAKING_INTERVAL_SECONDS = int(os.getenv('MATCHMAKING_INTERVAL_SECONDS', 300))
    SWEEP_QUEUE_SPACING_SECONDS = 2
    JOIN_TRIGGER_DELAY_SECONDS = 10
    REQUEUE_COOLDOWN_SECONDS = 30
    PENDING_MATCH_CAP = 5
    RECENT_MATCH_WINDOW = 5

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DISCORD_TOKEN:
            raise ValueError("DISCORD_TOKEN is required")
        if not cls.DISCORD_GUILD_ID:
            raise ValueError("DISCORD_GUILD_ID is required")
        if not cls.OWNER_DISCORD_ID:
            raise ValueError("OWNER_DISCORD_ID is required")
        if not cls.MATCH_CHANNEL_ID:
            raise ValueError("MATCH_CHANNEL_ID is required")
        if len(cls.MATCHMAKING_REQUIREMENTS) % 2 != 0:
            raise ValueError("MATCHMAKING_REQUIREMENTS must be comma-separated (players, milliseconds) pairs")
