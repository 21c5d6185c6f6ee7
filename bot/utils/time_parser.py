"""
Duration parsing utilities for matchmaking administration.

Handles conversion between human-entered durations and the millisecond values
the matchmaking requirements are stored in.
"""

import re

_UNIT_MS = {
    'ms': 1,
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000,
}

_COMPONENT_RE = re.compile(r'(\d+)(ms|s|m|h|d)')


def parse_duration_ms(duration_str: str) -> int:
    """
    Parse a duration string into milliseconds.

    Supported formats:
    - Plain integer, taken as milliseconds (e.g., 600000)
    - Unit components, summed (e.g., 10m, 1h30m, 45s, 2d, 500ms)

    Args:
        duration_str: Duration string to parse

    Returns:
        Total milliseconds as int

    Raises:
        ValueError: If the format is invalid
    """
    duration_str = duration_str.strip().lower()

    if duration_str.startswith('-'):
        raise ValueError("Negative durations are not allowed")

    if duration_str.isdigit():
        return int(duration_str)

    components = _COMPONENT_RE.findall(duration_str)
    if not components or ''.join(f"{value}{unit}" for value, unit in components) != duration_str:
        raise ValueError(f"Invalid duration format: {duration_str}")

    return sum(int(value) * _UNIT_MS[unit] for value, unit in components)


def format_duration_ms(milliseconds: int) -> str:
    """
    Format milliseconds into a compact duration string.

    Args:
        milliseconds: Duration in milliseconds

    Returns:
        Formatted string (e.g., "1h30m", "45s", "0s")
    """
    if milliseconds < 0:
        raise ValueError("Negative durations not allowed")

    parts = []
    remainder = milliseconds
    for unit in ('d', 'h', 'm', 's'):
        value, remainder = divmod(remainder, _UNIT_MS[unit])
        if value:
            parts.append(f"{value}{unit}")
    if remainder:
        parts.append(f"{remainder}ms")

    return ''.join(parts) or '0s'
