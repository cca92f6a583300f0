"""Utility functions for logcheck"""

import logging
import os
import re
import sys
from datetime import timedelta
from pathlib import Path


DEFAULT_STATE_FILENAME = 'state.json'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_DURATION_UNITS = {
    's': 1,
    'm': 60,
    'h': 60 * 60,
    'd': 24 * 60 * 60,
    'w': 7 * 24 * 60 * 60,
}
_DURATION_PART_RE = re.compile(r'(\d+)\s*([smhdw])', re.IGNORECASE)
_DURATION_RE = re.compile(r'^(?:\s*\d+\s*[smhdw]\s*)+$', re.IGNORECASE)


def get_int_env(key: str, default: int = 0) -> int:
    """Get integer value from environment variable, return default if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_str_env(key: str, default: str) -> str:
    """
    Get string from environment variable, return default if not set.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        String value or default
    """
    return os.getenv(key, default)


def get_state_dir() -> Path:
    """Get the directory holding the check state.

    Priority:
    1. LOGCHECK_STATE_DIR environment variable (if set)
    2. XDG_STATE_HOME environment variable (if set) + /logcheck
    3. ~/.local/state/logcheck (default)

    The directory is not created here; the state store creates it on save.
    """
    explicit = os.environ.get('LOGCHECK_STATE_DIR')
    if explicit:
        return Path(explicit)

    xdg_state = os.environ.get('XDG_STATE_HOME')
    if xdg_state:
        base = Path(xdg_state)
    else:
        base = Path.home() / '.local' / 'state'

    return base / 'logcheck'


def get_default_state_path() -> Path:
    """Get the default state file path (``<state dir>/state.json``)."""
    return get_state_dir() / DEFAULT_STATE_FILENAME


def parse_duration(value: str | None) -> timedelta:
    """Parse a retention duration string.

    Accepts plain seconds (``"90"``) or unit-suffixed parts that may be
    combined: ``"30s"``, ``"15m"``, ``"2h"``, ``"1d"``, ``"1w"``,
    ``"1h30m"``, ``"1h 30m"``. Empty or ``None`` means no retention.

    Raises:
        ValueError: If the string is not a valid duration
    """
    if value is None:
        return timedelta(0)

    text = value.strip()
    if not text:
        return timedelta(0)

    if text.isdigit():
        return timedelta(seconds=int(text))

    if not _DURATION_RE.match(text):
        raise ValueError(f'invalid duration: {value!r} (expected e.g. "90", "15m", "1h30m", "2d")')

    seconds = 0
    for amount, unit in _DURATION_PART_RE.findall(text):
        seconds += int(amount) * _DURATION_UNITS[unit.lower()]
    return timedelta(seconds=seconds)


def format_duration(delta: timedelta) -> str:
    """Format a duration compactly, e.g. ``timedelta(minutes=90)`` -> ``'1h30m'``."""
    seconds = int(delta.total_seconds())
    if seconds <= 0:
        return '0s'

    parts = []
    for unit in ('w', 'd', 'h', 'm', 's'):
        size = _DURATION_UNITS[unit]
        if seconds >= size:
            parts.append(f'{seconds // size}{unit}')
            seconds %= size
    return ''.join(parts)


def truncate_text(text: str, limit: int) -> str:
    """Shorten text to at most ``limit`` characters, marking the cut with '...'."""
    if limit <= 0 or len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3] + '...'


def configure_logging(verbosity: int = 0) -> None:
    """Send log records to stderr so stdout stays reserved for the plugin output.

    The base level comes from LOGCHECK_LOG_LEVEL (default WARNING); each -v
    lowers it one step (-v INFO, -vv DEBUG).
    """
    level_name = get_str_env('LOGCHECK_LOG_LEVEL', 'WARNING').upper()
    level = getattr(logging, level_name, logging.WARNING)
    if verbosity >= 2:
        level = min(level, logging.DEBUG)
    elif verbosity == 1:
        level = min(level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
