"""Utility functions for logpulse"""

import logging
import os
from pathlib import Path


# Newline symbol configuration (module-level constants)
_newline_env = os.getenv('LOGPULSE_NEWLINE_SYMBOL', '\\n')
# Handle escape sequences
NEWLINE_SYMBOL = _newline_env.replace('\\r', '\r').replace('\\n', '\n')
NEWLINE_SYMBOL_BYTES = NEWLINE_SYMBOL.encode('utf-8')


def get_int_env(key: str, default: int = 0) -> int:
    """Get integer value from environment variable, return default if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_str_env(key: str, default: str | None) -> str | None:
    """
    Get string from environment variable, return default if not set.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        String value or default
    """
    return os.getenv(key, default)


def get_state_base() -> Path:
    """Get the base state directory for logpulse.

    Priority:
    1. LOGPULSE_STATE_DIR environment variable (if set)
    2. XDG_STATE_HOME environment variable (if set)
    3. ~/.local/state (default)

    Returns:
        Path to the base state directory (e.g., ~/.local/state/logpulse)
    """
    # First check LOGPULSE_STATE_DIR for explicit override
    explicit = os.environ.get('LOGPULSE_STATE_DIR')
    if explicit:
        return Path(explicit)

    xdg_state = os.environ.get('XDG_STATE_HOME')
    if xdg_state:
        base = Path(xdg_state)
    else:
        base = Path.home() / '.local' / 'state'

    return base / 'logpulse'


def get_state_dir() -> Path:
    """Get the state directory, created if necessary."""
    state_dir = get_state_base()
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def human_readable_size(size_bytes: int) -> str:
    """Convert bytes to human-readable format."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024:
            return f'{size_bytes:.2f} {unit}'
        size_bytes /= 1024
    return f'{size_bytes:.2f} PB'


def configure_logging(verbose: bool = False):
    """Configure root logging for CLI runs.

    Level comes from LOGPULSE_LOG_LEVEL (default WARNING so reports stay
    readable); --verbose forces DEBUG.
    """
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level_name = get_str_env('LOGPULSE_LOG_LEVEL', 'WARNING').upper()
        log_level = getattr(logging, log_level_name, logging.WARNING)
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
