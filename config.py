"""Configuration settings for ReelGuard."""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv


def is_bundled() -> bool:
    """
    Check if the application is running from a PyInstaller bundle.

    Returns:
        True if running from a bundled executable, False otherwise.
    """
    return getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')


# Load environment variables from .env file (only in development)
if not is_bundled():
    # Explicitly load from the project root (where config.py lives)
    # This ensures .env is found regardless of current working directory
    _env_path = Path(__file__).parent / ".env"
    load_dotenv(_env_path)


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (usage counters, limit).

    REELGUARD_DATA_DIR overrides the default. Without it, development runs
    use BASE_DIR/data and bundled apps use the platform's application data
    location so data persists across updates.

    Returns:
        Path to the user data directory.
    """
    override = os.environ.get("REELGUARD_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if not is_bundled():
        # Development mode
        return Path(__file__).parent / "data"

    if sys.platform == 'darwin':
        # macOS: ~/Library/Application Support/ReelGuard
        return Path.home() / "Library" / "Application Support" / "ReelGuard"
    elif sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        if appdata:
            return Path(appdata) / "ReelGuard"
        return Path.home() / "AppData" / "Roaming" / "ReelGuard"
    # Linux: ~/.local/share/ReelGuard
    return Path.home() / ".local" / "share" / "ReelGuard"


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from the environment, falling back on bad values.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset or not an integer.

    Returns:
        Parsed integer or the default.
    """
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        import logging
        logging.getLogger(__name__).warning(
            f"{name}={raw!r} is not an integer, using {default}"
        )
        return default


# Base directory (project root)
BASE_DIR = Path(__file__).parent

# User data directory (for writable data like counters and the limit)
USER_DATA_DIR = get_user_data_dir()

# --- Monitored apps ---
# Package identifiers of apps whose short-form feeds are counted.
# Per-app detection keywords live in screen/feed_classifier.py (FEED_PROFILES).
APP_INSTAGRAM = "com.instagram.android"
APP_YOUTUBE = "com.google.android.youtube"
APP_TIKTOK = "com.zhiliaoapp.musically"

MONITORED_APPS = frozenset({
    APP_INSTAGRAM,
    APP_YOUTUBE,
    APP_TIKTOK,
})

# --- Daily reel limit ---
MIN_REEL_LIMIT = 10
MAX_REEL_LIMIT = 10000
DEFAULT_REEL_LIMIT = _get_int_env("REEL_LIMIT_DEFAULT", 50)
if not MIN_REEL_LIMIT <= DEFAULT_REEL_LIMIT <= MAX_REEL_LIMIT:
    DEFAULT_REEL_LIMIT = 50

# Quick presets offered by the settings screen
LIMIT_PRESETS = [25, 50, 100, 200, 500, 1000]

# --- Detection tuning ---
# Scroll callbacks closer together than this are one gesture
SCROLL_DEBOUNCE_MS = 1000

# Nodes with this many children (or more) are not expanded
MAX_CHILD_FANOUT = 50
MAX_TRAVERSAL_DEPTH = 64
MAX_VISITED_NODES = 5000

# --- Persistence ---
# Key layout is shared with the Android app's SharedPreferences store
PREFS_NAME = "reelguard_prefs"
KEY_REEL_LIMIT = "reel_limit"
USAGE_COUNT_KEY_PREFIX = "usage_count_"
USAGE_DATA_FILE = USER_DATA_DIR / f"{PREFS_NAME}.json"

# Seconds between status refreshes ("Reels watched: N")
STATUS_REFRESH_INTERVAL = _get_int_env("STATUS_REFRESH_INTERVAL", 5)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Ensure user data directory exists
try:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
except Exception as e:
    import logging
    logging.getLogger(__name__).error(f"Failed to create data directory {USER_DATA_DIR}: {e}")
