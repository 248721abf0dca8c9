"""
Usage Ledger for ReelGuard.

Persists the per-day reel counter and the global daily limit. The key layout
is shared with the Android app's preferences store:

    usage_count_<YYYY-MM-DD>  -> int   (one per calendar day)
    reel_limit                -> int   (default 50, bounds [10, 10000])

The engine is the single writer. A status reporter may read concurrently;
reads never take the writer lock.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import config

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for usage ledger failures."""


class LedgerWriteError(LedgerError):
    """A counter or limit update was not persisted."""


class LedgerReadError(LedgerError):
    """A stored value could not be read or is invalid."""


def usage_count_key(date_key: str) -> str:
    """Storage key for a day's counter, e.g. usage_count_2024-05-01."""
    return f"{config.USAGE_COUNT_KEY_PREFIX}{date_key}"


def today_key(today: Optional[Callable[[], date]] = None) -> str:
    """
    Local calendar date as YYYY-MM-DD.

    Args:
        today: Optional date source (defaults to date.today).
    """
    return (today or date.today)().isoformat()


def validate_limit(limit: Any) -> int:
    """
    Validate a daily limit.

    Returns:
        The limit as int.

    Raises:
        ValueError: If limit is not an integer within [MIN_REEL_LIMIT, MAX_REEL_LIMIT].
    """
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValueError(f"Limit must be an integer, got {limit!r}")
    if limit < config.MIN_REEL_LIMIT:
        raise ValueError(f"Minimum is {config.MIN_REEL_LIMIT} reels")
    if limit > config.MAX_REEL_LIMIT:
        raise ValueError(f"Maximum is {config.MAX_REEL_LIMIT} reels")
    return limit


class UsageLedger(ABC):
    """Interface the enforcement engine consumes for counters and the limit."""

    @abstractmethod
    def get_count(self, date_key: str) -> int:
        """Counter for a day, 0 if absent."""

    @abstractmethod
    def increment(self, date_key: str) -> int:
        """Atomically add one to a day's counter and return the new value."""

    @abstractmethod
    def get_limit(self) -> int:
        """Current daily limit."""

    @abstractmethod
    def set_limit(self, limit: int) -> None:
        """Store a new daily limit (settings collaborator only)."""

    @abstractmethod
    def reset(self, date_key: str) -> None:
        """Set a day's counter to 0."""


class JsonUsageLedger(UsageLedger):
    """
    UsageLedger backed by a flat JSON key-value file.

    Every write replaces a single key in the in-memory dict and then saves
    the whole file atomically (temp file + rename). A failed save rolls the
    in-memory value back so memory never runs ahead of disk.
    """

    def __init__(self, data_file: Optional[Path] = None) -> None:
        """
        Initialize the ledger and load existing data.

        Args:
            data_file: JSON file to use (defaults to config.USAGE_DATA_FILE).
        """
        self.data_file: Path = Path(data_file) if data_file else config.USAGE_DATA_FILE
        self._lock = threading.Lock()  # Serialises writers only
        self.data: Dict[str, Any] = self._load_data()

    def _load_data(self) -> Dict[str, Any]:
        """
        Load the key-value store from disk.

        A missing file is a fresh install. An unreadable one is logged and
        replaced by an empty store; the file itself is left alone until the
        next successful write.

        Returns:
            Dict of stored keys.
        """
        if not self.data_file.exists():
            return {}
        try:
            return self._read_file()
        except LedgerReadError as e:
            logger.warning(f"Failed to load usage data: {e}. Starting empty.")
            return {}

    def _read_file(self) -> Dict[str, Any]:
        """Read and parse the store file, raising LedgerReadError on failure."""
        try:
            with open(self.data_file, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError, OSError) as e:
            raise LedgerReadError(f"Cannot read {self.data_file}: {e}") from e
        if not isinstance(data, dict):
            raise LedgerReadError(f"{self.data_file} does not contain an object")
        logger.debug(f"Loaded usage data: {len(data)} keys")
        return data

    def _save_data(self, data: Dict[str, Any]) -> None:
        """
        Save the store atomically.

        Raises:
            LedgerWriteError: If the file could not be written.
        """
        temp_path = None
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='usage_',
                dir=self.data_file.parent
            )
            with os.fdopen(temp_fd, 'w') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(temp_path, self.data_file)
            temp_path = None
        except (IOError, OSError) as e:
            raise LedgerWriteError(f"Failed to save usage data: {e}") from e
        finally:
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass

    def _write_key(self, key: str, value: Optional[int]) -> None:
        """
        Replace (or delete, when value is None) one key and persist.

        Caller must hold self._lock.
        """
        had_key = key in self.data
        previous = self.data.get(key)

        if value is None:
            self.data.pop(key, None)
        else:
            self.data[key] = value
        try:
            self._save_data(self.data)
        except LedgerWriteError:
            if had_key:
                self.data[key] = previous
            else:
                self.data.pop(key, None)
            raise

    def _read_int(self, key: str, default: int) -> int:
        """Read a non-negative int without locking."""
        value = self.data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise LedgerReadError(f"Stored value for {key} is invalid: {value!r}")
        return value

    def get_count(self, date_key: str) -> int:
        """
        Get the counter for a day.

        Returns:
            Count for the day, 0 if no record exists.

        Raises:
            LedgerReadError: If the stored value is not a non-negative int.
        """
        return self._read_int(usage_count_key(date_key), 0)

    def increment(self, date_key: str) -> int:
        """
        Add one to a day's counter, creating it if absent.

        Returns:
            New count.

        Raises:
            LedgerWriteError: If the update was not persisted (count unchanged).
            LedgerReadError: If the stored counter is corrupt.
        """
        key = usage_count_key(date_key)
        with self._lock:
            new_count = self._read_int(key, 0) + 1
            self._write_key(key, new_count)
        logger.debug(f"Usage count for {date_key} is now {new_count}")
        return new_count

    def get_limit(self) -> int:
        """
        Get the daily limit.

        Raises:
            LedgerReadError: If the stored limit is not an int within
                [MIN_REEL_LIMIT, MAX_REEL_LIMIT].
        """
        value = self._read_int(config.KEY_REEL_LIMIT, config.DEFAULT_REEL_LIMIT)
        try:
            return validate_limit(value)
        except ValueError as e:
            raise LedgerReadError(f"Stored limit {value} is out of range: {e}") from e

    def set_limit(self, limit: int) -> None:
        """
        Store a new daily limit.

        Raises:
            ValueError: If the limit is outside [MIN_REEL_LIMIT, MAX_REEL_LIMIT].
            LedgerWriteError: If the limit could not be saved.
        """
        limit = validate_limit(limit)
        with self._lock:
            self._write_key(config.KEY_REEL_LIMIT, limit)
        logger.info(f"Daily reel limit set to {limit}")

    def reset(self, date_key: str) -> None:
        """
        Set a day's counter to 0.

        Raises:
            LedgerWriteError: If the reset could not be saved.
        """
        with self._lock:
            self._write_key(usage_count_key(date_key), 0)
        logger.info(f"Usage count for {date_key} reset")

    def reload(self) -> None:
        """
        Re-read the store from disk, e.g. after the settings screen changed it.

        Raises:
            LedgerReadError: If the file exists but cannot be read; the
                in-memory state is kept in that case.
        """
        if not self.data_file.exists():
            return
        data = self._read_file()
        with self._lock:
            self.data = data

    def purge_before(self, date_key: str) -> int:
        """
        Delete day counters older than date_key.

        Returns:
            Number of counters removed.

        Raises:
            LedgerWriteError: If the pruned store could not be saved.
        """
        cutoff = usage_count_key(date_key)
        prefix = config.USAGE_COUNT_KEY_PREFIX
        with self._lock:
            # ISO dates sort lexicographically
            stale = [k for k in self.data if k.startswith(prefix) and k < cutoff]
            if not stale:
                return 0
            pruned = {k: v for k, v in self.data.items() if k not in stale}
            self._save_data(pruned)
            self.data = pruned
        logger.info(f"Purged {len(stale)} day counters older than {date_key}")
        return len(stale)
