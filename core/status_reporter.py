"""
Periodic usage status refresh.

Reads today's count and limit on a background thread and hands them to a
callback, e.g. to refresh a persistent "Reels watched: N" notification.
Read-only: it never writes to the ledger and never takes its writer lock.
"""

import logging
import threading
from datetime import date
from typing import Callable, Optional

import config
from tracking.usage_ledger import LedgerReadError, UsageLedger, today_key

logger = logging.getLogger(__name__)


def format_status(count: int, limit: int) -> str:
    """Notification line for the current usage."""
    return f"Reels watched: {count} / {limit}"


class UsageStatusReporter:
    """Background thread that reports usage every `interval` seconds."""

    def __init__(
        self,
        ledger: UsageLedger,
        on_status: Optional[Callable[[int, int], None]] = None,
        interval: float = config.STATUS_REFRESH_INTERVAL,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.ledger = ledger
        self.on_status = on_status
        self.interval = interval
        self._today = today
        self.should_stop: threading.Event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Start the refresh loop (no-op if already running)."""
        if self.is_running:
            return
        self.should_stop.clear()
        self.thread = threading.Thread(
            target=self._loop, name="usage-status", daemon=True
        )
        self.thread.start()
        logger.info(f"Status reporter started ({self.interval}s interval)")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the loop and wait for the thread to exit."""
        self.should_stop.set()
        if self.thread is not None:
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning("Status reporter thread did not stop in time")
            self.thread = None

    def refresh(self) -> bool:
        """
        Read usage once and report it.

        Returns:
            True if the status was read and reported.
        """
        try:
            count = self.ledger.get_count(today_key(self._today))
            limit = self.ledger.get_limit()
        except LedgerReadError as e:
            logger.warning(f"Status refresh skipped: {e}")
            return False

        if self.on_status:
            try:
                self.on_status(count, limit)
            except Exception as e:
                logger.error(f"Status callback failed: {e}")
                return False
        else:
            logger.info(format_status(count, limit))
        return True

    def _loop(self) -> None:
        while not self.should_stop.is_set():
            self.refresh()
            self.should_stop.wait(self.interval)
