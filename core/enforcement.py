"""
EnforcementController: per-event orchestration for ReelGuard.

For every accessibility event from a foreground app:

    classify snapshot -> debounce scroll -> increment ledger -> threshold gate

and hand a BlockTrigger to the caller when the daily limit is crossed.
Events are processed serially by a single writer; nothing here locks.

Callbacks:
    on_block(trigger: BlockTrigger)
    on_error(error_type: str, message: str)
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Dict, Optional

from screen.feed_classifier import FeedClassifier, TraversalStats
from screen.ui_snapshot import UiSnapshot
from tracking.debouncer import DebounceState, EventKind, should_count
from tracking.threshold_gate import ThresholdGate
from tracking.usage_ledger import (
    LedgerReadError,
    LedgerWriteError,
    UsageLedger,
    today_key,
)

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], Optional[UiSnapshot]]


class BlockReason(Enum):
    DAILY_LIMIT_REACHED = "daily_limit_reached"


@dataclass(frozen=True)
class ScrollEvent:
    """An accessibility event notification."""
    app_id: str
    timestamp_ms: int
    kind: EventKind = EventKind.OTHER


@dataclass(frozen=True)
class BlockTrigger:
    """Request to show the blocking surface over app_id."""
    app_id: str
    reason: BlockReason
    date_key: str
    count: int
    limit: int


@dataclass
class EnforcementSession:
    """Context of the current stay in monitored apps."""
    app_id: Optional[str] = None
    debounce: DebounceState = field(default_factory=DebounceState)
    in_feed: bool = False


class EnforcementController:
    """
    Runs the detection pipeline for each incoming event.

    The controller never raises from on_event(): classification problems
    mean "not counted", ledger problems are logged and reported through
    on_error, and the event stream carries on.
    """

    def __init__(
        self,
        ledger: UsageLedger,
        classifier: Optional[FeedClassifier] = None,
        gate: Optional[ThresholdGate] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        """
        Args:
            ledger: Persistent counter/limit store.
            classifier: Feed classifier (default profiles if None).
            gate: Threshold gate (fresh gate if None).
            today: Local date source, injectable for tests.
        """
        self.ledger = ledger
        self.classifier = classifier or FeedClassifier()
        self.gate = gate or ThresholdGate()
        self._today = today
        self.session = EnforcementSession()

        # ---- Callbacks (set by the hosting service) ----
        self.on_block: Optional[Callable[[BlockTrigger], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def today_key(self) -> str:
        return today_key(self._today)

    def on_event(
        self,
        app_id: Optional[str],
        snapshot_provider: SnapshotProvider,
        event: ScrollEvent,
    ) -> Optional[BlockTrigger]:
        """
        Process one accessibility event.

        Args:
            app_id: Foreground application identifier.
            snapshot_provider: Returns the current UI snapshot. Only called
                for monitored apps.
            event: The event notification.

        Returns:
            BlockTrigger if this event crossed the daily limit, else None.
        """
        if not self.classifier.is_monitored(app_id):
            if self.session.app_id is not None:
                logger.debug(f"Left monitored apps ({self.session.app_id} -> {app_id})")
            self.end_session()
            return None

        if self.session.app_id != app_id:
            logger.debug(f"Monitoring {app_id}")
            self.session.app_id = app_id

        verdict = self._classify(app_id, snapshot_provider)
        self.session.in_feed = verdict

        counted, new_debounce = should_count(
            verdict, event.kind, event.timestamp_ms, self.session.debounce
        )
        if not counted:
            return None

        date_key = self.today_key()
        try:
            count = self.ledger.increment(date_key)
        except (LedgerWriteError, LedgerReadError) as e:
            # Not durably counted; next qualifying event tries again
            logger.warning(f"Reel not counted for {date_key}: {e}")
            error_type = "ledger_read" if isinstance(e, LedgerReadError) else "ledger_write"
            self._notify_error(error_type, str(e))
            return None

        # Only a persisted count advances the debounce window
        self.session.debounce = new_debounce
        logger.info(f"Reel counted in {app_id}: {count} today")

        return self._check_threshold(app_id, date_key, count)

    def end_session(self) -> None:
        """Forget the current app session (user left the monitored apps)."""
        self.session = EnforcementSession()

    def reset_today(self) -> None:
        """
        Manual reset of today's counter.

        Raises:
            LedgerWriteError: If the ledger could not persist the reset.
        """
        date_key = self.today_key()
        self.ledger.reset(date_key)
        self.gate.reset(date_key)
        logger.info(f"Usage for {date_key} manually reset")

    def get_status(self) -> Dict:
        """
        Snapshot of today's usage for status displays.

        Returns:
            {"date_key", "count", "limit", "remaining", "in_feed", "app_id"};
            count/limit/remaining are None if the ledger could not be read.
        """
        date_key = self.today_key()
        try:
            count = self.ledger.get_count(date_key)
            limit = self.ledger.get_limit()
            remaining = max(0, limit - count)
        except LedgerReadError as e:
            logger.warning(f"Could not read usage status: {e}")
            count = limit = remaining = None
        return {
            "date_key": date_key,
            "count": count,
            "limit": limit,
            "remaining": remaining,
            "in_feed": self.session.in_feed,
            "app_id": self.session.app_id,
        }

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _classify(self, app_id: str, snapshot_provider: SnapshotProvider) -> bool:
        """Fetch the snapshot and classify it; any failure is a False verdict."""
        try:
            snapshot = snapshot_provider()
        except Exception as e:
            logger.debug(f"Snapshot unavailable for {app_id}: {e}")
            return False

        stats = TraversalStats()
        verdict = self.classifier.classify(app_id, snapshot, stats)
        if verdict and stats.matched_keyword:
            logger.debug(
                f"{app_id} in feed: '{stats.matched_keyword}' after {stats.nodes_visited} nodes"
            )
        return verdict

    def _check_threshold(self, app_id: str, date_key: str, count: int) -> Optional[BlockTrigger]:
        """Ask the gate about a fresh count; emit the trigger when it fires."""
        try:
            limit = self.ledger.get_limit()
        except LedgerReadError as e:
            # Limit unknown: never lock the user out on a guess
            logger.warning(f"Daily limit unreadable, not blocking: {e}")
            self._notify_error("ledger_read", str(e))
            return None

        if not self.gate.on_counted(date_key, count, limit):
            return None

        trigger = BlockTrigger(
            app_id=app_id,
            reason=BlockReason.DAILY_LIMIT_REACHED,
            date_key=date_key,
            count=count,
            limit=limit,
        )
        logger.info(f"Daily reel limit reached ({count}/{limit}) in {app_id}")
        self._notify_block(trigger)
        return trigger

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _notify_block(self, trigger: BlockTrigger) -> None:
        if self.on_block:
            try:
                self.on_block(trigger)
            except Exception as e:
                logger.error(f"Block action failed: {e}")

    def _notify_error(self, error_type: str, message: str) -> None:
        if self.on_error:
            try:
                self.on_error(error_type, message)
            except Exception as e:
                logger.error(f"Error callback failed: {e}")
