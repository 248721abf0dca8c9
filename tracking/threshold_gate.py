"""
Daily limit gate.

Turns a stream of post-increment counts into at most one block trigger per
crossing of the daily limit. Once a day is at or above its limit, further
counted events are suppressed until the day rolls over or the counter is
reset.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class GateState(Enum):
    BELOW_LIMIT = "below_limit"
    AT_OR_ABOVE_LIMIT = "at_or_above_limit"


class ThresholdGate:
    """
    Two-state machine for the current day.

    The gate only tracks one day at a time; seeing a new date key
    reinitialises it.
    """

    def __init__(self) -> None:
        self._date_key: Optional[str] = None
        self._state: Optional[GateState] = None

    def state_for(self, date_key: str) -> Optional[GateState]:
        """State for date_key, or None if the gate has not observed that day."""
        if date_key != self._date_key:
            return None
        return self._state

    def on_counted(self, date_key: str, count: int, limit: int) -> bool:
        """
        Observe a counted event.

        Args:
            date_key: Day the event was counted on (YYYY-MM-DD).
            count: Day's count after the increment.
            limit: Current daily limit.

        Returns:
            True exactly when this event moves the day from below the limit
            to at or above it.
        """
        if date_key != self._date_key or self._state is None:
            # First observation of the day: derive from where this event started
            self._date_key = date_key
            self._state = (
                GateState.BELOW_LIMIT if count - 1 < limit else GateState.AT_OR_ABOVE_LIMIT
            )
            logger.debug(f"Gate initialised for {date_key}: {self._state.value} ({count}/{limit})")

        if self._state is GateState.AT_OR_ABOVE_LIMIT:
            return False

        if count >= limit:
            self._state = GateState.AT_OR_ABOVE_LIMIT
            logger.info(f"Daily limit reached for {date_key}: {count}/{limit}")
            return True

        return False

    def reset(self, date_key: Optional[str] = None) -> None:
        """
        Forget the current state so the next event re-derives it.

        Args:
            date_key: Only reset if the gate is tracking this day. None
                resets unconditionally.
        """
        if date_key is not None and date_key != self._date_key:
            return
        self._date_key = None
        self._state = None
