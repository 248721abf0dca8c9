"""
Scroll event debouncing.

Accessibility sources fire several scroll callbacks per swipe. A scroll only
counts when it comes more than min_interval_ms after the last counted one,
which collapses a gesture into a single unit without gesture-boundary events.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

import config

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of accessibility events the engine distinguishes."""
    SCROLLED = "scrolled"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> "EventKind":
        """Map a raw kind (enum, name or value) to EventKind; unknown is OTHER."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("scrolled", "scroll", "type_view_scrolled"):
            return cls.SCROLLED
        return cls.OTHER


@dataclass(frozen=True)
class DebounceState:
    """Debounce state for one controller. Replaced, never mutated."""
    last_counted_ms: Optional[int] = None
    min_interval_ms: int = config.SCROLL_DEBOUNCE_MS


def should_count(
    verdict: bool,
    event_kind: EventKind,
    timestamp_ms: int,
    state: DebounceState,
) -> Tuple[bool, DebounceState]:
    """
    Decide whether a scroll event counts toward usage.

    Args:
        verdict: Classifier verdict for the current screen.
        event_kind: Kind of the incoming event.
        timestamp_ms: Event time in milliseconds.
        state: Current debounce state.

    Returns:
        Tuple of (counted, new_state). new_state is state itself when the
        event is not counted.
    """
    if not verdict or event_kind is not EventKind.SCROLLED:
        return False, state

    last = state.last_counted_ms
    if last is None:
        return True, replace(state, last_counted_ms=timestamp_ms)

    if timestamp_ms < last:
        # Clock went backwards; skip rather than double count
        logger.debug(f"Scroll at {timestamp_ms} precedes last counted {last}, ignoring")
        return False, state

    if timestamp_ms - last > state.min_interval_ms:
        return True, replace(state, last_counted_ms=timestamp_ms)

    return False, state
