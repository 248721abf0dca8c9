"""
Core enforcement package for ReelGuard.

Contains the EnforcementController that turns accessibility events into
counted reels and block triggers, and the read-only status reporter.
Zero UI dependencies.
"""

from core.enforcement import BlockReason, BlockTrigger, EnforcementController, ScrollEvent
from core.status_reporter import UsageStatusReporter

__all__ = [
    "BlockReason",
    "BlockTrigger",
    "EnforcementController",
    "ScrollEvent",
    "UsageStatusReporter",
]
