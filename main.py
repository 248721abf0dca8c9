#!/usr/bin/env python3
"""
ReelGuard - Main Entry Point

Daily short-form video limit: counts reels scrolled in Instagram, YouTube
and TikTok from accessibility events and decides when to block.

Usage:
    python main.py --status             # Show today's count and limit
    python main.py --set-limit 100      # Change the daily limit (10-10000)
    python main.py --reset-today        # Reset today's counter
    python main.py --replay events.jsonl  # Feed an event log through the engine
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional

import config
from core.enforcement import BlockTrigger, EnforcementController, ScrollEvent
from core.status_reporter import format_status
from screen.ui_snapshot import snapshot_from_dict
from tracking.debouncer import EventKind
from tracking.usage_ledger import (
    JsonUsageLedger,
    LedgerError,
    UsageLedger,
    today_key,
    validate_limit,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)


def read_event_log(path: Path) -> Iterator[dict]:
    """
    Yield event records from a JSON-lines file.

    Blank lines are ignored; malformed lines (including bytes that are not
    UTF-8) are logged and skipped.
    """
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"{path}:{line_no}: invalid JSON ({e}), skipping")
                continue
            if not isinstance(record, dict):
                logger.warning(f"{path}:{line_no}: not an object, skipping")
                continue
            yield record


def replay(controller: EnforcementController, records) -> List[BlockTrigger]:
    """
    Feed recorded events through the controller.

    Each record has "app", "timestamp_ms", "kind" and an optional
    "snapshot" tree.

    Returns:
        Block triggers emitted during the replay.
    """
    triggers = []
    for record in records:
        try:
            timestamp_ms = int(record.get("timestamp_ms", 0))
        except (TypeError, ValueError):
            logger.warning(f"Bad timestamp in {record!r}, skipping")
            continue
        app_id = record.get("app") or ""
        event = ScrollEvent(
            app_id=app_id,
            timestamp_ms=timestamp_ms,
            kind=EventKind.parse(record.get("kind")),
        )
        tree = record.get("snapshot")
        trigger = controller.on_event(app_id, lambda: snapshot_from_dict(tree), event)
        if trigger is not None:
            triggers.append(trigger)
    return triggers


def print_status(ledger: UsageLedger) -> None:
    date_key = today_key()
    print(f"{date_key}: {format_status(ledger.get_count(date_key), ledger.get_limit())}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ReelGuard - daily short-form video limit"
    )
    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help=f"Usage store (default: {config.USAGE_DATA_FILE})",
    )
    parser.add_argument("--status", action="store_true", help="Show today's usage")
    parser.add_argument(
        "--set-limit",
        type=int,
        metavar="N",
        help=f"Set the daily limit ({config.MIN_REEL_LIMIT}-{config.MAX_REEL_LIMIT}); "
             f"presets: {', '.join(str(p) for p in config.LIMIT_PRESETS)}",
    )
    parser.add_argument("--reset-today", action="store_true", help="Reset today's counter")
    parser.add_argument(
        "--replay",
        type=Path,
        metavar="FILE",
        help="Replay a JSON-lines accessibility event log",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    ledger = JsonUsageLedger(args.data_file)

    try:
        if args.set_limit is not None:
            try:
                limit = validate_limit(args.set_limit)
            except ValueError as e:
                print(f"Invalid limit: {e}", file=sys.stderr)
                return 2
            ledger.set_limit(limit)
            print(f"Daily limit set to {limit}")

        if args.reset_today:
            controller = EnforcementController(ledger)
            controller.reset_today()
            print("Today's usage reset")

        if args.replay is not None:
            controller = EnforcementController(ledger)
            triggers = replay(controller, read_event_log(args.replay))
            for trigger in triggers:
                print(
                    f"BLOCK {trigger.app_id}: {trigger.reason.value} "
                    f"({trigger.count}/{trigger.limit})"
                )

        if args.status or not (args.set_limit is not None or args.reset_today or args.replay):
            print_status(ledger)

    except LedgerError as e:
        logger.error(f"Usage store error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cannot read event log: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
