"""
Tests for main.py: command line settings and event log replay.
"""

import json
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
import main
from core.enforcement import EnforcementController
from tracking.usage_ledger import JsonUsageLedger, today_key

REEL_TREE = {"children": [{"viewIdResourceName": "com.google.android.youtube:id/reel_player_page"}]}


class MainTestCase(unittest.TestCase):

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name)
        self.data_file = self.tmp / "prefs.json"

    def tearDown(self):
        self._tmpdir.cleanup()

    def write_log(self, records, extra_lines=()):
        path = self.tmp / "events.jsonl"
        lines = [json.dumps(r) for r in records] + list(extra_lines)
        path.write_text("\n".join(lines) + "\n")
        return path


class TestReplay(MainTestCase):

    def test_replay_counts_and_triggers(self):
        ledger = JsonUsageLedger(self.data_file)
        ledger.set_limit(10)
        controller = EnforcementController(ledger, today=lambda: date(2024, 5, 1))
        records = [
            {"app": config.APP_YOUTUBE, "timestamp_ms": i * 2000, "kind": "scrolled", "snapshot": REEL_TREE}
            for i in range(12)
        ]
        triggers = main.replay(controller, records)
        self.assertEqual(len(triggers), 1)
        self.assertEqual(triggers[0].count, 10)
        self.assertEqual(ledger.get_count("2024-05-01"), 12)

    def test_replay_skips_bad_records(self):
        ledger = JsonUsageLedger(self.data_file)
        controller = EnforcementController(ledger, today=lambda: date(2024, 5, 1))
        records = [
            {"app": config.APP_YOUTUBE, "timestamp_ms": "soon", "kind": "scrolled", "snapshot": REEL_TREE},
            {"app": "com.example.other", "timestamp_ms": 0, "kind": "scrolled"},
            {"app": config.APP_YOUTUBE, "timestamp_ms": 5000, "kind": "scrolled"},
        ]
        self.assertEqual(main.replay(controller, records), [])
        self.assertEqual(ledger.get_count("2024-05-01"), 0)

    def test_read_event_log(self):
        path = self.write_log([{"app": "a"}], extra_lines=["", "{broken", "[1, 2]"])
        self.assertEqual(list(main.read_event_log(path)), [{"app": "a"}])


class TestCommandLine(MainTestCase):

    def test_set_limit(self):
        self.assertEqual(main.main(["--data-file", str(self.data_file), "--set-limit", "200"]), 0)
        self.assertEqual(JsonUsageLedger(self.data_file).get_limit(), 200)

    def test_set_limit_out_of_range(self):
        self.assertEqual(main.main(["--data-file", str(self.data_file), "--set-limit", "5"]), 2)
        self.assertFalse(self.data_file.exists())

    def test_reset_today(self):
        ledger = JsonUsageLedger(self.data_file)
        ledger.increment(today_key())
        self.assertEqual(main.main(["--data-file", str(self.data_file), "--reset-today"]), 0)
        self.assertEqual(JsonUsageLedger(self.data_file).get_count(today_key()), 0)

    def test_replay_command(self):
        path = self.write_log([
            {"app": config.APP_TIKTOK, "timestamp_ms": 0, "kind": "TYPE_VIEW_SCROLLED"},
            {"app": config.APP_TIKTOK, "timestamp_ms": 300, "kind": "TYPE_VIEW_SCROLLED"},
        ])
        self.assertEqual(main.main(["--data-file", str(self.data_file), "--replay", str(path)]), 0)
        self.assertEqual(JsonUsageLedger(self.data_file).get_count(today_key()), 1)

    def test_replay_log_with_invalid_utf8(self):
        """Undecodable bytes only cost their own line."""
        path = self.tmp / "events.jsonl"
        record = {"app": config.APP_TIKTOK, "timestamp_ms": 0, "kind": "scrolled"}
        path.write_bytes(json.dumps(record).encode("utf-8") + b"\n\xff\xfe\n")

        self.assertEqual(list(main.read_event_log(path)), [record])
        self.assertEqual(main.main(["--data-file", str(self.data_file), "--replay", str(path)]), 0)
        self.assertEqual(JsonUsageLedger(self.data_file).get_count(today_key()), 1)

    def test_missing_log(self):
        code = main.main(["--data-file", str(self.data_file), "--replay", str(self.tmp / "nope.jsonl")])
        self.assertEqual(code, 1)

    def test_status_default(self):
        self.assertEqual(main.main(["--data-file", str(self.data_file)]), 0)


if __name__ == "__main__":
    unittest.main()
