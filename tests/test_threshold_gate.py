"""
Tests for tracking/threshold_gate.py: one trigger per limit crossing.
"""

import sys
import unittest
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracking.threshold_gate import GateState, ThresholdGate

DAY = "2024-05-01"


class TestThresholdGate(unittest.TestCase):

    def setUp(self):
        self.gate = ThresholdGate()

    def test_below_limit_no_trigger(self):
        self.assertFalse(self.gate.on_counted(DAY, 1, 50))
        self.assertIs(self.gate.state_for(DAY), GateState.BELOW_LIMIT)

    def test_crossing_fires_once(self):
        """49 -> 50 with limit 50 fires; later counts do not."""
        self.assertFalse(self.gate.on_counted(DAY, 49, 50))
        self.assertTrue(self.gate.on_counted(DAY, 50, 50))
        self.assertIs(self.gate.state_for(DAY), GateState.AT_OR_ABOVE_LIMIT)
        for count in range(51, 80):
            self.assertFalse(self.gate.on_counted(DAY, count, 50))

    def test_first_observation_is_the_crossing(self):
        """A gate that first sees the day at the crossing event still fires."""
        self.assertTrue(self.gate.on_counted(DAY, 50, 50))

    def test_first_observation_already_over(self):
        """A day that was over the limit before this event does not fire."""
        self.assertFalse(self.gate.on_counted(DAY, 51, 50))
        self.assertIs(self.gate.state_for(DAY), GateState.AT_OR_ABOVE_LIMIT)

    def test_limit_lowered_fires_on_next_count_only(self):
        """Lowering the limit below the count fires once, on the next counted event."""
        self.assertFalse(self.gate.on_counted(DAY, 30, 50))
        # limit drops to 20: nothing happens until another event is counted
        self.assertTrue(self.gate.on_counted(DAY, 31, 20))
        self.assertFalse(self.gate.on_counted(DAY, 32, 20))

    def test_new_day_reinitialises(self):
        self.assertTrue(self.gate.on_counted(DAY, 50, 50))
        self.assertFalse(self.gate.on_counted("2024-05-02", 1, 50))
        self.assertIsNone(self.gate.state_for(DAY))
        self.assertIs(self.gate.state_for("2024-05-02"), GateState.BELOW_LIMIT)

    def test_reset_rearms(self):
        """After a reset, the next crossing fires again."""
        self.assertTrue(self.gate.on_counted(DAY, 10, 10))
        self.gate.reset(DAY)
        self.assertIsNone(self.gate.state_for(DAY))
        self.assertFalse(self.gate.on_counted(DAY, 1, 10))
        self.assertTrue(self.gate.on_counted(DAY, 10, 10))

    def test_reset_other_day_ignored(self):
        self.assertTrue(self.gate.on_counted(DAY, 10, 10))
        self.gate.reset("2024-04-30")
        self.assertFalse(self.gate.on_counted(DAY, 11, 10))

    def test_reset_all(self):
        self.gate.on_counted(DAY, 10, 10)
        self.gate.reset()
        self.assertIsNone(self.gate.state_for(DAY))


if __name__ == "__main__":
    unittest.main()
