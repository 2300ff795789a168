import unittest

from divergence.event_log import Category, EventLog
from divergence.instrument.timers import TimerTracker
from tests.fakes import ManualClock, ManualTimers


class TimerTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = ManualClock()
        self.timers = ManualTimers(self.clock)
        self.scope = {}
        self.timers.install(self.scope)
        self.log = EventLog(100, clock=self.clock)
        self.tracker = TimerTracker(self.log, clock=self.clock)
        self.tracker.install(self.scope)

    def timer_entries(self):
        return [e for e in self.log.snapshot() if e.category == Category.TIMER and e.message != "Timer tracking initialized"]

    def test_timeout_records_requested_and_actual_delay(self) -> None:
        self.timers.lag_ms = 80
        results = []
        timer_id = self.scope["setTimeout"](lambda x: results.append(x) or "done", 100, "arg")
        self.assertEqual(timer_id, 1)
        self.assertIn(timer_id, self.tracker.timers)
        self.timers.advance(500)
        self.assertEqual(results, ["arg"])
        entries = self.timer_entries()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].message, "setTimeout fired")
        self.assertEqual(entries[0].data, {"delay": 100, "actualDelay": 180.0})
        self.assertNotIn(timer_id, self.tracker.timers)

    def test_callback_return_value_is_forwarded(self) -> None:
        captured = []

        def capture(callback, delay=0, *args):
            captured.append(callback)
            return "id-from-original"

        tracker = TimerTracker(self.log, clock=self.clock)
        set_timeout = tracker.wrap_set_timeout(capture)
        self.assertEqual(set_timeout(lambda: 42, 5), "id-from-original")
        self.assertEqual(captured[0](), 42)

    def test_interval_logs_every_tenth_firing(self) -> None:
        fired = []
        interval_id = self.scope["setInterval"](lambda: fired.append(1), 10)
        self.timers.advance(255)
        self.assertEqual(len(fired), 25)
        messages = [e.message for e in self.timer_entries()]
        self.assertEqual(messages, ["setInterval fired (10 times)", "setInterval fired (20 times)"])
        self.assertEqual(self.timer_entries()[-1].data, {"delay": 10, "count": 20})
        self.assertEqual(self.tracker.intervals[interval_id]["count"], 25)
        self.scope["clearInterval"](interval_id)
        self.assertNotIn(interval_id, self.tracker.intervals)
        self.timers.advance(100)
        self.assertEqual(len(fired), 25)

    def test_second_install_does_not_double_log(self) -> None:
        again = TimerTracker(self.log, clock=self.clock)
        again.install(self.scope)
        self.scope["setTimeout"](lambda: None, 1)
        self.timers.advance(10)
        self.assertEqual(len([e for e in self.timer_entries() if e.message == "setTimeout fired"]), 1)

    def test_quiet_mode_skips_fire_entries(self) -> None:
        self.tracker.verbose = False
        self.scope["setTimeout"](lambda: None, 1)
        self.timers.advance(10)
        self.assertEqual(self.timer_entries(), [])

    def test_uninstall_restores_scope(self) -> None:
        self.tracker.uninstall()
        self.assertEqual(self.scope["setTimeout"], self.timers.set_timeout)


if __name__ == "__main__":
    unittest.main()
