import unittest

from divergence import reports
from divergence.capture import Capture
from divergence.environment import detect_environment
from divergence.event_log import Category, EventEntry


def entry(category, message, **data):
    return EventEntry(sequence_time=0.0, category=category, message=message, data=data)


def capture_of(*entries, features=None):
    return Capture(descriptor=detect_environment("", features or {}), log=tuple(entries), export_time="")


class DriftTests(unittest.TestCase):
    def test_strictly_greater_than_threshold(self) -> None:
        self.assertFalse(reports.is_drift_event(100, 150))
        self.assertTrue(reports.is_drift_event(100, 150.01))
        self.assertFalse(reports.is_drift_event(100, 20))
        self.assertFalse(reports.is_drift_event("100", 500))
        self.assertFalse(reports.is_drift_event(None, 500))

    def test_drift_is_monotonic_in_actual_delay(self) -> None:
        for delay in (0, 10, 100, 1000):
            flagged = False
            for actual in range(delay - 100, delay + 200, 7):
                now = reports.is_drift_event(delay, actual)
                self.assertFalse(flagged and not now, (delay, actual))
                flagged = flagged or now

    def test_drift_entries_only_timer_category(self) -> None:
        entries = [
            entry(Category.TIMER, "setTimeout fired", delay=10, actualDelay=100),
            entry(Category.TIMER, "setTimeout fired", delay=10, actualDelay=12),
            entry(Category.VIDEO, "fake", delay=10, actualDelay=500),
        ]
        drifts = reports.drift_entries(entries)
        self.assertEqual(len(drifts), 1)
        self.assertEqual(reports.timer_drift(drifts[0]), 90)


class TimingTests(unittest.TestCase):
    def test_loading_times_read_numeric_and_formatted_durations(self) -> None:
        entries = [
            entry(Category.VIDEO, "Monitor 1 start completed", duration="100.00ms", durationMs=100.0),
            entry(Category.VIDEO, "Monitor 2 start completed", duration="250.50ms"),
            entry(Category.VIDEO, "Monitor 3 start completed", duration="n/a"),
            entry(Category.VIDEO, "Monitor 4 starting"),
            entry(Category.PERFORMANCE, "Measure: x start completed", duration="9.00ms"),
        ]
        self.assertEqual(reports.loading_times(entries), [100.0, 250.5])

    def test_stats(self) -> None:
        stat = reports.timing_stats([100, 200, 300])
        self.assertEqual(stat.to_json(), {"average": 200, "min": 100, "max": 300, "count": 3})
        self.assertIsNone(reports.timing_stats([]))

    def test_timing_report_none_without_completions(self) -> None:
        self.assertIsNone(reports.build_timing_report("webkit", capture_of()))
        report = reports.build_timing_report(
            "webkit", capture_of(entry(Category.VIDEO, "Monitor 1 start completed", durationMs=42))
        )
        self.assertEqual(report["stats"]["average"], 42)
        self.assertEqual(report["loadingTimes"], [42])


class EventReportTests(unittest.TestCase):
    def test_event_report_counts(self) -> None:
        capture = capture_of(
            entry(Category.TIMER, "setTimeout fired", delay=10, actualDelay=100),
            entry(Category.TIMER, "setInterval fired (10 times)", delay=10, count=10),
            entry(Category.SCROLL, "Scroll started"),
            entry(Category.VIEWPORT, "isOutOfViewport check"),
        )
        report = reports.build_event_report("webkit", capture)
        self.assertEqual(report["events"], {
            "timer": 2,
            "timerDrift": 1,
            "scroll": 1,
            "scrollEndMethod": "fallback",
            "viewport": 1,
        })
        self.assertEqual(report["timerDriftDetails"][0]["drift"], 90)

    def test_scroll_end_method(self) -> None:
        self.assertEqual(reports.scroll_end_method(None), "unknown")
        self.assertEqual(reports.scroll_end_method(detect_environment("", {"onscrollend": True})), "native")


class VisibilityTests(unittest.TestCase):
    def test_regressions_preserve_order_and_dedupe(self) -> None:
        self.assertEqual(reports.visibility_regressions([1, 2, 3], [1, 3]), [2])
        self.assertEqual(reports.visibility_regressions([3, 1, 2, 1], [2]), [3, 1])
        self.assertEqual(reports.visibility_regressions([1, 2], [2, 1, 5]), [])
        self.assertEqual(reports.visibility_regressions([], [1]), [])

    def test_bug_report_only_when_elements_disappear(self) -> None:
        self.assertIsNone(reports.build_bug_report("WebKit", [1, 2], [1, 2]))
        report = reports.build_bug_report("WebKit", [1, 2, 3], [1, 3], capture_of())
        self.assertEqual(report["missingMonitors"], [2])
        self.assertEqual(report["issue"], "Monitors disappeared after scrolling")
        self.assertIn("logs", report["debugLogs"])

    def test_stuck_streams(self) -> None:
        entries = [
            entry(Category.VIDEO, "Monitor 1 starting"),
            entry(Category.VIDEO, "Monitor 2 starting"),
            entry(Category.VIDEO, "Monitor 1 start completed", durationMs=5),
            entry(Category.VIDEO, "Monitor 3 starting"),
            entry(Category.VIDEO, "Monitor 2 starting"),
        ]
        self.assertEqual(reports.stuck_streams(entries), ["2", "3"])
        self.assertEqual(reports.stopped_monitors([1, 2, 3], [1]), [2, 3])


if __name__ == "__main__":
    unittest.main()
