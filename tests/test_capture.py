import json
import tempfile
import unittest
from pathlib import Path

from divergence.capture import (
    FileStore,
    MemoryStore,
    StorageQuotaExceeded,
    capture_from_json,
    capture_to_json,
    download_filename,
    export_capture,
    load_capture,
    loads_capture,
    persist,
)
from divergence.environment import detect_environment
from divergence.event_log import Category, EventLog
from tests.fakes import ManualClock

CHROME_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class CaptureTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = ManualClock()
        self.descriptor = detect_environment(CHROME_UA, {"onscrollend": True})
        self.log = EventLog(10, clock=self.clock, environment_label=self.descriptor.label)

    def test_export_shape(self) -> None:
        self.log.append(Category.BROWSER, "Divergence instrumentation initialized")
        self.clock.advance(3.14159)
        self.log.append(Category.SCROLL, "Scroll started", {"scrollY": 0})
        capture = export_capture(self.descriptor, self.log, now="2026-01-01T00:00:00.000Z")
        payload = capture_to_json(capture)
        self.assertEqual(set(payload), {"browserInfo", "logs", "exportTime"})
        self.assertEqual(payload["exportTime"], "2026-01-01T00:00:00.000Z")
        self.assertTrue(payload["browserInfo"]["isChrome"])
        self.assertTrue(payload["browserInfo"]["features"]["scrollEndEvent"])
        self.assertEqual(payload["logs"][1]["timestamp"], 3.14)
        self.assertEqual(payload["logs"][1]["userAgent"], CHROME_UA)
        self.assertEqual(payload["logs"][1]["browser"], "Chrome")

    def test_empty_capture_is_valid(self) -> None:
        capture = export_capture(self.descriptor, self.log)
        self.assertTrue(capture.empty)
        self.assertEqual(capture_to_json(capture)["logs"], [])
        self.assertTrue(capture.export_time.endswith("Z"))

    def test_load_reports_missing_and_bad_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing, err = load_capture(Path(tmp) / "nope.json")
            self.assertIsNone(missing)
            self.assertIn("missing file", err)

            bad = Path(tmp) / "bad.json"
            bad.write_text("{not json", encoding="utf-8")
            capture, err = load_capture(bad)
            self.assertIsNone(capture)
            self.assertIn("failed to parse JSON", err)

    def test_loads_capture_reports_instead_of_raising(self) -> None:
        self.assertEqual(loads_capture(None), (None, "no capture provided"))
        capture, err = loads_capture("{bad")
        self.assertIsNone(capture)
        self.assertIn("failed to parse capture JSON", err)
        self.assertEqual(loads_capture("[1, 2]"), (None, "capture was not a JSON object"))
        capture, err = loads_capture('{"logs": []}')
        self.assertIsNone(err)
        self.assertTrue(capture.empty)

    def test_from_json_skips_malformed_entries(self) -> None:
        capture, err = capture_from_json({
            "browserInfo": None,
            "logs": [{"category": "TIMER", "message": "ok"}, {"category": "NOPE"}, "junk"],
            "timestamp": "2024-05-01T00:00:00Z",
        })
        self.assertIsNone(err)
        self.assertEqual(len(capture.log), 1)
        self.assertIsNone(capture.descriptor)
        self.assertEqual(capture.export_time, "2024-05-01T00:00:00Z")
        self.assertEqual(capture_from_json([])[1], "capture was not a JSON object")
        self.assertEqual(capture_from_json({"logs": {}})[1], "capture logs must be a list")

    def test_persist_and_reload(self) -> None:
        self.log.append(Category.VIDEO, "Monitor 1 starting")
        capture = export_capture(self.descriptor, self.log)
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "out" / "chromium-initial-load-logs.json"
            self.assertIsNone(persist(capture, dest))
            loaded, err = load_capture(dest)
            self.assertIsNone(err)
            self.assertEqual(loaded.log, capture.log)
            self.assertEqual(loaded.descriptor, capture.descriptor)

    def test_persist_failure_leaves_log_intact(self) -> None:
        self.log.append(Category.EVENT, "keep me")
        capture = export_capture(self.descriptor, self.log)
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("x", encoding="utf-8")
            err = persist(capture, blocker / "child" / "capture.json")
        self.assertIn("failed to persist capture", err)
        self.assertEqual([e.message for e in self.log.snapshot()], ["keep me"])

    def test_download_filename(self) -> None:
        self.assertEqual(download_filename(self.descriptor, 1700000000000), "divergence-chrome-1700000000000.json")
        self.assertEqual(download_filename(None, 5), "divergence-chrome-5.json")

    def test_stores(self) -> None:
        store = MemoryStore(quota_bytes=4)
        store.set_item("k", "abcd")
        self.assertEqual(store.get_item("k"), "abcd")
        with self.assertRaises(StorageQuotaExceeded):
            store.set_item("k", "abcde")
        self.assertEqual(store.get_item("k"), "abcd")

        with tempfile.TemporaryDirectory() as tmp:
            files = FileStore(Path(tmp) / "storage")
            self.assertIsNone(files.get_item("divergence_debug_logs"))
            files.set_item("divergence_debug_logs", json.dumps({"logs": []}))
            self.assertEqual(json.loads(files.get_item("divergence_debug_logs")), {"logs": []})


if __name__ == "__main__":
    unittest.main()
