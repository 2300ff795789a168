import unittest

from divergence.environment import FEATURE_PROBES, descriptor_from_json, detect_environment

SAFARI_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15"
)
CHROME_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class EnvironmentTests(unittest.TestCase):
    def test_safari_detection_and_version(self) -> None:
        desc = detect_environment(SAFARI_UA, {})
        self.assertTrue(desc.is_safari_like)
        self.assertFalse(desc.is_chromium_like)
        self.assertEqual(desc.safari_version, 17.4)
        self.assertEqual(desc.label, "Safari")

    def test_chrome_is_not_safari(self) -> None:
        desc = detect_environment(CHROME_UA, {})
        self.assertFalse(desc.is_safari_like)
        self.assertTrue(desc.is_chromium_like)
        self.assertIsNone(desc.safari_version)
        self.assertEqual(desc.label, "Chrome")

    def test_missing_capabilities_are_false(self) -> None:
        desc = detect_environment("", {"onscrollend": True, "ResizeObserver": object})
        self.assertEqual(set(desc.feature_support), set(FEATURE_PROBES))
        self.assertTrue(desc.supports("scrollEndEvent"))
        self.assertTrue(desc.supports("resizeObserver"))
        self.assertFalse(desc.supports("intersectionObserver"))
        self.assertFalse(desc.supports("notAFeature"))
        self.assertEqual(desc.label, "Other")

    def test_json_round_trip_accepts_original_rect_key(self) -> None:
        raw = {
            "isSafari": True,
            "isChrome": False,
            "userAgent": SAFARI_UA,
            "features": {"scrollEndEvent": False, "getBoundingClientRect": True},
        }
        desc = descriptor_from_json(raw)
        self.assertTrue(desc.supports("boundingRectSupport"))
        self.assertFalse(desc.supports("scrollEndEvent"))
        self.assertEqual(descriptor_from_json(desc.to_json()), desc)
        self.assertIsNone(descriptor_from_json("nope"))


if __name__ == "__main__":
    unittest.main()
