"""Tests for matching config: YAML load, validation, env override, hot reload."""

import os
import sys
import tempfile
import unittest
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from thread_matcher.config import MATCHING_CONFIG_PATH
from thread_matcher.errors import MatchingConfigError
from thread_matcher.matching import settings
from thread_matcher.matching.settings import get_matching_config, load_matching_config, reload_matching_config


def _write(tmpdir: str, text: str) -> Path:
    path = Path(tmpdir) / "matching.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadMatchingConfig(unittest.TestCase):
    def test_shipped_config_is_valid(self):
        config = load_matching_config(MATCHING_CONFIG_PATH)
        self.assertEqual(config.thresholds.auto_match, 0.7)
        self.assertEqual(config.thresholds.review, 0.3)
        self.assertEqual(config.weights.email_match, 0.4)
        self.assertEqual(config.weights.stale_after_days, 120)

    def test_partial_file_uses_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            config = load_matching_config(_write(tmp, "thresholds:\n  auto_match: 0.9\n"))
        self.assertEqual(config.thresholds.auto_match, 0.9)
        self.assertEqual(config.thresholds.review, 0.3)
        self.assertEqual(config.weights.order_in_body, 0.3)

    def test_missing_file(self):
        with self.assertRaises(MatchingConfigError):
            load_matching_config(Path("/nonexistent/matching.yaml"))

    def test_inverted_thresholds_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(tmp, "thresholds:\n  auto_match: 0.2\n  review: 0.6\n")
            with self.assertRaises(MatchingConfigError):
                load_matching_config(path)

    def test_not_a_mapping_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(tmp, "- 1\n- 2\n")
            with self.assertRaises(MatchingConfigError):
                load_matching_config(path)

    def test_weight_out_of_range_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(tmp, "weights:\n  email_match: 1.5\n")
            with self.assertRaises(MatchingConfigError):
                load_matching_config(path)


class TestReloadMatchingConfig(unittest.TestCase):
    def setUp(self):
        self._saved_env = os.environ.get("MATCHING_CONFIG_PATH")
        self._saved_config = settings._config

    def tearDown(self):
        if self._saved_env is None:
            os.environ.pop("MATCHING_CONFIG_PATH", None)
        else:
            os.environ["MATCHING_CONFIG_PATH"] = self._saved_env
        settings._config = self._saved_config

    def test_reload_picks_up_new_thresholds(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(tmp, "thresholds:\n  auto_match: 0.8\n  review: 0.4\n")
            os.environ["MATCHING_CONFIG_PATH"] = str(path)
            self.assertEqual(reload_matching_config().thresholds.auto_match, 0.8)

            path.write_text("thresholds:\n  auto_match: 0.75\n  review: 0.35\n", encoding="utf-8")
            self.assertEqual(get_matching_config().thresholds.auto_match, 0.8)  # cached
            self.assertEqual(reload_matching_config().thresholds.review, 0.35)
            self.assertEqual(get_matching_config().thresholds.review, 0.35)

    def test_failed_reload_keeps_previous_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(tmp, "thresholds:\n  auto_match: 0.8\n  review: 0.4\n")
            os.environ["MATCHING_CONFIG_PATH"] = str(path)
            reload_matching_config()
            path.write_text("thresholds: [oops\n", encoding="utf-8")
            with self.assertRaises(MatchingConfigError):
                reload_matching_config()
            self.assertEqual(get_matching_config().thresholds.auto_match, 0.8)


if __name__ == "__main__":
    unittest.main()
