import tempfile
import unittest
from pathlib import Path

from socialclock.config import DEFAULT_CHECK_INTERVAL, DEFAULT_DATABASE_URL, Config


class TestConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "config.yaml"

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_gives_defaults(self):
        config = Config(str(self.path))
        self.assertEqual(config.database_url, DEFAULT_DATABASE_URL)
        self.assertEqual(config.check_interval, DEFAULT_CHECK_INTERVAL)
        self.assertEqual(config.defaults, {})

    def test_values_are_read(self):
        self.path.write_text(
            "database:\n  url: sqlite:///tmp/x.db\n"
            "scheduler:\n  check_interval: 2\n"
            "defaults:\n  hour: 6\n"
        )
        config = Config(str(self.path))
        self.assertEqual(config.database_url, "sqlite:///tmp/x.db")
        self.assertEqual(config.check_interval, 2.0)
        self.assertEqual(config.defaults, {"hour": 6})

    def test_invalid_interval_is_rejected(self):
        self.path.write_text("scheduler:\n  check_interval: 0\n")
        with self.assertRaises(ValueError):
            Config(str(self.path))

    def test_top_level_must_be_a_mapping(self):
        self.path.write_text("- just\n- a list\n")
        with self.assertRaises(ValueError):
            Config(str(self.path))


if __name__ == '__main__':
    unittest.main()
