import tempfile
import unittest
from pathlib import Path

from socialclock.models.collaborators import Identity
from socialclock.services.settings import ALL_WEEKDAYS_MASK, ClockSettings


class TestClockSettings(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "nested" / "settings.yaml"

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults_without_file(self):
        settings = ClockSettings(self.path)
        self.assertEqual((settings.get_hour(), settings.get_minute()), (7, 0))
        self.assertEqual(settings.get_snooze_duration(), 5)
        self.assertEqual(settings.get_weekday_mask(), ALL_WEEKDAYS_MASK)
        self.assertFalse(settings.is_logged_in)
        self.assertFalse(self.path.exists())

    def test_config_defaults_apply(self):
        settings = ClockSettings(self.path, {"hour": 6, "minute": 45, "snooze_duration": 10})
        self.assertEqual((settings.get_hour(), settings.get_minute()), (6, 45))
        self.assertEqual(settings.get_snooze_duration(), 10)

    def test_changes_are_persisted(self):
        settings = ClockSettings(self.path)
        settings.set_time(8, 15)
        settings.set_snooze_duration(3)
        settings.switch_weekday_enable(0)

        reloaded = ClockSettings(self.path, {"hour": 6})
        self.assertEqual((reloaded.get_hour(), reloaded.get_minute()), (8, 15))
        self.assertEqual(reloaded.get_snooze_duration(), 3)
        self.assertFalse(reloaded.is_weekday_enable(0))

    def test_switch_weekday_toggles(self):
        settings = ClockSettings(self.path)
        self.assertFalse(settings.switch_weekday_enable(6))
        self.assertFalse(settings.is_weekday_enable(6))
        self.assertTrue(settings.is_weekday_enable(5))
        self.assertTrue(settings.switch_weekday_enable(6))
        self.assertEqual(settings.get_weekday_mask(), ALL_WEEKDAYS_MASK)

    def test_out_of_range_values_are_rejected(self):
        settings = ClockSettings(self.path)
        with self.assertRaises(ValueError):
            settings.set_time(24, 0)
        with self.assertRaises(ValueError):
            settings.set_minute(60)
        with self.assertRaises(ValueError):
            settings.set_snooze_duration(0)
        with self.assertRaises(ValueError):
            settings.is_weekday_enable(7)
        self.assertEqual(settings.get_hour(), 7)

    def test_unknown_keys_in_file_are_rejected(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("hour: 7\nvolume: 11\n")
        with self.assertRaises(ValueError):
            ClockSettings(self.path)

    def test_login_and_logout(self):
        settings = ClockSettings(self.path)
        identity = settings.login("1234", "mapler")

        self.assertEqual(identity, Identity(user_id="1234", user_name="mapler"))
        self.assertTrue(settings.is_logged_in)
        self.assertEqual(ClockSettings(self.path).current_identity(), identity)

        settings.logout()
        self.assertFalse(settings.is_logged_in)
        self.assertEqual(settings.get_user_name(), "")


if __name__ == '__main__':
    unittest.main()
