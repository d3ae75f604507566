import argparse
import io
import logging
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from socialclock.integrations.console import FileAlarmScheduler
from socialclock.main import cli, parse_arguments, parse_hhmm


class TestArguments(unittest.TestCase):

    def test_parse_hhmm(self):
        self.assertEqual(parse_hhmm("07:05"), (7, 5))
        for bad in ("7", "24:00", "07:60", "aa:bb"):
            with self.assertRaises(argparse.ArgumentTypeError):
                parse_hhmm(bad)

    def test_event_commands_take_an_id(self):
        args = parse_arguments(["-v", "snooze", "e1"])
        self.assertTrue(args.v)
        self.assertEqual((args.command, args.event_id), ("snooze", "e1"))


class TestCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.state_path = root / "data" / "alarm.yaml"
        self.config_path = root / "config.yaml"
        self.config_path.write_text(
            f"database:\n  url: sqlite:///{root}/data/events.db\n"
            f"logging:\n  dir: {root}/logs\n"
            f"scheduler:\n  state_path: {self.state_path}\n"
            f"settings:\n  path: {root}/data/settings.yaml\n"
        )
        self.app_logger = logging.getLogger("socialclock")
        self.handlers = list(self.app_logger.handlers)

    def tearDown(self):
        for handler in self.app_logger.handlers:
            if handler not in self.handlers:
                handler.close()
                self.app_logger.removeHandler(handler)
        self.tmp.cleanup()

    def _run(self, *argv) -> tuple[int, str]:
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli(["--config", str(self.config_path), *argv])
        return code, out.getvalue()

    def test_on_status_off(self):
        code, out = self._run("on")
        self.assertEqual((code, out), (0, "Alarm is set ON\n"))
        self.assertIsNotNone(FileAlarmScheduler(self.state_path).pending_alarm())

        code, out = self._run("status")
        self.assertTrue(out.startswith("Normal alarm at "))

        self._run("off")
        self.assertIsNone(FileAlarmScheduler(self.state_path).pending_alarm())

    def test_wake_cycle_shows_in_history(self):
        self._run("login", "42", "mapler")
        self._run("start", "e1")
        self._run("snooze", "e1")
        self.assertEqual(self._run("getup", "e1")[0], 0)

        code, out = self._run("history")
        self.assertEqual(code, 0)
        self.assertIn("snoozed 1x  mapler", out)

    def test_login_and_logout(self):
        self.assertEqual(self._run("login", "42", "mapler"), (0, "@MAPLER\n"))
        self.assertEqual(self._run("logout"), (0, "Logged out\n"))

        self._run("start", "e1")
        self._run("getup", "e1")
        self.assertIn("snoozed 0x  -", self._run("history")[1])

    def test_starting_twice_still_rings(self):
        self.assertEqual(self._run("start", "e1")[0], 0)
        self.assertEqual(self._run("start", "e1")[0], 0)

    def test_bad_config_fails_cleanly(self):
        self.config_path.write_text("scheduler:\n  check_interval: -1\n")
        with self.assertRaises(ValueError):
            cli(["--config", str(self.config_path), "status"])


if __name__ == '__main__':
    unittest.main()
