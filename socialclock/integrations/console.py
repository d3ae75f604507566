"""Terminal and file backed implementations of the orchestrator collaborators."""
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Callable, Optional, TextIO

import yaml

from socialclock.models.collaborators import AlarmKind

logger = logging.getLogger(__name__)

DISPLAY_FORMAT = "%a %H:%M"


@dataclass(frozen=True)
class ScheduledAlarm:
    event_id: str
    kind: AlarmKind
    trigger_at_millis: int

    @property
    def trigger_at(self) -> datetime:
        return datetime.fromtimestamp(self.trigger_at_millis / 1000)


class FileAlarmScheduler:
    """Keeps the single pending alarm in a YAML file.

    Arming replaces whatever was pending, the same way a device alarm manager
    replaces an alarm registered with the same intent.
    """

    def __init__(self, state_path: Path):
        self.state_path = Path(state_path)

    def set_alarm(self, event_id: str, kind: AlarmKind, epoch_millis: int) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        state = {"event_id": event_id, "kind": AlarmKind(kind).value, "trigger_at_millis": int(epoch_millis)}
        self.state_path.write_text(yaml.safe_dump(state, sort_keys=True))
        logger.info(f"Armed {state['kind']} alarm for event {event_id} at {epoch_millis}")

    def cancel_alarm(self) -> None:
        if self.state_path.exists():
            self.state_path.unlink()
            logger.info("Disarmed pending alarm")

    def pending_alarm(self) -> Optional[ScheduledAlarm]:
        if not self.state_path.exists():
            return None
        state = yaml.safe_load(self.state_path.read_text()) or {}
        try:
            return ScheduledAlarm(
                event_id=str(state["event_id"]),
                kind=AlarmKind(state["kind"]),
                trigger_at_millis=int(state["trigger_at_millis"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Corrupted scheduler state in {self.state_path}: {e}") from e

    def pop_due_alarm(self, now: datetime) -> Optional[ScheduledAlarm]:
        """Returns and disarms the pending alarm once its trigger time is reached."""
        alarm = self.pending_alarm()
        if alarm is None or alarm.trigger_at > now:
            return None
        self.state_path.unlink()
        return alarm


class ConsoleNotifier:
    """Shows notifications as lines on the terminal."""

    def __init__(self, stream: TextIO = sys.stdout):
        self.stream = stream
        self.active: Optional[str] = None

    def _show(self, text: str) -> None:
        self.active = text
        print(f"[notification] {text}", file=self.stream)

    def create_alarm_notification(self, event_id: str, at: datetime) -> None:
        self._show(f"Alarm ringing since {at.strftime(DISPLAY_FORMAT)}. Snooze or get up? ({event_id})")

    def create_snooze_notification(self, event_id: str, at: datetime) -> None:
        self._show(f"Snoozing until {at.strftime(DISPLAY_FORMAT)} ({event_id})")

    def cancel_all_notifications(self) -> None:
        if self.active is not None:
            logger.debug(f"Cleared notification: {self.active}")
        self.active = None


class LoopingRingtonePlayer:
    """Rings the terminal bell on a background thread until stopped.

    An owned handle: one instance per process, at most one ringtone at a time.
    """

    def __init__(self, interval: float = 1.0, ring: Optional[Callable[[], None]] = None):
        self.interval = interval
        self.ring = ring or _terminal_bell
        self._stop_event = Event()
        self._lock = Lock()
        self._thread: Optional[Thread] = None

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def play_ringtone(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = Thread(target=self._ring_loop, name="ringtone", daemon=True)
            self._thread.start()
        logger.info("Ringtone started")

    def stop_ringtone(self) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None:
            thread.join(timeout=2)
            logger.info("Ringtone stopped")

    def _ring_loop(self) -> None:
        while not self._stop_event.is_set():
            self.ring()
            self._stop_event.wait(self.interval)


def _terminal_bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


class LoggingPublisher:
    """Stands in for the social network client by writing posts to the log."""

    def __init__(self, stream: TextIO = sys.stdout):
        self.stream = stream
        self.sns_logger = logging.getLogger("socialclock.sns")

    def tweet(self, message: str) -> None:
        self.sns_logger.info(message)
        print(f"[tweet] {message}", file=self.stream)
