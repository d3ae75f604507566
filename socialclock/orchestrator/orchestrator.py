import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from socialclock.models.collaborators import (
    AlarmKind,
    AlarmScheduler,
    Notifier,
    Publisher,
    RingtonePlayer,
    SettingsProvider,
)
from socialclock.services.alarm_event import AlarmEventService, AlreadyStartedError
from socialclock.services.sns import SnsService
from socialclock.utils.logging.metrics import MetricsLogger

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def next_alarm_time(now: datetime, hour: int, minute: int) -> datetime:
    """Today at hour:minute, or tomorrow if that moment has already passed."""
    alarm_at = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if now > alarm_at:
        alarm_at += timedelta(days=1)
    return alarm_at


def snooze_alarm_time(now: datetime, snooze_minutes: int) -> datetime:
    return (now + timedelta(minutes=snooze_minutes)).replace(second=0, microsecond=0)


def weekday_index(moment: datetime) -> int:
    """0 for Sunday through 6 for Saturday."""
    return (moment.weekday() + 1) % 7


def to_epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class Orchestrator:
    """Sequences the user facing alarm actions.

    Holds no state of its own: the wake-up time and identity come from the
    settings provider, event records from the alarm event service, and every
    side effect goes through the scheduler, notifier, ringtone player and
    publisher it was built with. Errors from any of them propagate.
    """

    def __init__(
        self,
        alarm_event_service: AlarmEventService,
        settings: SettingsProvider,
        scheduler: AlarmScheduler,
        notifier: Notifier,
        ringtone_player: RingtonePlayer,
        publisher: Publisher,
        metrics_logger: MetricsLogger,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.alarm_event_service = alarm_event_service
        self.settings = settings
        self.scheduler = scheduler
        self.notifier = notifier
        self.ringtone_player = ringtone_player
        self.sns_service = SnsService(publisher)
        self.metrics_logger = metrics_logger
        self.clock = clock

    def create_alarm(self) -> str:
        """Arms the next daily alarm and returns the id of its future event."""
        with self.metrics_logger.instrumenter("Orchestrator.create_alarm"):
            alarm_at = next_alarm_time(
                self.clock(), self.settings.get_hour(), self.settings.get_minute()
            )
            alarm_event_id = self.alarm_event_service.init_alarm_event()

            self.scheduler.set_alarm(alarm_event_id, AlarmKind.NORMAL, to_epoch_millis(alarm_at))
            self.notifier.cancel_all_notifications()

            logger.info(f"Clock is set at {alarm_at.strftime(DATETIME_FORMAT)} for event {alarm_event_id}")
            return alarm_event_id

    def start_alarm(self, alarm_event_id: str) -> None:
        """Rings. The event record is created on the first ring only."""
        with self.metrics_logger.instrumenter("Orchestrator.start_alarm"):
            self.notifier.cancel_all_notifications()

            start_at = self.clock()
            if self.alarm_event_service.get_alarm_event_by_id(alarm_event_id) is None:
                try:
                    self.alarm_event_service.start_alarm_event(
                        alarm_event_id,
                        self.settings.get_user_id(),
                        self.settings.get_user_name(),
                        start_at,
                    )
                except AlreadyStartedError:
                    # a second firing won the race, keep ringing for it
                    logger.info(f"Alarm event {alarm_event_id} was started concurrently")

            self.notifier.create_alarm_notification(alarm_event_id, start_at)
            self.ringtone_player.play_ringtone()
            logger.info(f"Alarm {alarm_event_id} is ringing")

    def handle_alarm_fired(self, alarm_event_id: str, kind: AlarmKind) -> bool:
        """Entry point for a fired device alarm. Returns whether it rang.

        A normal alarm firing on a weekday that is switched off rings nothing
        and arms the next day instead. Snooze alarms always ring.
        """
        with self.metrics_logger.instrumenter("Orchestrator.handle_alarm_fired"):
            if kind is AlarmKind.NORMAL and not self.settings.is_weekday_enable(weekday_index(self.clock())):
                logger.info(f"Weekday disabled, skipping alarm {alarm_event_id}")
                self.create_alarm()
                return False
            self.start_alarm(alarm_event_id)
            return True

    def snooze_alarm(self, alarm_event_id: str) -> Optional[datetime]:
        """Delays a running event. Returns the snooze time, or None if nothing was snoozed."""
        with self.metrics_logger.instrumenter("Orchestrator.snooze_alarm"):
            self.notifier.cancel_all_notifications()
            self.ringtone_player.stop_ringtone()

            alarm_event = self.alarm_event_service.get_alarm_event_by_id(alarm_event_id)
            if alarm_event is None or self.alarm_event_service.is_finished(alarm_event):
                logger.info(f"Nothing to snooze for alarm event {alarm_event_id}")
                return None

            if self.alarm_event_service.snooze_alarm_event(alarm_event_id) is None:
                return None

            snooze_at = snooze_alarm_time(self.clock(), self.settings.get_snooze_duration())
            self.scheduler.set_alarm(alarm_event_id, AlarmKind.SNOOZE, to_epoch_millis(snooze_at))
            self.notifier.create_snooze_notification(alarm_event_id, snooze_at)

            logger.info(f"Snooze to {snooze_at.strftime(DATETIME_FORMAT)}")
            return snooze_at

    def cancel_alarm(self) -> None:
        """Turns the clock off. Event records are not touched."""
        with self.metrics_logger.instrumenter("Orchestrator.cancel_alarm"):
            self.scheduler.cancel_alarm()
            self.ringtone_player.stop_ringtone()
            self.notifier.cancel_all_notifications()
            logger.info("Alarm cancelled")

    def get_up(self, alarm_event_id: str) -> str:
        """Finishes the event and arms tomorrow's alarm, returning its id."""
        with self.metrics_logger.instrumenter("Orchestrator.get_up"):
            logger.info(f"Get up from alarm event {alarm_event_id}")
            self.notifier.cancel_all_notifications()
            self.ringtone_player.stop_ringtone()

            self.alarm_event_service.finish_alarm_event(alarm_event_id)

            return self.create_alarm()

    def send_sns(self, alarm_event_id: str) -> Optional[str]:
        with self.metrics_logger.instrumenter("Orchestrator.send_sns"):
            alarm_event = self.alarm_event_service.get_alarm_event_by_id(alarm_event_id)
            if alarm_event is None:
                logger.warning(f"Cannot publish unknown alarm event {alarm_event_id}")
                return None
            sns_message = self.sns_service.build_sns_message(alarm_event)
            self.sns_service.tweet(sns_message)
            return sns_message

    def update_alarm_time(self, hour: int, minute: int) -> Optional[str]:
        """Stores a new wake-up time and re-arms the clock when it changed."""
        with self.metrics_logger.instrumenter("Orchestrator.update_alarm_time"):
            if (hour, minute) == (self.settings.get_hour(), self.settings.get_minute()):
                return None
            self.settings.set_time(hour, minute)
            logger.info(f"Alarm time is updated to {hour:02d}:{minute:02d}")
            self.cancel_alarm()
            return self.create_alarm()

    def get_finished_alarm_events(self) -> list[dict]:
        """History rows for the wake-up log, latest first."""
        with self.metrics_logger.instrumenter("Orchestrator.get_finished_alarm_events"):
            return [
                {
                    "event_id": alarm_event.event_id,
                    "user_name": alarm_event.user_name,
                    "start_at": alarm_event.start_at.strftime(DATETIME_FORMAT),
                    "end_at": alarm_event.end_at.strftime(DATETIME_FORMAT),
                    "snooze_times": alarm_event.snooze_times,
                }
                for alarm_event in self.alarm_event_service.get_finished_alarm_events()
            ]
