import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from socialclock.integrations.console import FileAlarmScheduler, ScheduledAlarm
from socialclock.orchestrator import Orchestrator
from socialclock.utils.logging.request_id_filter import RequestIdContextManager

logger = logging.getLogger(__name__)


class AlarmDispatcher:
    """Polls the file scheduler and fires due alarms into the orchestrator."""

    def __init__(
        self,
        scheduler: FileAlarmScheduler,
        orchestrator: Orchestrator,
        request_id_context_manager: RequestIdContextManager,
        check_interval: float,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.scheduler = scheduler
        self.orchestrator = orchestrator
        self.request_id_context_manager = request_id_context_manager
        self.check_interval = check_interval
        self.clock = clock
        self.ringing_event_id: Optional[str] = None

    def dispatch_due_alarm(self) -> Optional[ScheduledAlarm]:
        """Fires the pending alarm if it is due and returns it.

        If firing raises, the alarm is put back so the next check retries it,
        unless the failed call already armed another one. The error is re-raised.
        """
        alarm = self.scheduler.pop_due_alarm(self.clock())
        if alarm is None:
            return None
        with self.request_id_context_manager.for_action("fire"):
            logger.info(f"Firing {alarm.kind.value} alarm for event {alarm.event_id}")
            try:
                rang = self.orchestrator.handle_alarm_fired(alarm.event_id, alarm.kind)
            except Exception:
                if self.scheduler.pending_alarm() is None:
                    self.scheduler.set_alarm(alarm.event_id, alarm.kind, alarm.trigger_at_millis)
                    logger.warning(f"Re-armed alarm for event {alarm.event_id} after a failed firing")
                raise
            if rang:
                self.ringing_event_id = alarm.event_id
        return alarm

    async def start(self):
        """Start the alarm checking loop"""
        logger.info("Starting alarm dispatcher")
        try:
            while True:
                try:
                    self.dispatch_due_alarm()
                    next_check_time = self.clock() + timedelta(seconds=self.check_interval)
                    logger.debug(f"Checked alarms - next check time is at {next_check_time}")
                except Exception as e:
                    logger.exception(f"Error dispatching alarms: {e}")
                try:
                    await asyncio.sleep(self.check_interval)
                except asyncio.CancelledError:
                    logger.info("Alarm dispatcher received shutdown signal")
                    break
        except asyncio.CancelledError:
            logger.info("Alarm dispatcher shutting down...")
        finally:
            logger.info("Alarm dispatcher stopped")
