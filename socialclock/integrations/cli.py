import asyncio
import logging
from typing import Optional

from socialclock.integrations.console import FileAlarmScheduler
from socialclock.integrations.dispatcher import AlarmDispatcher
from socialclock.orchestrator import Orchestrator
from socialclock.utils.logging.request_id_filter import RequestIdContextManager

logger = logging.getLogger(__name__)

HELP_TEXT = "Commands: snooze, up, on, off, status, history, sns, help, quit"


class CliIntegration:
    """Interactive prompt running next to the alarm dispatcher."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        dispatcher: AlarmDispatcher,
        scheduler: FileAlarmScheduler,
        request_id_context_manager: RequestIdContextManager,
    ):
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.request_id_context_manager = request_id_context_manager
        self.last_event_id: Optional[str] = None

    async def start(self):
        logger.info("Starting CLI Integration")
        print(HELP_TEXT)

        while True:
            try:
                # Use asyncio.to_thread for blocking input() operation
                command = (await asyncio.to_thread(input, "> ")).strip().lower()
                if command in ("quit", "exit"):
                    break
                if command:
                    with self.request_id_context_manager.for_action(command):
                        self.handle_command(command)
            except (asyncio.CancelledError, KeyboardInterrupt, EOFError):
                logger.info("CLI Integration received shutdown signal")
                break
            except Exception as e:
                logger.exception(f"Error in command loop: {e}")
                print("An error occurred: " + str(e))

        logger.info("CLI Integration stopped")

    def _current_event_id(self) -> Optional[str]:
        event_id = self.dispatcher.ringing_event_id or self.last_event_id
        if event_id is None:
            print("No alarm has rung yet.")
        return event_id

    def handle_command(self, command: str) -> None:
        if command == "snooze":
            event_id = self._current_event_id()
            if event_id is not None:
                snooze_at = self.orchestrator.snooze_alarm(event_id)
                if snooze_at is None:
                    print("Nothing to snooze.")
        elif command == "up":
            event_id = self._current_event_id()
            if event_id is not None:
                self.orchestrator.get_up(event_id)
                self.dispatcher.ringing_event_id = None
                self.last_event_id = event_id
                print("Good morning. Tomorrow's alarm is set.")
        elif command == "on":
            self.orchestrator.create_alarm()
            print("Alarm is set ON")
        elif command == "off":
            self.orchestrator.cancel_alarm()
            self.dispatcher.ringing_event_id = None
            print("Alarm is set OFF")
        elif command == "status":
            print(describe_pending_alarm(self.scheduler))
        elif command == "history":
            print(format_history(self.orchestrator.get_finished_alarm_events()))
        elif command == "sns":
            event_id = self._current_event_id()
            if event_id is not None and self.orchestrator.send_sns(event_id) is None:
                print("Nothing to publish.")
        else:
            print(HELP_TEXT)


def describe_pending_alarm(scheduler: FileAlarmScheduler) -> str:
    alarm = scheduler.pending_alarm()
    if alarm is None:
        return "Alarm is OFF"
    return f"{alarm.kind.value.capitalize()} alarm at {alarm.trigger_at:%Y-%m-%d %H:%M} (event {alarm.event_id})"


def format_history(rows: list[dict]) -> str:
    if not rows:
        return "No finished alarm events"
    lines = [
        f"{row['start_at']} -> {row['end_at']}  snoozed {row['snooze_times']}x  {row['user_name'] or '-'}"
        for row in rows
    ]
    return "\n".join(lines)
