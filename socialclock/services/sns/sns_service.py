import logging

from socialclock.models.collaborators import Publisher
from socialclock.services.alarm_event.models import AlarmEvent

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"
HASHTAG = "#SocialClock"


class SnsService:
    """Builds wake-up summaries and posts them through the publisher."""

    MAX_MESSAGE_LENGTH = 280
    """Longest message the social network accepts."""

    def __init__(self, publisher: Publisher):
        self.publisher = publisher

    def build_sns_message(self, alarm_event: AlarmEvent) -> str:
        started = alarm_event.start_at.strftime(TIME_FORMAT)
        snoozes = _plural(alarm_event.snooze_times, "snooze")
        if alarm_event.end_at is None:
            body = f"Alarm rang at {started} and I'm still in bed after {snoozes}."
        else:
            minutes = int((alarm_event.end_at - alarm_event.start_at).total_seconds() // 60)
            body = (
                f"Got up at {alarm_event.end_at.strftime(TIME_FORMAT)}, "
                f"{_plural(minutes, 'minute')} after the alarm rang at {started} ({snoozes})."
            )
        if alarm_event.user_name:
            body = f"@{alarm_event.user_name} {body}"
        return self.validate_message_length(f"{body} {HASHTAG}")

    def validate_message_length(self, message: str) -> str:
        if len(message) > self.MAX_MESSAGE_LENGTH:
            logger.info(
                f"Message exceeds the maximum allowed length ({self.MAX_MESSAGE_LENGTH}). Truncating message."
            )
            return message[: self.MAX_MESSAGE_LENGTH - 1] + "…"
        return message

    def tweet(self, message: str) -> None:
        self.publisher.tweet(message)
        logger.info(f"Published SNS message: {message}")


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
