import argparse
import asyncio
import logging
import sys

from socialclock.config import Config, default_config
from socialclock.integrations.cli import CliIntegration, describe_pending_alarm, format_history
from socialclock.integrations.console import (
    ConsoleNotifier,
    FileAlarmScheduler,
    LoggingPublisher,
    LoopingRingtonePlayer,
)
from socialclock.integrations.dispatcher import AlarmDispatcher
from socialclock.models.collaborators import IdentityProvider
from socialclock.orchestrator import Orchestrator
from socialclock.services.alarm_event import (
    AlarmEventError,
    AlarmEventService,
    create_event_store,
    setup_database,
)
from socialclock.services.settings import ClockSettings
from socialclock.utils.logging.logging_config import setup_logging
from socialclock.utils.logging.metrics import MetricsLogger
from socialclock.utils.logging.request_id_filter import (
    RequestIdContextManager,
    RequestIdFilter,
)

logger = logging.getLogger("socialclock.main")


def parse_hhmm(value: str) -> tuple[int, int]:
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise argparse.ArgumentTypeError("time must be HH:MM")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise argparse.ArgumentTypeError("hour/minute out of range")
    return hour, minute


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(prog="socialclock", description="Social alarm clock")
    parser.add_argument(
        "-v", action=argparse.BooleanOptionalAction, help="Verbose mode", default=False
    )
    parser.add_argument("--config", help="Path to config.yaml", type=str, default=None)

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("on", help="Arm the next daily alarm")
    commands.add_parser("off", help="Disarm the alarm and stop ringing")
    commands.add_parser("status", help="Show the pending alarm")
    commands.add_parser("history", help="List finished wake-ups")
    commands.add_parser("run", help="Fire alarms when due and accept commands")
    commands.add_parser("logout", help="Record new alarm events anonymously")

    set_time = commands.add_parser("set-time", help="Change the wake-up time")
    set_time.add_argument("time", type=parse_hhmm, help="HH:MM")

    weekday = commands.add_parser("weekday", help="Toggle a weekday (0=Sunday .. 6=Saturday)")
    weekday.add_argument("day", type=int, choices=range(7))

    login = commands.add_parser("login", help="Record new alarm events under a social account")
    login.add_argument("user_id")
    login.add_argument("user_name")

    for name, help_text in (
        ("start", "Ring the alarm for an event"),
        ("snooze", "Snooze a ringing event"),
        ("getup", "Finish an event and arm tomorrow's alarm"),
        ("sns", "Publish the wake-up summary of an event"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("event_id")

    return parser.parse_args(argv)


def init_services(config: Config, metrics_logger: MetricsLogger) -> tuple:
    engine = setup_database(config.database_url)
    store = create_event_store(engine)
    alarm_event_service = AlarmEventService(store)
    settings = ClockSettings(config.settings_path, config.defaults)
    scheduler = FileAlarmScheduler(config.scheduler_state_path)

    orchestrator = Orchestrator(
        alarm_event_service=alarm_event_service,
        settings=settings,
        scheduler=scheduler,
        notifier=ConsoleNotifier(),
        ringtone_player=LoopingRingtonePlayer(),
        publisher=LoggingPublisher(),
        metrics_logger=metrics_logger,
    )
    return store, settings, scheduler, orchestrator


async def run_interactive(orchestrator, scheduler, config, request_id_context_manager):
    dispatcher = AlarmDispatcher(
        scheduler, orchestrator, request_id_context_manager, config.check_interval
    )
    cli_integration = CliIntegration(orchestrator, dispatcher, scheduler, request_id_context_manager)

    dispatcher_task = asyncio.create_task(dispatcher.start())
    try:
        await cli_integration.start()
    finally:
        dispatcher_task.cancel()
        await asyncio.gather(dispatcher_task, return_exceptions=True)
        orchestrator.ringtone_player.stop_ringtone()
        logger.info("Services shut down successfully")


def switch_identity(identity_provider: IdentityProvider, args) -> None:
    if args.command == "login":
        identity = identity_provider.login(args.user_id, args.user_name)
        print(f"@{identity.user_name.upper()}")
    else:
        identity_provider.logout()
        print("Logged out")


def run_command(args, config, settings, scheduler, orchestrator, request_id_context_manager) -> None:
    if args.command == "run":
        asyncio.run(run_interactive(orchestrator, scheduler, config, request_id_context_manager))
        return

    with request_id_context_manager.for_action(args.command):
        if args.command == "on":
            orchestrator.create_alarm()
            print("Alarm is set ON")
        elif args.command == "off":
            orchestrator.cancel_alarm()
            print("Alarm is set OFF")
        elif args.command == "status":
            print(describe_pending_alarm(scheduler))
        elif args.command == "history":
            print(format_history(orchestrator.get_finished_alarm_events()))
        elif args.command == "set-time":
            hour, minute = args.time
            if orchestrator.update_alarm_time(hour, minute) is not None:
                print(f"AlarmTime is updated to {hour:02d}:{minute:02d}")
        elif args.command == "weekday":
            enabled = settings.switch_weekday_enable(args.day)
            print(f"Weekday {args.day} is {'ON' if enabled else 'OFF'}")
        elif args.command in ("login", "logout"):
            switch_identity(settings, args)
        elif args.command == "start":
            orchestrator.start_alarm(args.event_id)
            # a one-shot command cannot keep ringing after it exits
            orchestrator.ringtone_player.stop_ringtone()
        elif args.command == "snooze":
            orchestrator.snooze_alarm(args.event_id)
        elif args.command == "getup":
            orchestrator.get_up(args.event_id)
        elif args.command == "sns":
            if orchestrator.send_sns(args.event_id) is None:
                print("Nothing to publish.")


def cli(argv=None) -> int:
    args = parse_arguments(argv)
    config = default_config(args.config)

    request_id_filter = RequestIdFilter()
    request_id_context_manager = RequestIdContextManager(request_id_filter)
    setup_logging(args.v, request_id_filter, config.logging_dir)
    metrics_logger = MetricsLogger(request_id_filter, logging_dir=config.logging_dir)

    store, settings, scheduler, orchestrator = init_services(config, metrics_logger)
    try:
        run_command(args, config, settings, scheduler, orchestrator, request_id_context_manager)
        return 0
    except (AlarmEventError, ValueError) as e:
        logger.exception(f"Command {args.command} failed: {e}")
        print(f"socialclock: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Application terminated by user")
        return 130
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(cli())
