from __future__ import annotations
import yaml
from pathlib import Path
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite:///data/socialclock.db"
DEFAULT_LOGGING_DIR = "logs"
DEFAULT_SCHEDULER_STATE_PATH = "data/scheduled_alarm.yaml"
DEFAULT_SETTINGS_PATH = "data/clock_settings.yaml"
DEFAULT_CHECK_INTERVAL = 5.0


class Config:
    """Application configuration loaded from ``config.yaml``.

    Every key is optional; a missing file yields the defaults.
    """

    def __init__(self, path: Optional[str] = None):
        # Load config.yaml from project root by default
        if path is not None:
            config_path = Path(path)
        else:
            config_path = Path(__file__).parent.parent / "config.yaml"
        if config_path.exists():
            data = yaml.safe_load(config_path.read_text()) or {}
        else:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path} must contain a mapping at the top level")

        database = data.get("database") or {}
        self.database_url: str = database.get("url", DEFAULT_DATABASE_URL)

        logging_section = data.get("logging") or {}
        self.logging_dir: str = logging_section.get("dir", DEFAULT_LOGGING_DIR)

        scheduler = data.get("scheduler") or {}
        self.scheduler_state_path: Path = Path(
            scheduler.get("state_path", DEFAULT_SCHEDULER_STATE_PATH)
        )
        self.check_interval: float = _positive_float(
            "scheduler.check_interval",
            scheduler.get("check_interval", DEFAULT_CHECK_INTERVAL),
        )

        settings = data.get("settings") or {}
        self.settings_path: Path = Path(settings.get("path", DEFAULT_SETTINGS_PATH))

        self.defaults: dict = data.get("defaults") or {}


def _positive_float(key: str, value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Config key {key} must be a number") from exc
    if result <= 0:
        raise ValueError(f"Config key {key} must be positive")
    return result


def default_config(path: Optional[str] = None) -> Config:
    return Config(path)
