"""Runtime settings: defaults, then ``config.json``, then environment variables."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

ENV_HOME = "TIMEHOGGER_HOME"
ENV_DATA_FILE = "TIMEHOGGER_DATA_FILE"
ENV_LOG_LEVEL = "TIMEHOGGER_LOG_LEVEL"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def default_home() -> Path:
    return Path.home() / ".timehogger"


class Settings(BaseModel):
    """Where data and logs live, and how chatty logging is."""

    home: Path
    data_file: Path
    log_file: Path
    log_level: LogLevel = "INFO"
    notification_limit: int = 50

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @classmethod
    def load(cls, data_file: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> "Settings":
        """Resolve settings; an explicit ``data_file`` wins over everything."""
        env = dict(os.environ if env is None else env)
        home = Path(env.get(ENV_HOME) or default_home()).expanduser()

        values: Dict[str, Any] = {
            "home": home,
            "data_file": home / "data" / "timehogger-data.json",
            "log_file": home / "timehogger-debug.log",
        }
        values.update(cls._read_config_file(home / "config.json"))

        if env.get(ENV_DATA_FILE):
            values["data_file"] = env[ENV_DATA_FILE]
        if env.get(ENV_LOG_LEVEL):
            values["log_level"] = env[ENV_LOG_LEVEL]
        if data_file is not None:
            values["data_file"] = data_file

        try:
            settings = cls.model_validate(values)
        except ValidationError as e:
            if not any(error["loc"][:1] == ("log_level",) for error in e.errors()):
                raise
            logger.warning("Ignoring unknown log level %r; using INFO", values.pop("log_level"))
            settings = cls.model_validate(values)
        settings.data_file = settings.data_file.expanduser()
        settings.log_file = settings.log_file.expanduser()
        return settings

    @staticmethod
    def _read_config_file(config_file: Path) -> Dict[str, Any]:
        if not config_file.exists():
            return {}
        try:
            config = json.loads(config_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", config_file, e)
            return {}
        if not isinstance(config, dict):
            logger.warning("Ignoring config file %s: expected a JSON object", config_file)
            return {}
        known = {"data_file", "log_file", "log_level", "notification_limit"}
        return {k: v for k, v in config.items() if k in known}
