from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    kubectl: str = "kubectl"
    context: Optional[str] = None
    request_timeout: str = "30s"
    command_timeout: int = 45
    log_level: str = "WARNING"
    log_file: Optional[Path] = None


def config_base_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / "kubenav"


def default_config_path() -> Path:
    return config_base_dir() / "config.json"


def default_log_path() -> Path:
    return config_base_dir() / "kubenav.log"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Read ``config.json``; a missing or unreadable file yields defaults."""
    config_path = path or default_config_path()
    try:
        payload = json.loads(config_path.read_text())
    except FileNotFoundError:
        return Settings()
    except Exception:
        logging.getLogger(__name__).warning(
            "Ignoring unreadable config file %s", config_path
        )
        return Settings()
    if not isinstance(payload, dict):
        return Settings()

    known = {field.name for field in fields(Settings)}
    values = {key: value for key, value in payload.items() if key in known}
    if values.get("log_file"):
        values["log_file"] = Path(values["log_file"]).expanduser()
    if "command_timeout" in values:
        try:
            values["command_timeout"] = max(1, int(values["command_timeout"]))
        except (TypeError, ValueError):
            values.pop("command_timeout")
    return Settings(**values)


def configure_logging(settings: Settings) -> Optional[Path]:
    """Send log records to a file; the terminal belongs to the UI."""
    log_path = settings.log_file or default_log_path()
    level = logging.getLevelName(str(settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.WARNING
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
        log_path = None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("kubenav")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return log_path
