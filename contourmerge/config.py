"""Configuration helpers for contour merge settings and logging."""
from __future__ import annotations

from configparser import ConfigParser, Error
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import sys
from typing import Optional

CONFIG_FILENAME = "contourmerge.ini"
CONFIG_ENV_VAR = "CONTOURMERGE_CONFIG"
LOG_LEVEL_ENV_VAR = "CONTOURMERGE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_MERGE_SECTION = "merge"
_LOGGING_SECTION = "logging"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeSettings:
    validate_before_apply: bool = True
    report_slings: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _config_dir(main_script_path: Optional[Path]) -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    if main_script_path is not None:
        return main_script_path.resolve().parent
    main_module = sys.modules.get("__main__")
    if main_module and getattr(main_module, "__file__", None):
        return Path(main_module.__file__).resolve().parent
    return Path.cwd()


def config_path(main_script_path: Optional[Path] = None) -> Path:
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return _config_dir(main_script_path) / CONFIG_FILENAME


def _read_bool(parser: ConfigParser, section: str, key: str, fallback: bool) -> bool:
    try:
        return parser.getboolean(section, key, fallback=fallback)
    except ValueError:
        logger.warning("Ignoring invalid boolean for [%s] %s", section, key)
        return fallback


def load_settings(path: Optional[Path] = None) -> MergeSettings:
    defaults = MergeSettings(log_level=os.getenv(LOG_LEVEL_ENV_VAR, "INFO").upper())
    ini_path = path or config_path()
    if not ini_path.exists():
        return defaults
    parser = ConfigParser()
    try:
        with ini_path.open("r", encoding="utf-8") as handle:
            parser.read_file(handle)
    except (OSError, Error):
        logger.warning("Could not read settings from %s, using defaults", ini_path)
        return defaults

    level = parser.get(_LOGGING_SECTION, "level", fallback=defaults.log_level).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        logger.warning("Ignoring unknown log level %r in %s", level, ini_path)
        level = defaults.log_level
    log_file = parser.get(_LOGGING_SECTION, "file", fallback="").strip() or None
    return MergeSettings(
        validate_before_apply=_read_bool(
            parser, _MERGE_SECTION, "validate_before_apply", defaults.validate_before_apply
        ),
        report_slings=_read_bool(parser, _MERGE_SECTION, "report_slings", defaults.report_slings),
        log_level=level,
        log_file=log_file,
    )


def save_settings(path: Path, settings: MergeSettings) -> None:
    parser = ConfigParser()
    parser[_MERGE_SECTION] = {
        "validate_before_apply": str(settings.validate_before_apply).lower(),
        "report_slings": str(settings.report_slings).lower(),
    }
    parser[_LOGGING_SECTION] = {"level": settings.log_level}
    if settings.log_file:
        parser[_LOGGING_SECTION]["file"] = settings.log_file
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        parser.write(handle)


def configure_logging(log_level_name: str, log_path: str | None = None) -> int:
    """Configure root logging for a host process and return the resolved level."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_path:
        handlers.insert(0, logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers)
    return log_level
