"""
Logging Configuration Module
Console and rotating-file logging for the sync service, scripts and scheduler jobs.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from jira_mirror.config_manager import ConfigManager

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that log every request or statement at INFO/DEBUG
NOISY_LOGGERS = ('urllib3', 'requests', 'sqlalchemy.engine', 'apscheduler')


def _resolve_level(value) -> int:
    if isinstance(value, int):
        return value
    return getattr(logging, str(value or 'INFO').upper(), logging.INFO)


def setup_logging(level: Optional[str] = None, log_config: Dict = None, to_file: bool = True) -> None:
    """
    Install the application log handlers on the root logger.

    Call once per process. Scheduler jobs and request handlers share these
    handlers, so the rotating file collects every sync run.

    Args:
        level: Overrides the configured level (e.g. 'DEBUG' from a --verbose flag)
        log_config: Logging settings. Read from configuration when omitted.
        to_file: Whether to add the rotating file handler
    """
    if log_config is None:
        log_config = ConfigManager().get_logging_config()

    log_level = _resolve_level(level or log_config.get('level'))
    formatter = logging.Formatter(log_config.get('format') or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = log_config.get('file')
    if to_file and log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=log_config.get('max_bytes', 10485760),
            backupCount=log_config.get('backup_count', 5),
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # SQL echo only when explicitly debugging
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING if log_level > logging.DEBUG else logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (pass __name__)."""
    return logging.getLogger(name)
