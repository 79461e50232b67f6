# Logging_Config.py
# Description: Configuration for logging
#
# Imports
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional
#
# 3rd-Party Imports
from loguru import logger as loguru_logger
#
# Local Imports
from quizdeck.config import get_cli_setting, get_log_file_path
#
########################################################################################################################
#
# Functions:

NOISY_LOGGERS = ("google", "grpc", "urllib3", "httpx", "asyncio")

_LEVEL_MAPPING = {
    "TRACE": logging.DEBUG, "DEBUG": logging.DEBUG, "INFO": logging.INFO,
    "SUCCESS": logging.INFO, "WARNING": logging.WARNING, "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def sink_to_standard_logging(message) -> None:
    """Loguru sink that forwards every record to the standard logging logger of the same name."""
    record = message.record
    std_level = _LEVEL_MAPPING.get(record["level"].name, logging.INFO)
    std_logger = logging.getLogger(record["name"])
    if record["exception"]:
        std_logger.log(std_level, record["message"], exc_info=record["exception"])
    else:
        std_logger.log(std_level, record["message"])


def _level(name: Any, default: int = logging.INFO) -> int:
    return getattr(logging, str(name).upper(), default)


def configure_logging(app_config: Optional[Dict[str, Any]] = None, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Routes loguru into standard logging and sets up the console and rotating file handlers.

    Safe to call more than once; existing root handlers are replaced.
    """
    app_config = app_config or {}
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    loguru_logger.remove()
    loguru_logger.add(
        sink_to_standard_logging,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        level="TRACE",
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    log_level = _level(app_config.get("general", {}).get("log_level", "INFO"))
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)-8s] %(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(console_handler)

    try:
        log_file_path = Path(log_file) if log_file is not None else get_log_file_path()
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        logging_section = app_config.get("logging", {})
        max_bytes = int(logging_section.get("max_bytes", get_cli_setting("logging", "max_bytes", 10485760)))
        backup_count = int(logging_section.get("backup_count", get_cli_setting("logging", "backup_count", 5)))
        file_level = _level(logging_section.get("file_log_level", get_cli_setting("logging", "file_log_level", "INFO")))

        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s:%(lineno)d - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)
        logging.info(f"File logging enabled: {log_file_path} (level {logging.getLevelName(file_level)})")
    except (OSError, ValueError) as e:
        logging.error(f"Could not set up file logging: {e}")

    loguru_logger.debug("Logging configured")
    return root_logger

#
# End of Logging_Config.py
########################################################################################################################
