# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Description: logging_utils.py
# -----------------------------------------------------------------------------
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

import colorlog

BASE_LOGGER_NAME = "crm_semantic"

# Sync jobs run on "crm-sync_N" pool threads; the thread name says which worker logged
_CONSOLE_FORMAT = (
    "%(log_color)s%(asctime)s [%(levelname)s] %(threadName)s "
    "%(name)s:%(lineno)d:%(reset)s %(message_log_color)s%(message)s"
)
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s:%(lineno)d: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"Env var {name} must be an int, got {raw!r}") from e


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            fmt=_CONSOLE_FORMAT,
            datefmt=_DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
            secondary_log_colors={
                "message": {
                    "INFO": "white",
                    "WARNING": "yellow",
                    "ERROR": "light_red",
                    "CRITICAL": "red",
                }
            },
            style="%",
        )
    )
    return handler


def _file_handler() -> logging.Handler:
    log_path = Path(os.getenv("CRM_LOG_FILE", "./logs/crm-semantic.log"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=_env_int("CRM_LOG_MAX_BYTES", 5 * 1024 * 1024),
        backupCount=_env_int("CRM_LOG_BACKUP_COUNT", 5),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _create_logger(full_name: str) -> logging.Logger:
    """
    Configure a named logger once: colored console output, plus a rotating
    file when CRM_LOG_TO_FILE is on. Repeated calls return the same logger.
    """
    logger = logging.getLogger(full_name)
    if logger.handlers:
        return logger

    logger.addHandler(_console_handler())
    if _env_flag("CRM_LOG_TO_FILE", "0"):
        logger.addHandler(_file_handler())

    level_name = os.getenv("CRM_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Generic logger that does not include a class name.
    """
    full_name = f"{BASE_LOGGER_NAME}.{name}" if name else BASE_LOGGER_NAME
    return _create_logger(full_name)


def get_class_logger(cls: type) -> logging.Logger:
    """
    Returns a logger whose name includes module + class, e.g.:

      crm_semantic.services.CRMSyncService.CRMSyncService
      crm_semantic.embedding.CRMEmbedder.CRMEmbedder
    """
    module = getattr(cls, "__module__", "unknown_module")
    classname = getattr(cls, "__name__", "UnknownClass")
    return _create_logger(f"{BASE_LOGGER_NAME}.{module}.{classname}")
