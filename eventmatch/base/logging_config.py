import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from eventmatch.base.config import settings

# === Level and format come from AppConfig ===
LOG_LEVEL = settings.LOG_LEVEL_NUMERIC
USE_JSON_LOGGING = settings.ENABLE_JSON_LOGS

# === File output is an ops concern, configurable via ENV ===
LOG_DIR = Path(os.getenv("LOG_DIR", "./logs"))
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
SERVICE_NAME = os.getenv("SERVICE_NAME", "eventmatch")


def get_formatter(use_json: bool, service: str) -> logging.Formatter:
    if use_json:
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level"},
            static_fields={"service": service, "environment": ENVIRONMENT},
        )
    return logging.Formatter(
        fmt=f"%(asctime)s | %(levelname)s | %(name)s | [svc={service}] | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: int = LOG_LEVEL,
    use_json: bool = USE_JSON_LOGGING,
    service: str = SERVICE_NAME
) -> logging.Logger:
    """
    Sets up a logger with rotating file + stream handler
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # Avoid double logging in root

    # Clear old handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = get_formatter(use_json, service)

    # === Stream Handler (STDOUT) ===
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # === File Handler (Rotating) ===
    if log_file and LOG_TO_FILE:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_path = LOG_DIR / log_file
        file_handler = RotatingFileHandler(str(file_path), maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# === Preconfigured loggers ===
app_logger = setup_logger("app", log_file="app.log")
scheduler_logger = setup_logger("auto_scheduler", log_file="scheduler.log")
