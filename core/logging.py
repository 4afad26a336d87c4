"""
Logging configuration
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from core.config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_file(log_dir: str) -> Path:
    """Daily log file, e.g. logs/universe-bulk-2025-07-31.log"""
    return Path(log_dir) / f"universe-bulk-{date.today().isoformat()}.log"


def setup_logging(settings: Optional[Settings] = None):
    """Configure application logging"""
    settings = settings or default_settings

    # Get log level from settings
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    log_file = get_log_file(settings.LOG_DIR)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Configure root logger; the file handler only ever appends
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, mode="a", encoding="utf-8"),
        ],
        force=True,
    )

    # Request-level chatter from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level (file: {log_file})")
