"""Configuration for the team budget tracker.

Paths and defaults live here, each overridable through an environment
variable so deployments and tests can point the app elsewhere.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path
from typing import Optional

from teambudget.codec import is_valid_month

_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = Path(os.getenv("TEAMBUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
STORAGE_FILE = Path(os.getenv("TEAMBUDGET_STORAGE_FILE", DATA_DIR / "storage.json"))

LOG_LEVEL = os.getenv("TEAMBUDGET_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def default_month(today: Optional[date] = None) -> str:
    """Month the page opens on: TEAMBUDGET_DEFAULT_MONTH or the current month."""
    configured = os.getenv("TEAMBUDGET_DEFAULT_MONTH", "").strip()
    if is_valid_month(configured):
        return configured
    return (today or date.today()).strftime("%Y-%m")


def ensure_data_directories() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    STORAGE_FILE.parent.mkdir(parents=True, exist_ok=True)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger once."""
    logger = logging.getLogger("teambudget")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level or LOG_LEVEL)
    return logger
