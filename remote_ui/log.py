"""Log level names accepted on the command line."""

from __future__ import annotations

import logging
from typing import Dict

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS: Dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "err": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


def parse_log_level(name: str) -> int:
    key = (name or "").strip().lower()
    if key not in LOG_LEVELS:
        choices = ", ".join(repr(level) for level in LOG_LEVELS)
        raise ValueError(f"Log level must be one of: {choices}")
    return LOG_LEVELS[key]


def configure_logging(level_name: str) -> None:
    logging.basicConfig(level=parse_log_level(level_name), format="%(asctime)s %(levelname)s %(message)s")
