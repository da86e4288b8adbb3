from __future__ import annotations

import logging
import os


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "MEMBERSHIP_ANALYTICS_LOG_LEVEL"


def resolve_log_level(level: str | None = None) -> str:
    return (level or os.getenv(LOG_LEVEL_ENV) or "INFO").strip().upper()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=resolve_log_level(level), format=LOG_FORMAT)
