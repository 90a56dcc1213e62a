"""Logging setup for the API process and the init-db command."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict

from studymentor.core.context import get_request_id, get_user_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(user_id)s | %(message)s"

# Client libraries that log every HTTP round trip to the LLM at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class RequestContextFilter(logging.Filter):
    """Stamp request_id and user_id ("-" outside a request) onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        record.user_id = get_user_id() or "-"
        return True


def logging_config(log_level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "filters": {"request_context": {"()": RequestContextFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": log_level,
                "filters": ["request_context"],
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
        "root": {"handlers": ["console"], "level": log_level},
    }


def configure_logging(*, log_level: str = "INFO", force: bool = False) -> None:
    """Apply ``logging_config`` once per process unless ``force`` is set."""
    if getattr(configure_logging, "_configured", False) and not force:
        return

    dictConfig(logging_config(log_level.upper()))
    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
