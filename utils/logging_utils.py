"""
Central logging configuration for the showtimes service.

Entrypoints (the API lifespan, the CLI, the snapshot script) call
``setup_logging`` once; modules grab a tagged logger:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="kcc")
    logger.info("Selecting date %s", key)

Every record carries a ``tag`` and a ``job_name`` so the API and the batch
script can share a log sink and still be told apart.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Mapping, Optional


# Early logs before setup_logging() still get timestamps and levels
BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(level=logging.INFO, format=BOOTSTRAP_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

_CONFIGURED: bool = False


class EnsureTagFilter(logging.Filter):
    """Give records from plain loggers (uvicorn, playwright) a `tag`."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        return True


class JobNameFilter(logging.Filter):
    """Inject a fixed `job_name` into every record."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """Build a dictConfig mapping with a single tagged stderr handler."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
        },
        "formatters": {
            "standard": {"format": log_format, "datefmt": date_format},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_tag", "job_name"],
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """
    Configure process-wide logging.

    Repeated calls are no-ops unless ``override_existing`` is set, so the API
    can call this from its lifespan even when uvicorn was started by main.py.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(build_logging_config(level=level, job_name=job_name))
    _CONFIGURED = True


def get_tagged_logger(name: str, *, tag: Optional[str] = None) -> logging.LoggerAdapter:
    """Return a LoggerAdapter that always carries a `tag` field."""
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(logging.getLogger(name), {"tag": tag})
