"""Logging configuration.

Plain text by default; ``LOG_FORMAT=json`` switches the console handler to
python-json-logger so records can be shipped as structured lines.
"""

from __future__ import annotations

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter


class AttendanceJsonFormatter(JsonFormatter):
    """JSON formatter that adds timestamp, level and logger name."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for key in ("mode", "person_id", "phase", "archive_id"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)


def build_logging_config(*, level: str = "INFO", fmt: str = "text") -> dict:
    formatter = "json" if fmt == "json" else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "json": {
                "()": AttendanceJsonFormatter,
                "format": "%(timestamp)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": level,
            },
        },
        "loggers": {
            "scan_attendance": {"level": level},
            "src.scan_attendance.scan_attendance": {"level": level},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def setup_logging(*, level: str = "INFO", fmt: str = "text") -> None:
    logging.config.dictConfig(build_logging_config(level=level.upper(), fmt=fmt.lower()))
