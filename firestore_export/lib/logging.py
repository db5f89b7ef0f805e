"""Logging setup for import runs.

Text output for terminals, or one JSON object per line shaped for Cloud
Logging's structured-log ingestion (``severity``, ``time``, source location).
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

__all__ = [
    "setup_logging",
    "JSONFormatter",
    "PipelineLogger",
    "get_pipeline_logger",
    "QUIET_LOGGERS",
]

SOURCE_LOCATION_KEY = "logging.googleapis.com/sourceLocation"

# Client libraries that log every HTTP round trip at DEBUG
QUIET_LOGGERS = ("urllib3", "google.auth", "google.api_core", "botocore", "boto3")

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Example output:
        {"time": "2025-01-15T10:30:00.123Z", "severity": "INFO",
         "logger": "firestore_export.lib.importer",
         "message": "Page 3: rows 300, docs read 900, rows imported 900",
         "context": {"source": "users", "table": "users_raw_changelog"}}

    Attributes passed through ``extra=`` (and the ``PipelineLogger`` context)
    land under ``context`` unless listed in ``exclude_fields``.
    """

    def __init__(self, exclude_fields: Optional[Iterable[str]] = None):
        super().__init__()
        self.exclude_fields = frozenset(exclude_fields or ())

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": _utc_now(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.pathname:
            entry[SOURCE_LOCATION_KEY] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in self.exclude_fields
        }
        if context:
            entry["context"] = context

        return json.dumps(entry, default=str)


class PipelineLogger:
    """Logger that stamps every record with the current import's context.

    Example:
        logger = get_pipeline_logger(__name__)
        logger.set_context(source="users", dataset="firestore_export")
        logger.info("Resuming from %s", token)
        logger.metric("rows_imported", 1200, unit="rows")
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def set_context(self, **fields: Any) -> None:
        self._context.update(fields)

    def clear_context(self) -> None:
        self._context.clear()

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        extra = {**self._context, **kwargs.pop("extra", {})}
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def metric(self, name: str, value: Any, unit: Optional[str] = None, **tags: Any) -> None:
        """Emit ``METRIC name=value`` with the value as structured fields.

        Args:
            name: Metric name, e.g. "rows_imported"
            value: Metric value
            unit: Optional unit, e.g. "rows" or "seconds"
            **tags: Extra fields for this metric only
        """
        extra: Dict[str, Any] = {"metric_name": name, "metric_value": value, **tags}
        if unit:
            extra["metric_unit"] = unit
        self.log(logging.INFO, "METRIC %s=%s", name, value, extra=extra)


def get_pipeline_logger(name: str) -> PipelineLogger:
    return PipelineLogger(name)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger for a CLI run.

    Args:
        verbose: DEBUG instead of INFO
        json_format: Emit structured JSON lines instead of text
        log_file: Also write to this file
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
