"""
Structured Logging for ChartWallet

JSON-formatted logging with source location, used by the CLI and
long-running feed services.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs log records as JSON objects with standardized fields.
    """

    def __init__(
        self,
        *,
        include_traceback: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None,
        indent: Optional[int] = None,
    ):
        super().__init__()
        self.include_traceback = include_traceback
        self.extra_fields = extra_fields or {}
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
            }
            if self.include_traceback and exc_tb:
                log_data["exception"]["traceback"] = [
                    {"file": f.filename, "line": f.lineno, "function": f.name}
                    for f in traceback.extract_tb(exc_tb)
                ]

        # Fields passed via logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                log_data[key] = self._serialize_value(value)

        log_data.update(self.extra_fields)
        return json.dumps(log_data, default=str, indent=self.indent)

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, (list, tuple, set)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {k: self._serialize_value(v) for k, v in value.items()}
        if hasattr(value, "to_dict"):
            return value.to_dict()
        return str(value)


def configure_logging(
    *,
    level: Union[str, int] = logging.INFO,
    json_format: bool = False,
    log_file: Optional[str] = None,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Log level
        json_format: Use JSON formatting
        log_file: Optional log file path
        extra_fields: Extra fields to include in all JSON logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    def _formatter() -> logging.Formatter:
        if json_format:
            return JSONFormatter(extra_fields=extra_fields)
        return logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_formatter())
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_formatter())
        root_logger.addHandler(file_handler)

    # websockets logs every frame at DEBUG
    logging.getLogger("websockets").setLevel(max(logging.getLogger().level, logging.INFO))
