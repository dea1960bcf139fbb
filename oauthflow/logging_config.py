"""
Logging configuration.

Logs go to stdout as one JSON object per line. The level is read from
OAUTHFLOW_LOG_LEVEL (default INFO).
"""

import json
import logging
import os
from datetime import UTC, datetime


LOG_LEVEL_ENV = "OAUTHFLOW_LOG_LEVEL"

# Attributes every LogRecord carries; anything else was passed via extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON log formatter.

    Fields passed with ``extra=`` are merged into the log object, as are
    the members of an ``extra_fields`` dict.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A JSON string representing the log record.
        """
        log_object = {
            "timestamp": datetime.now(UTC).isoformat(),
            "severity": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key != "extra_fields":
                log_object[key] = value

        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_object.update(record.extra_fields)

        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, default=str)


def get_log_level() -> int:
    """Resolve the configured log level, falling back to INFO."""
    name = os.getenv(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_global_logging() -> None:
    """Install the JSON formatter on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    # Replace existing handlers to avoid duplicate logs
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(get_log_level())
