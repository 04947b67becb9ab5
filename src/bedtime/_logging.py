"""Structured JSON log formatter and logging configuration.

The bedtime job usually runs unattended from cron or a systemd timer,
so its log stream is the first place anyone looks when a light stayed
bright.  :class:`JsonFormatter` emits one JSON object per record on a
single line (NDJSON) that journald, Loki and friends ingest as-is.

Per-device records carry ``device`` and ``address`` fields when the
caller passes them via ``extra=``::

    logger.info("SUCCESS: %s", message,
                extra={"device": "Bedroom Lamp", "address": "10.0.0.7:38899"})

The ``text`` format is meant for running the job by hand.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from bedtime._settings import LoggingSettings

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONTEXT_FIELDS: tuple[str, ...] = ("device", "address")
"""``LogRecord`` attributes copied into JSON output when present."""


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects (NDJSON).

    Each record produces a JSON object with these fields:

    - ``timestamp`` — ISO 8601, always UTC
    - ``level`` — Python log level name
    - ``logger`` — dotted logger name
    - ``message`` — the formatted log message
    - ``service`` — application name for log correlation
    - ``version`` — application version (omitted when empty)
    - ``device`` / ``address`` — per-device context (only when given)
    - ``exception`` — formatted traceback (only when an exception
      is logged)

    Args:
        service: Application name included in every log line.
        version: Application version string.  Omitted from
            output when empty.
    """

    def __init__(
        self,
        *,
        service: str = "",
        version: str = "",
    ) -> None:
        super().__init__()
        self._service = service
        self._version = version

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self._service,
        }

        if self._version:
            entry["version"] = self._version

        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def configure_logging(
    settings: LoggingSettings,
    *,
    service: str,
    version: str = "",
) -> None:
    """Configure the root logger from settings.

    Clears any existing handlers on the root logger, then installs a
    ``stderr`` stream handler and, when ``settings.file`` is set, a
    :class:`~logging.handlers.RotatingFileHandler` that rotates at
    ``settings.max_file_size_mb`` and keeps ``settings.backup_count``
    generations.

    Args:
        settings: Logging configuration (level, format, file).
        service: Application name passed to :class:`JsonFormatter`.
        version: Application version passed to :class:`JsonFormatter`.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    if settings.format == "json":
        formatter: logging.Formatter = JsonFormatter(service=service, version=version)
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.file is not None:
        file_handler = RotatingFileHandler(
            settings.file,
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(settings.level)

    # asyncpg/sqlalchemy are chatty at DEBUG; keep them at WARNING unless
    # the whole job runs at DEBUG.
    if settings.level != "DEBUG":
        logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
