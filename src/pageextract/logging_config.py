"""Logging setup for pageextract.

Pipeline modules log through ordinary module loggers and attach structured
context via ``extra``::

    logger.info(
        "starting extraction",
        extra={"category": "extraction", "auxiliary": {"instruction": instruction}},
    )

``configure_logging`` renders those fields.  With ``json_format=True`` each
record becomes one JSON object compatible with Cloud Logging severity
parsing::

    {"severity": "INFO", "message": "...", "logger": "...", "category": "...", "auxiliary": {...}}

Otherwise a human-readable plain-text format is used.
"""

from __future__ import annotations

import json
import logging
import sys

_LEVEL_MAP = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}


class JsonFormatter(logging.Formatter):
    """JSON formatter emitting one structured entry per record."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON object with severity and pipeline context."""
        entry = {
            "severity": _LEVEL_MAP.get(record.levelname, "DEFAULT"),
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        category = getattr(record, "category", None)
        if category:
            entry["category"] = category
        auxiliary = getattr(record, "auxiliary", None)
        if auxiliary:
            entry["auxiliary"] = auxiliary
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class PlainFormatter(logging.Formatter):
    """Plain-text formatter that prefixes the pipeline category when present."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        category = getattr(record, "category", None)
        if category:
            text = f"{text} [{category}]"
        return text


def configure_logging(level: str | None = None, *, json_format: bool | None = None) -> None:
    """Install a root handler for pageextract logs.

    Args:
        level: Log level name.  Defaults to ``settings.log_level``, or
            ``DEBUG`` when ``settings.debug`` is set.
        json_format: Emit JSON lines instead of plain text.  Defaults to
            ``settings.log_json``.
    """
    if level is None or json_format is None:
        from pageextract.settings import get_settings

        settings = get_settings()
        level = level or ("DEBUG" if settings.debug else settings.log_level)
        json_format = settings.log_json if json_format is None else json_format

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else PlainFormatter())
    logging.root.handlers.clear()
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
