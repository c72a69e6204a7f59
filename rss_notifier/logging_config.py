"""Structured JSON logging for RSS Translate Notifier.

Every record is rendered as one JSON object per line. Loggers obtained
through ``create_execution_logger`` tag each record with the execution ID,
the emitting component and any keyword context passed at the call site.
"""

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import IO, Any

LOGGER_NAMESPACE = "rss_notifier"

COMPONENTS = (
    "main",
    "config",
    "state",
    "feed_poller",
    "translator",
    "summarizer",
    "pipeline",
    "slack_notifier",
)


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for attr in ("execution_id", "component"):
            value = getattr(record, attr, None)
            if value is not None:
                entry[attr] = value

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ExecutionLogger:
    """Component logger that carries an execution ID and keyword context."""

    def __init__(self, execution_id: str, component: str = "main"):
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
        self._started: float | None = None

    def log(self, level: int, message: str, **context) -> None:
        self.logger.log(
            level,
            message,
            extra={
                "execution_id": self.execution_id,
                "component": self.component,
                "context": context,
            },
        )

    def debug(self, message: str, **context) -> None:
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context) -> None:
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context) -> None:
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, **context) -> None:
        self.log(logging.ERROR, message, **context)

    def log_execution_start(self, **context) -> None:
        """Mark the start of a run; the duration is reported on completion."""
        self._started = time.monotonic()
        self.info(
            f"Starting {self.component} execution",
            execution_start=datetime.now(UTC).isoformat(),
            **context,
        )

    def log_execution_end(self, success: bool = True, **context) -> None:
        duration = None
        if self._started is not None:
            duration = round(time.monotonic() - self._started, 3)
        self.info(
            f"Completed {self.component} execution",
            execution_end=datetime.now(UTC).isoformat(),
            execution_duration_seconds=duration,
            execution_success=success,
            **context,
        )

    def log_item_processing(
        self, item_title: str, action: str, success: bool = True, **context
    ) -> None:
        self.log(
            logging.INFO if success else logging.ERROR,
            f"Item {action}: {item_title}",
            item_title=item_title,
            action=action,
            success=success,
            **context,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Execution metrics", metrics=metrics)


def setup_structured_logging(
    log_level: str = "INFO", stream: IO[str] | None = None
) -> None:
    """Route all logging through a single JSON handler.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR); unknown names
            fall back to INFO
        stream: Output stream, stdout by default
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in (LOGGER_NAMESPACE, *(f"{LOGGER_NAMESPACE}.{c}" for c in COMPONENTS)):
        logging.getLogger(name).setLevel(level)


def create_execution_logger(
    component: str, execution_id: str | None = None
) -> ExecutionLogger:
    """Return an ExecutionLogger, generating an execution ID when none is given."""
    if not execution_id:
        execution_id = f"exec_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    return ExecutionLogger(execution_id, component)
