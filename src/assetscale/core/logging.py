"""Structured logging for the downscaler.

Outside local development every record is written to stdout as one JSON
object, which Cloud Run forwards to Cloud Logging. The object being
processed is attached to each record through ``gcs_uri_context``.
"""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

gcs_uri_context: contextvars.ContextVar[str | None] = contextvars.ContextVar("gcs_uri", default=None)

# Attributes of a bare LogRecord; anything else was passed through extra={...}
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_LEVELS = frozenset([logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL])

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class CloudLoggingFormatter(logging.Formatter):
    """Render records as single-line JSON entries for Cloud Logging.

    ``severity`` and ``message`` are the keys Cloud Logging reads. Error
    records carry ``serviceContext`` so Error Reporting groups them by
    service and version.
    """

    def __init__(self, service: str = "assetscale-downscaler", version: Optional[str] = None):
        super().__init__()
        self.service_context = {"service": service}
        if version:
            self.service_context["version"] = version

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc_timestamp(record.created),
            "severity": record.levelname if record.levelno in _LEVELS else "DEFAULT",
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        gcs_uri = gcs_uri_context.get()
        if gcs_uri:
            entry["gcs_uri"] = gcs_uri

        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RESERVED_ATTRS
        )

        if record.levelno >= logging.ERROR:
            entry["serviceContext"] = self.service_context
        if record.exc_info:
            entry.update(self._exception_fields(record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _exception_fields(exc_info) -> Dict[str, str]:
        exc_type, exc_value, _ = exc_info
        return {
            "exception": "".join(traceback.format_exception(*exc_info)),
            "exception_type": exc_type.__name__ if exc_type else "Unknown",
            "exception_message": str(exc_value) if exc_value else "",
        }


def resolve_level(name: str, default: int = logging.INFO) -> int:
    """Numeric level for a level name such as ``"warning"``; unknown names give default."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def setup_logging() -> None:
    """Install a stdout handler on the root and uvicorn loggers.

    ENV=local logs plain text at DEBUG; any other environment logs
    Cloud Logging JSON at LOG_LEVEL.
    """
    from assetscale.core.config import settings

    if settings.ENV == "local":
        level = logging.DEBUG
        formatter: logging.Formatter = logging.Formatter(_TEXT_FORMAT)
    else:
        level = resolve_level(settings.LOG_LEVEL)
        formatter = CloudLoggingFormatter(settings.SERVICE_NAME, settings.SERVICE_VERSION)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # uvicorn installs its own handlers; route them through ours instead
    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.setLevel(level)
        server_logger.handlers.clear()
        server_logger.addHandler(handler)
        server_logger.propagate = False
