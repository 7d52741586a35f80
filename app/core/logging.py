import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler

from app.core.config import settings

# Per-request values stamped on every record emitted while the request runs
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
client_ip_var: ContextVar[str] = ContextVar("client_ip", default="unknown")

# Keys whose string values are always masked
SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "authorization",
    "credential",
    "signature",
)

EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+)")
BEARER_PATTERN = re.compile(
    r"(Bearer\s+[A-Za-z0-9-_=]+\.[A-Za-z0-9-_=]+\.[A-Za-z0-9-_.+/=]+)"
)
MOBILE_PATTERN = re.compile(r"(?<!\d)(\+?\d{2}[\s-]?)?\d{5}[\s-]?\d{5}(?!\d)")

# LogRecord internals that never go into the JSON document
RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "request_id", "client_ip", "session", "headers", "body"}


class UTCFormatter(logging.Formatter):
    """Formatter that forces UTC timestamps"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        return dt.strftime(datefmt or "%Y-%m-%d %H:%M:%S")


class JSONFormatter(logging.Formatter):
    """One JSON document per record; `extra` fields are sanitized and inlined."""

    def _serialize(self, value):
        if value is None or isinstance(value, str | int | float | bool):
            return value
        if isinstance(value, list | tuple | set | frozenset):
            return [self._serialize(item) for item in value]
        if isinstance(value, dict):
            return {k: self._serialize(v) for k, v in sanitize_log_data(value).items()}

        text = str(value)
        if BEARER_PATTERN.search(text):
            return "[REDACTED]"
        if len(text) > 1000:
            return text[:1000] + "... [TRUNCATED]"
        return text

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "client_ip": getattr(record, "client_ip", "unknown"),
            "line": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in RECORD_ATTRS and not key.startswith("_")
        }
        for key, value in sanitize_log_data(extra).items():
            entry[key] = self._serialize(value)

        return json.dumps(entry, ensure_ascii=False, default=str)


class RequestContextFilter(logging.Filter):
    """Copy the current request id and client address onto the record."""

    def filter(self, record):
        record.request_id = request_id_var.get()
        record.client_ip = client_ip_var.get()
        return True


def setup_logging():
    """Daily-rotated file log (JSON in production) plus console output in development."""
    os.makedirs(settings.LOG_PATH, exist_ok=True)

    current_date = datetime.now(UTC).strftime("%Y-%m-%d")
    log_file = settings.LOG_PATH / f"app-{current_date}.log"
    log_level = getattr(logging, settings.LOG_LEVEL.upper())

    root = logging.getLogger()
    root.setLevel(log_level)

    text_formatter = UTCFormatter(
        "%(asctime)s UTC - [%(request_id)s %(client_ip)s] - %(name)s - "
        "%(levelname)s - %(message)s"
    )
    file_formatter = (
        JSONFormatter() if settings.ENVIRONMENT == "production" else text_formatter
    )

    file_handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    file_handler.setFormatter(file_formatter)
    file_handler.addFilter(RequestContextFilter())
    root.addHandler(file_handler)

    if settings.ENVIRONMENT == "development":
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(text_formatter)
        console_handler.addFilter(RequestContextFilter())
        root.addHandler(console_handler)

    for noisy in ("uvicorn.access", "httpx", "httpcore", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.info("Logging configured", extra={"level": settings.LOG_LEVEL})


def sanitize_log_data(data):
    """
    Mask credentials and personal data before they reach a log line.

    Args:
        data: Mapping of log fields

    Returns:
        dict: Sanitized copy (non-dict values are returned unchanged)
    """
    if not isinstance(data, dict):
        return data

    sanitized = data.copy()
    for key, value in sanitized.items():
        if isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)
        elif isinstance(value, str):
            if any(s in key.lower() for s in SENSITIVE_KEYS):
                sanitized[key] = "********"
            else:
                value = BEARER_PATTERN.sub("Bearer ********", value)
                value = EMAIL_PATTERN.sub("***@***.***", value)
                sanitized[key] = MOBILE_PATTERN.sub("**********", value)

    return sanitized
