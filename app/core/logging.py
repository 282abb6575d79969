import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler

from app.core.config import settings

# Query-string credentials sent to the Namecheap XML API on every call
SECRET_QUERY_PARAMS = ("ApiKey", "ApiUser", "UserName")

# Caller IP of the request being served, set by ClientIPMiddleware
client_ip_var: ContextVar[str] = ContextVar("client_ip", default="unknown")

SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "key",
    "auth",
    "credential",
    "api_key",
    "apikey",
)


class UTCFormatter(logging.Formatter):
    """Custom formatter that forces UTC time"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime("%Y-%m-%d %H:%M:%S")


# Attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# ``extra`` keys that may hold registrar credentials or registrant PII
REDACTED_EXTRAS = frozenset(
    {"registrant", "credentials", "params", "headers", "body", "request", "response"}
)

MAX_VALUE_LENGTH = 1000


def _json_safe(value):
    """Make an ``extra`` value JSON-serializable without leaking secrets"""
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, list | tuple | set | frozenset):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in sanitize_log_data(value).items()}

    text = str(value)
    if re.search(r"(api_?key|token|secret)\s*[:=]\s*\S+", text, re.I):
        return "[REDACTED]"
    if len(text) > MAX_VALUE_LENGTH:
        return text[:MAX_VALUE_LENGTH] + "...[TRUNCATED]"
    return text


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with ``extra`` fields sanitized"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "client_ip": getattr(record, "client_ip", client_ip_var.get()),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in entry or key.startswith("_"):
                continue
            if key in REDACTED_EXTRAS or key.lower() in SENSITIVE_KEYS:
                entry[key] = "********"
                continue
            entry[key] = _json_safe(value)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ClientIPFilter(logging.Filter):
    """Adds the caller IP (set by ClientIPMiddleware) to log records"""

    def filter(self, record):
        if not hasattr(record, "client_ip"):
            record.client_ip = client_ip_var.get()
        return True


def setup_logging():
    """Setup application logging with daily file rotation and console output"""
    os.makedirs(settings.LOG_PATH, exist_ok=True)

    current_date = datetime.now(UTC).strftime("%Y-%m-%d")
    log_file = settings.LOG_PATH / f"app-{current_date}.log"

    log_level = getattr(logging, settings.LOG_LEVEL.upper())

    logger = logging.getLogger()
    logger.setLevel(log_level)

    utc_formatter = UTCFormatter(
        "%(asctime)s UTC - [%(client_ip)s] - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    environment = settings.ENVIRONMENT
    if environment == "production":
        # JSON lines for log aggregation
        file_formatter = JSONFormatter()
    else:
        file_formatter = utc_formatter

    file_handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    file_handler.setFormatter(file_formatter)
    file_handler.setLevel(log_level)
    file_handler.addFilter(ClientIPFilter())
    logger.addHandler(file_handler)

    if environment == "development":
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(utc_formatter)
        console_handler.setLevel(log_level)
        console_handler.addFilter(ClientIPFilter())
        logger.addHandler(console_handler)

    # httpx logs full request URLs, which include Namecheap credentials
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.info("Logging configured successfully")


def mask_query_secrets(url: str) -> str:
    """Mask registrar credentials carried in a URL query string."""
    for param in SECRET_QUERY_PARAMS:
        url = re.sub(rf"({param}=)[^&]*", r"\1********", url)
    return url


def sanitize_log_data(data):
    """
    Sanitize sensitive data for logging

    Args:
        data: Data to sanitize

    Returns:
        dict: Sanitized data
    """
    if not isinstance(data, dict):
        return data

    sanitized = data.copy()

    email_pattern = re.compile(r"([a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+)")
    token_pattern = re.compile(r"(Bearer\s+[A-Za-z0-9-_=.]+)")

    for key, value in sanitized.items():
        if isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

        elif isinstance(value, str):
            if any(s in key.lower() for s in SENSITIVE_KEYS):
                sanitized[key] = "********"

            elif key.lower() == "url":
                sanitized[key] = mask_query_secrets(value)

            elif email_pattern.search(value):
                sanitized[key] = email_pattern.sub("***@***.***", value)

            elif token_pattern.search(value):
                sanitized[key] = token_pattern.sub("Bearer ********", value)

    return sanitized
