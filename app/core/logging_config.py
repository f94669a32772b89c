from __future__ import annotations

import os
import logging
from pythonjsonlogger import jsonlogger
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
import sys
import re
from typing import Any, Dict

from app.core.config import settings

LOG_DIR = os.path.abspath(settings.LOG_DIR)
# Ensure the directory exists at import time
os.makedirs(LOG_DIR, exist_ok=True)
MAX_BYTES = settings.LOG_ROTATION_SIZE
BACKUP_COUNT = settings.LOG_BACKUP_COUNT

# Attributes every LogRecord carries; anything else arrived through ``extra``
STANDARD_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'asctime', 'taskName'
}


class LogSanitizer:
    """Utility class for sanitizing lead contact data and secrets in logs."""

    SENSITIVE_PATTERNS = {
        'email': r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}',
        'api_key': r'(?i)(api[_-]?key|apikey|token|secret)[_-]?[=:]\s*[\w\-\.]+',
        'password': r'(?i)(password|passwd|pwd)[_-]?[=:]\s*[\w\-\.]+',
    }

    # Fields that should always be redacted
    SENSITIVE_FIELDS = {
        'password', 'token', 'secret', 'api_key', 'apikey', 'authorization',
        'email',
    }

    @classmethod
    def redact_field(cls, key: str) -> str:
        key = key.lower()
        if 'email' in key:
            return "[REDACTED_EMAIL]"
        if 'api_key' in key or 'apikey' in key:
            return "[REDACTED_API_KEY]"
        if 'password' in key:
            return "[REDACTED_PASSWORD]"
        return "[REDACTED]"

    @classmethod
    def is_sensitive_field(cls, key: str) -> bool:
        return any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS)

    @classmethod
    def sanitize_text(cls, value: str) -> str:
        for pattern_name, pattern in cls.SENSITIVE_PATTERNS.items():
            value = re.sub(pattern, f"[REDACTED_{pattern_name.upper()}]", value)
        return value

    @classmethod
    def sanitize_value(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.sanitize_text(value)
        elif isinstance(value, dict):
            return cls.sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            return type(value)(cls.sanitize_value(item) for item in value)
        return value

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in data.items():
            if isinstance(key, str) and cls.is_sensitive_field(key):
                sanitized[key] = cls.redact_field(key)
            else:
                sanitized[key] = cls.sanitize_value(value)
        return sanitized

    @classmethod
    def sanitize_log_record(cls, record: logging.LogRecord) -> logging.LogRecord:
        if isinstance(record.msg, dict):
            record.msg = cls.sanitize_dict(record.msg)
        elif isinstance(record.msg, str):
            record.msg = cls.sanitize_text(record.msg)

        if record.args:
            record.args = cls.sanitize_value(record.args)

        for attr_name, attr_value in list(vars(record).items()):
            if attr_name.startswith('_') or attr_name in STANDARD_ATTRS:
                continue
            if cls.is_sensitive_field(attr_name):
                setattr(record, attr_name, cls.redact_field(attr_name))
            else:
                setattr(record, attr_name, cls.sanitize_value(attr_value))
        return record


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()

        if not log_record.get('level'):
            log_record['level'] = record.levelname.upper()

        if not log_record.get('source'):
            log_record['source'] = record.name

        if 'message' in message_dict:
            log_record['message'] = message_dict['message']
        elif hasattr(record, 'message'):
            log_record['message'] = record.message


class SanitizingFilter(logging.Filter):
    """Filter to sanitize log records before they are formatted."""

    def filter(self, record: logging.LogRecord) -> bool:
        LogSanitizer.sanitize_log_record(record)
        return True


def init_logging(level: int | None = None) -> logging.Logger:
    """Bootstrap application-wide logging. Safe to call multiple times."""

    if level is None:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(level)s %(name)s %(message)s %(source)s %(component)s",
        json_ensure_ascii=False,
    )

    root_logger = logging.getLogger()

    # Idempotency – if we already added our sentinel handler, just return
    for h in root_logger.handlers:
        if getattr(h, "_is_central_handler", False):
            root_logger.setLevel(level)
            return logging.getLogger("app")

    sanitizer = SanitizingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    console_handler.addFilter(sanitizer)
    console_handler._is_central_handler = True  # sentinel attr

    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, "combined.log"),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    file_handler.addFilter(sanitizer)
    file_handler._is_central_handler = True

    # Reset existing handlers (avoid duplicate logs when reloaded)
    root_logger.handlers = []
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    app_logger = logging.getLogger("app")
    app_logger.info("Centralised logger initialised", extra={"component": "logger"})
    return app_logger


# Initialise at import time so any early imports get the logger
app_logger = init_logging()
