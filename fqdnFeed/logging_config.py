"""
Centralized logging configuration for fqdnFeed.

Provides structured JSONL logging with rotation, request-id injection and
component-specific loggers (``fqdnfeed.<component>``). Configured through
environment variables:

    FQDNFEED_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR (default INFO)
    FQDNFEED_LOG_FILE       JSONL output path (default logs/fqdnfeed.jsonl,
                            empty string disables the file handler)
    FQDNFEED_LOG_MAX_BYTES  rotation size (default 100MB)

Request ID Propagation:
    The API middleware calls `set_request_id()` for each inbound request.
    Every record emitted while serving it, including records from the
    resolver tasks fanned out by the walker, carries that id.
"""
import contextvars
import json
import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)


def set_request_id(request_id: str) -> contextvars.Token:
    """Set the current request ID for this async context."""
    return _request_id_var.set(request_id)


def get_request_id() -> str:
    """Return the current request ID, or an empty string if none is set."""
    return _request_id_var.get()


def reset_request_id(token: contextvars.Token) -> None:
    """Reset the request ID context variable to its previous state."""
    _request_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that outputs logs in JSON Lines format.

    Each log entry is a single-line JSON object with standardized fields.
    The request_id from contextvars is included automatically when set.
    """

    # Extra attributes copied from the record when present
    EXTRA_ATTRS = (
        "request_id", "fqdn", "family", "config_id", "span", "duration",
        "status_code", "outcome", "state", "action", "error_type", "count",
        "ipv4_updated", "ipv6_updated", "ipv4_count", "ipv6_count", "backend",
        "key", "method", "path", "query_params",
    )

    def __init__(self, component: str = "fqdnfeed"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that injects a fixed context into every record."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "fqdnfeed",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 10,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Set up logging for a fqdnFeed component.

    Args:
        component: Component name (resolver, store, api, cli)
        log_level: Logging level name; falls back to FQDNFEED_LOG_LEVEL
        log_file: JSONL file path; falls back to FQDNFEED_LOG_FILE
        max_bytes: Max bytes per file before rotation
        backup_count: Number of rotated files to keep
        enable_console: Whether to attach a console handler

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("FQDNFEED_LOG_LEVEL", "INFO")).upper()
    if log_file is None:
        log_file = os.getenv("FQDNFEED_LOG_FILE", "logs/fqdnfeed.jsonl")
    max_bytes = max_bytes or int(os.getenv("FQDNFEED_LOG_MAX_BYTES", str(100 * 1024 * 1024)))

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(f"fqdnfeed.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False
    logger.handlers.clear()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(JSONLFormatter(component=component))
            logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug(
        "Logging configured",
        extra={"state": "configured", "action": "logging_setup"},
    )
    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create a logger for a component.

    Returns a ContextAdapter when a context dict is given.
    """
    logger = logging.getLogger(f"fqdnfeed.{component}")
    if not logger.handlers:
        logger = setup_logging(component)
    if context:
        return ContextAdapter(logger, context)  # type: ignore[return-value]
    return logger


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """Redact secret-like values from a dict before it is logged."""
    sensitive_keys = sensitive_keys or [
        "password", "passwd", "token", "secret", "key", "auth", "dsn",
    ]

    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        elif isinstance(value, list) and value and isinstance(value[0], dict):
            sanitized[key] = [sanitize_log_data(item, sensitive_keys) for item in value]
        else:
            sanitized[key] = value
    return sanitized
