"""
Structured Logging Configuration Module

JSON log lines for every banking action. Each line carries the request's
correlation id (held in a context variable for the duration of an API call)
and never the full account number or credentials of a customer.
"""

import contextvars
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional


# Extra keys whose values are account numbers
ACCOUNT_NUMBER_KEYS = {"account_number", "from_account", "to_account", "destination_account_number"}
# Extra keys that are dropped from log output entirely
SECRET_KEYS = {"password", "password_hash", "password_salt", "token", "api_key"}

_correlation_id = contextvars.ContextVar('correlation_id', default=None)


def get_correlation_id() -> Optional[str]:
    """Correlation id of the request being handled, if any"""
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with a correlation id"""
    token = _correlation_id.set(correlation_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


def mask_account_number(value: Any) -> Any:
    """Keep only the last four characters of an account number"""
    if not isinstance(value, str) or len(value) <= 4:
        return value
    return "*" * (len(value) - 4) + value[-4:]


def scrub(extra: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in extra.items():
        if key in SECRET_KEYS:
            continue
        cleaned[key] = mask_account_number(value) if key in ACCOUNT_NUMBER_KEYS else value
    return cleaned


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        extra = getattr(record, 'extra', None)
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', None) or get_correlation_id(),
            "user_id": getattr(record, 'user_id', None),
            "action": getattr(record, 'action', None),
            "resource": getattr(record, 'resource', None),
            "extra": scrub(extra) if extra else None
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "boapay",
                  log_format: str = "json") -> logging.Logger:
    """
    Configure the application logger

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Root of the logger hierarchy to configure
        log_format: "json" for structured output, "text" for plain lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Reconfiguring replaces the previous handler
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "boapay") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[int] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log a banking action with structured fields

    Args:
        logger: Logger instance
        level: Log level name (info, warning, error, ...)
        message: Log message
        user_id: Acting user
        action: Operation name, e.g. transfer_funds
        resource: Kind of record acted upon
        correlation_id: Overrides the id of the current request
        extra: Additional structured data; account numbers are masked on output
    """
    fields = {
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "correlation_id": correlation_id,
        "extra": extra,
    }
    logger.log(
        getattr(logging, level.upper()), message,
        extra={key: value for key, value in fields.items() if value is not None}
    )
