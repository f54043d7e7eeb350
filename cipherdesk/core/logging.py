"""Structured logging with conversion correlation.

Provides:
- JSON structured output or colored human-readable output
- Conversion correlation IDs carried in a context variable
- Sensitive data masking (keys, IVs, signatures never reach the log)
- Operation timing decorator

Usage:
    from cipherdesk.core.logging import get_logger, conversion_context

    logger = get_logger(__name__)

    with conversion_context():
        logger.info("Conversion started", operation="encrypt")
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Iterator

# Context variables for conversion-scoped data
conversion_id_var: ContextVar[str | None] = ContextVar("conversion_id", default=None)
controller_id_var: ContextVar[str | None] = ContextVar("controller_id", default=None)

# Sensitive fields to mask in logs
SENSITIVE_FIELDS = {
    "key", "secret", "private", "password", "iv", "nonce",
    "plaintext", "payload", "signature", "token",
}


def mask_sensitive(data: dict[str, Any]) -> dict[str, Any]:
    """Mask sensitive values in a dictionary.

    Field names ending in ``_bits``, ``_length``, ``_size`` or ``_kind``
    describe the material without revealing it and are left as is.
    """
    masked = {}
    for key, value in data.items():
        key_lower = key.lower()
        is_size = key_lower.endswith(("_bits", "_length", "_size", "_kind"))
        if not is_size and any(s in key_lower for s in SENSITIVE_FIELDS):
            masked[key] = "[REDACTED]"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive(value)
        else:
            masked[key] = value
    return masked


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if conversion_id := conversion_id_var.get():
            log_entry["conversion_id"] = conversion_id
        if controller_id := controller_id_var.get():
            log_entry["controller_id"] = controller_id

        if hasattr(record, "extra_fields"):
            log_entry.update(mask_sensitive(record.extra_fields))

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.WARNING:
            log_entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_entry, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")

        prefix_parts = []
        if controller_id := controller_id_var.get():
            prefix_parts.append(f"ctl={controller_id[:8]}")
        if conversion_id := conversion_id_var.get():
            prefix_parts.append(f"conv={conversion_id[:8]}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        extra_str = ""
        if hasattr(record, "extra_fields") and record.extra_fields:
            masked = mask_sensitive(record.extra_fields)
            extra_str = " | " + " ".join(f"{k}={v}" for k, v in masked.items())

        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname[:4]

        message = (
            f"{color}{timestamp} {level}{self.RESET} "
            f"[{record.name}] {prefix}{record.getMessage()}{extra_str}"
        )

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class StructuredLogger(logging.Logger):
    """Logger that accepts arbitrary keyword fields on every call.

    The fields travel on the record as ``extra_fields`` and are masked by the
    formatters, so ``logger.info("Key imported", kind="public")`` just works.
    """

    def _log(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **fields: Any,
    ):
        if fields:
            extra = {**(extra or {}), "extra_fields": fields}
        super()._log(
            level, msg, args,
            exc_info=exc_info, extra=extra, stack_info=stack_info, stacklevel=stacklevel,
        )


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module."""
    logging.setLoggerClass(StructuredLogger)
    logger = logging.getLogger(name)
    logging.setLoggerClass(logging.Logger)
    return logger


def setup_logging(json_output: bool = False, level: str = "INFO"):
    """Configure application logging.

    Args:
        json_output: Use JSON format
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr keeps CLI output on stdout machine-readable
    handler = logging.StreamHandler(sys.stderr)

    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanFormatter())

    root_logger.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


@contextmanager
def conversion_context(conversion_id: str | None = None) -> Iterator[str]:
    """Bind a conversion ID to every log line emitted inside the block."""
    conversion_id = conversion_id or uuid.uuid4().hex
    token = conversion_id_var.set(conversion_id)
    try:
        yield conversion_id
    finally:
        conversion_id_var.reset(token)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


def log_operation(operation: str):
    """Decorator that times a coroutine and logs whether it raised."""
    def decorator(func: Callable):
        logger = get_logger(func.__module__)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.monotonic()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{operation} failed",
                    operation=operation,
                    error_type=type(e).__name__,
                    duration_ms=_elapsed_ms(start),
                )
                raise
            logger.info(f"{operation} completed", operation=operation, duration_ms=_elapsed_ms(start))
            return result

        return wrapper

    return decorator
