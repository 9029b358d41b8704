"""
Logging for the ecosystem vault.

This module provides:
1. ContextAwareLogger for console logs (with pipe-delimited extras)
2. SecretRedactionFilter so secrets never reach a sink in clear text
3. AzureQueueHandler for structured audit logs shipped to a storage queue
"""

import logging
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from azure.storage.queue import QueueClient

from ..config import get_config
from ..constants import REDACTED, SENSITIVE_LOG_KEYS
from .json_utils import dumps

_function_logger = None

# Attributes every LogRecord carries; anything else arrived through `extra`
_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "actor_id",
    }
)


def redact(value: Any, key: Optional[str] = None) -> Any:
    """Return a copy of ``value`` with sensitive keys masked, recursing into containers."""
    if key is not None and key.lower() in SENSITIVE_LOG_KEYS and value not in (None, ""):
        return REDACTED
    if isinstance(value, Mapping):
        return {k: redact(v, str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.

    Extras are redacted before they are formatted so that a secret passed by
    mistake is masked in every handler.
    """

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        """
        Log with extra data formatted into the message.

        Args:
            level: Logging level method to use
            msg: Log message
            **kwargs: Additional arguments including 'extra'
        """
        extra = redact(kwargs.pop("extra", None) or {})

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, **kwargs)

    def set_level(self, level):
        """Set the logging level of the underlying logger."""
        self.logger.setLevel(level)

    def info(self, msg, **kwargs):
        """Log at INFO level with formatted extra."""
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        """Log at ERROR level with formatted extra."""
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        """Log at WARNING level with formatted extra."""
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        """Log at DEBUG level with formatted extra."""
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        """Log exception with formatted extra."""
        self._log_with_formatted_extra("exception", msg, **kwargs)


class ActorContextFilter(logging.Filter):
    """Logging filter that stamps the authenticated actor onto log records."""

    def filter(self, record):
        # Lazy import to avoid circular dependency
        from ..context.actor_context import ActorContext

        actor = ActorContext.get_current_actor()
        if actor is not None:
            record.actor_id = actor.user_id

        return True


class SecretRedactionFilter(logging.Filter):
    """Masks sensitive attributes attached to records by plain `logging` callers."""

    def filter(self, record):
        for key in list(record.__dict__):
            if key in _STANDARD_RECORD_ATTRS or key.startswith("_"):
                continue
            record.__dict__[key] = redact(record.__dict__[key], key)
        return True


class AzureQueueHandler(logging.Handler):
    """
    Logging handler that ships structured entries to an Azure Storage Queue.

    Entries are buffered and sent one message per entry when the buffer is
    full, on flush(), and on close().
    """

    def __init__(
        self,
        queue_name: str = "vault-audit-queue",
        connection_string: Optional[str] = None,
        batch_size: int = 10,
        queue_client: Optional[QueueClient] = None,
    ):
        """
        Initialize the Azure Queue handler.

        Args:
            queue_name: Name of the queue to send logs to
            connection_string: Azure Storage connection string
            batch_size: Number of logs to batch before sending
            queue_client: Pre-built client (used instead of the connection string)
        """
        super().__init__()
        self.queue_name = queue_name
        self.connection_string = connection_string
        self.batch_size = batch_size
        self.log_buffer: List[Dict[str, Any]] = []
        self._queue_client = queue_client

        if not self.connection_string and queue_client is None:
            sys.stderr.write("Azure Storage connection string not provided\n")

    def _get_client(self) -> Optional[QueueClient]:
        if self._queue_client is None and self.connection_string:
            self._queue_client = QueueClient.from_connection_string(
                conn_str=self.connection_string, queue_name=self.queue_name
            )
        return self._queue_client

    def emit(self, record: logging.LogRecord) -> None:
        """
        Queue a log record for sending to Azure Queue.

        Args:
            record: LogRecord to send
        """
        try:
            log_entry = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            }

            if hasattr(record, "actor_id"):
                log_entry["actor_id"] = record.actor_id

            context = {
                key: value
                for key, value in record.__dict__.items()
                if key not in _STANDARD_RECORD_ATTRS
                and not key.startswith("_")
                and not callable(value)
                and value is not None
            }
            if context:
                log_entry["context"] = redact(context)

            if record.exc_info and record.exc_info[0]:
                log_entry["exception"] = {
                    "type": record.exc_info[0].__name__,
                    "message": str(record.exc_info[1]),
                    "traceback": [
                        line.rstrip() for line in traceback.format_exception(*record.exc_info)
                    ],
                }

            self.log_buffer.append(log_entry)

            if len(self.log_buffer) >= self.batch_size:
                self.flush()

        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Send any buffered log records to the queue."""
        if not self.log_buffer:
            return

        try:
            queue_client = self._get_client()
        except Exception as e:
            sys.stderr.write(f"Error creating Azure Queue client: {str(e)}\n")
            return

        if queue_client is None:
            return

        # One message per entry; a failed entry does not block the rest
        for log_entry in self.log_buffer:
            try:
                queue_client.send_message(dumps(log_entry))
            except Exception as log_error:
                sys.stderr.write(f"Error sending individual log entry: {str(log_error)}\n")

        self.log_buffer.clear()

    def close(self) -> None:
        """Flush any remaining logs before closing."""
        self.flush()
        super().close()


def configure_logging(
    function_name: str,
    log_level: Optional[Union[int, str]] = None,
    enable_queue: Optional[bool] = None,
    queue_name: Optional[str] = None,
    queue_batch_size: int = 10,
    connection_string: Optional[str] = None,
) -> "ContextAwareLogger":
    """
    Configure logging with console and optional queue output.

    Args:
        function_name: Name of the calling component
        log_level: Logging level (default: from config)
        enable_queue: Whether to ship logs to the audit queue (default: from config)
        queue_name: Name of the queue to send logs to (default: from config)
        queue_batch_size: Number of logs to batch before sending
        connection_string: Azure Storage connection string (default: from config)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _function_logger

    app_config = get_config()

    if log_level is None:
        log_level = app_config.logging.level
    if enable_queue is None:
        enable_queue = app_config.logging.enable_queue_logs
    if connection_string is None:
        connection_string = app_config.queue.connection_string
    if queue_name is None:
        queue_name = app_config.queue.audit_queue_name

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"ecosystem_vault.{function_name}")
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    actor_filter = ActorContextFilter()
    redaction_filter = SecretRedactionFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(app_config.logging.format))
    console_handler.addFilter(actor_filter)
    console_handler.addFilter(redaction_filter)
    logger.addHandler(console_handler)

    if enable_queue:
        queue_handler = AzureQueueHandler(
            queue_name=queue_name, connection_string=connection_string, batch_size=queue_batch_size
        )
        queue_handler.setLevel(log_level)
        queue_handler.addFilter(actor_filter)
        queue_handler.addFilter(redaction_filter)
        logger.addHandler(queue_handler)

    wrapped_logger = ContextAwareLogger(logger)

    wrapped_logger.info(
        "Logger configured",
        extra={
            "function_name": function_name,
            "queue_logging": enable_queue,
            "queue_name": queue_name if enable_queue else None,
        },
    )
    _function_logger = wrapped_logger
    return wrapped_logger


def reset_logging() -> None:
    """Forget the configured logger so get_logger() falls back to the package logger."""
    global _function_logger
    _function_logger = None


def get_logger(
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Get the configured logger, or a wrapped package logger when none is configured.

    Args:
        log_level: Optional log level to set

    Returns:
        Logger instance
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger("ecosystem_vault")

    if log_level is None:
        log_level = get_config().logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    return ContextAwareLogger(logger)
