import dataclasses
import enum
import json
import logging
import os
import traceback
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
import queue
import sys
from typing import Any, Dict, Optional, Tuple, List
from logging import Handler

from .config import Settings


_REDACT_KEYS: set[str] = set()

_logger: Optional[logging.Logger] = None
_log_listener: Optional[QueueListener] = None


def _json_dumps_compact(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def _is_json_serializable(obj: Any) -> bool:
    try:
        json.dumps(obj)
        return True
    except (TypeError, ValueError):
        return False


def _sanitize_for_json(obj: Any) -> Any:
    """Recursively sanitize an object for JSON serialization.

    Converts non-serializable types (bytes, dataclasses, enums, datetimes) into
    JSON-compatible structures while redacting sensitive fields. Dictionary
    keys listed in ``_REDACT_KEYS`` are masked and null values are dropped.

    Args:
        obj (Any): Input object to sanitize.

    Returns:
        Any: JSON-serializable structure with sensitive data redacted.
    """
    if isinstance(obj, bytes):
        return obj.decode("utf-8", "replace")
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _sanitize_for_json(dataclasses.asdict(obj))
    if isinstance(obj, dict):
        redacted = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() in _REDACT_KEYS:
                redacted[k] = "***REDACTED***"
            else:
                sanitized_value = _sanitize_for_json(v)
                if sanitized_value is not None:
                    redacted[k] = sanitized_value
        return redacted
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = sorted(obj, key=str) if isinstance(obj, (set, frozenset)) else obj
        return [s for s in (_sanitize_for_json(x) for x in items) if s is not None]
    if _is_json_serializable(obj):
        return obj
    return repr(obj)


class LogEvent(enum.Enum):
    """Enumeration of structured log events emitted throughout mindfeed.

    Each value marks a distinct milestone or error category in caching, model
    selection or recommendation generation. These constants are used in
    ``LogRecord.event`` for consistent analytics and monitoring.
    """

    CACHE_EVENT = "cache_event"
    MODEL_CATALOG = "model_catalog"
    MODEL_SELECTION = "model_selection"
    MODEL_SELECTION_FAILURE = "model_selection_failure"
    RECOMMENDATION_START = "recommendation_start"
    RECOMMENDATIONS_GENERATED = "recommendations_generated"
    RECOMMENDATION_FAILURE = "recommendation_failure"
    RECOMMENDATION_ENHANCEMENT = "recommendation_enhancement"
    DEPENDENCY_FAILURE = "dependency_failure"


@dataclasses.dataclass
class LogError:
    """Structured representation of an exception attached to a log entry.

    Attributes:
        name: Exception class name.
        message: Human-readable description.
        stack_trace: Full traceback string (may be ``None`` when suppressed).
        args: JSON-safe serialization of ``Exception.args``.
    """

    name: str
    message: str
    stack_trace: Optional[str] = None
    args: Optional[Tuple[Any, ...]] = None


@dataclasses.dataclass
class LogRecord:
    """Primary payload transported via the logging system.

    Attributes:
        event: Identifier from :class:`LogEvent` or custom tag.
        message: Short human-readable summary.
        request_id: Optional correlator supplied by the caller.
        data: Arbitrary contextual dictionary (sanitized/truncated).
        error: Optional :class:`LogError` with exception details.
    """

    event: str
    message: str
    request_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[LogError] = None


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as compact JSON lines.

    Injects timestamp, level and logger name, serializes the attached
    :class:`LogRecord`, truncates oversized strings and redacts configured
    sensitive fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        header: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        log_payload = getattr(record, "log_record", None)
        if isinstance(log_payload, LogRecord):
            detail = _sanitize_for_json(dataclasses.asdict(log_payload))
            if (
                isinstance(detail, dict)
                and detail.get("data")
                and isinstance(detail["data"], dict)
            ):
                for key, value in detail["data"].items():
                    if isinstance(value, str) and len(value) > 5000:
                        detail["data"][key] = value[:5000] + "...[truncated]"
            header["detail"] = detail
        else:
            header["message"] = record.getMessage()
            if record.exc_info:
                exc_type, exc_value, exc_tb = record.exc_info
                header["error"] = _sanitize_for_json(
                    {
                        "name": exc_type.__name__ if exc_type else "UnknownError",
                        "message": str(exc_value),
                        "stack_trace": "".join(
                            traceback.format_exception(exc_type, exc_value, exc_tb)
                        ),
                    }
                )
        return _json_dumps_compact(_sanitize_for_json(header))


class ConsoleJSONFormatter(JSONFormatter):
    """Variant of :class:`JSONFormatter` tuned for interactive consoles.

    Drops stack traces for brevity while preserving the JSON structure.
    """

    def format(self, record: logging.LogRecord) -> str:
        header: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        log_payload = getattr(record, "log_record", None)
        if isinstance(log_payload, LogRecord):
            detail = _sanitize_for_json(dataclasses.asdict(log_payload))
            if (
                isinstance(detail, dict)
                and detail.get("error")
                and detail["error"].get("stack_trace")
            ):
                detail["error"]["stack_trace"] = None
            header["detail"] = detail
        else:
            header["message"] = record.getMessage()
            if record.exc_info:
                exc_type, exc_value, _ = record.exc_info
                header["error"] = _sanitize_for_json(
                    {
                        "name": exc_type.__name__ if exc_type else "UnknownError",
                        "message": str(exc_value),
                    }
                )
        return _json_dumps_compact(_sanitize_for_json(header))


def init_logging(settings: Settings) -> logging.Logger:
    global _logger
    global _log_listener
    global _REDACT_KEYS

    shutdown_logging()

    log_queue: queue.Queue = queue.Queue(-1)
    queue_handler = QueueHandler(log_queue)

    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setFormatter(
        ConsoleJSONFormatter() if settings.log_pretty_console else JSONFormatter()
    )

    handlers: List[Handler] = [console_handler]

    if settings.log_file_path:
        try:
            log_dir = os.path.dirname(settings.log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(
                settings.log_file_path, mode="a", encoding="utf-8"
            )
            file_handler.setFormatter(JSONFormatter())
            handlers.append(file_handler)
        except OSError as e:
            logging.getLogger(settings.app_name).warning(
                "Failed to configure file logging: %s", e
            )

    if settings.error_log_file_path:
        try:
            err_dir = os.path.dirname(settings.error_log_file_path)
            if err_dir:
                os.makedirs(err_dir, exist_ok=True)
            err_handler = logging.FileHandler(
                settings.error_log_file_path, mode="a", encoding="utf-8"
            )
            err_handler.setLevel(logging.ERROR)
            err_handler.setFormatter(JSONFormatter())
            handlers.append(err_handler)
        except OSError as e:
            logging.getLogger(settings.app_name).warning(
                "Failed to configure error file logging: %s", e
            )

    _log_listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    _log_listener.start()

    logger = logging.getLogger(settings.app_name)
    logger.handlers = [queue_handler]
    logger.propagate = False
    logger.setLevel(settings.log_level.upper())

    _logger = logger
    _REDACT_KEYS = {k.lower() for k in settings.redact_log_fields}
    return _logger


def shutdown_logging() -> None:
    """Safely shutdown logging system, flushing all messages."""
    global _log_listener
    if _log_listener:
        _log_listener.stop()
        _log_listener = None


def _log(level: int, record: LogRecord, exc: Optional[BaseException] = None) -> None:
    """Internal helper to log structured messages with exception handling.

    Processes the exception (if provided) into the LogRecord's error field
    and emits the log entry at the specified level.
    """
    if exc:
        include_stack = any(
            isinstance(h, logging.FileHandler)
            for h in (_log_listener.handlers if _log_listener else ())
        )
        stack_str = None
        if include_stack:
            stack_str = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        sanitized = _sanitize_for_json(exc.args)
        record.error = LogError(
            name=type(exc).__name__,
            message=str(exc),
            stack_trace=stack_str,
            args=tuple(sanitized) if isinstance(sanitized, list) else (sanitized,),
        )
        if not record.message:
            record.message = str(exc) or "An unspecified error occurred"

    if _logger:
        _logger.log(level=level, msg=record.message, extra={"log_record": record})


def is_debug_enabled() -> bool:
    return _logger is not None and _logger.isEnabledFor(logging.DEBUG)


def debug(record: LogRecord) -> None:
    _log(logging.DEBUG, record)


def info(record: LogRecord) -> None:
    _log(logging.INFO, record)


def warning(record: LogRecord, exc: Optional[BaseException] = None) -> None:
    _log(logging.WARNING, record, exc=exc)


def error(record: LogRecord, exc: Optional[BaseException] = None) -> None:
    _log(logging.ERROR, record, exc=exc)


def critical(record: LogRecord, exc: Optional[BaseException] = None) -> None:
    _log(logging.CRITICAL, record, exc=exc)
