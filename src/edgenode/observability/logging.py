"""Structured logging setup with JSON-lines output and credential redaction.

Domain modules log through ``structlog.get_logger(__name__)`` with keyword
fields. :func:`configure_structlog` routes those events into the stdlib
``edgenode`` logger, whose queue-backed sinks render one canonical JSON object
per line. Keyword fields land under ``"fields"``; correlation values bound with
:func:`correlation_scope` are lifted to the top level.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Final, cast

import structlog

from edgenode.security.redaction import REDACTED_VALUE, redact_for_logging

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

_DEFAULT_LOG_FILENAME: Final[str] = "edgenode.jsonl"
_DEFAULT_LOGGER_NAME: Final[str] = "edgenode"
_DEFAULT_QUEUE_SIZE: Final[int] = 4096

CORRELATION_KEYS: Final[tuple[str, ...]] = (
    "node_id",
    "device_id",
    "org",
    "service_url",
    "request_id",
)

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_CorrelationState = tuple[tuple[str, str], ...]
_CORRELATION_CONTEXT: contextvars.ContextVar[_CorrelationState] = contextvars.ContextVar(
    "edgenode_observability_correlation", default=()
)

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: StructuredLoggingHandle | None = None
_ATEXIT_REGISTERED = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Configuration for queue-backed structured logging of one node."""

    node_id: str
    base_log_dir: Path | str = Path("logs")
    logger_name: str = _DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    queue_size: int = _DEFAULT_QUEUE_SIZE
    log_filename: str = _DEFAULT_LOG_FILENAME
    log_to_stdout: bool = False
    redact_secrets: bool = True


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    node_id: str,
    log_dir: Path | str | None = None,
) -> StructuredLoggingHandle:
    """Configure logging from an ``[observability]`` section of ``edgenode.toml``."""

    cfg = dict(observability_config or {})
    raw_level = cfg.get("log_level", "INFO")
    raw_dir: object = log_dir if log_dir is not None else cfg.get("log_dir", "logs")
    handle = setup_structured_logging(
        LoggingConfig(
            node_id=node_id,
            base_log_dir=raw_dir if isinstance(raw_dir, (Path, str)) else "logs",
            level=raw_level if isinstance(raw_level, (int, str)) else "INFO",
            log_to_stdout=bool(cfg.get("log_to_stdout", False)),
            redact_secrets=bool(cfg.get("redact_secrets", True)),
        )
    )
    configure_structlog()
    return handle


def configure_structlog() -> None:
    """Route ``structlog`` events through the stdlib ``edgenode`` logger."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class _DropCounter:
    """Thread-safe counter for dropped queue records."""

    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> None:
        with self._lock:
            self._value += 1

    def value(self) -> int:
        with self._lock:
            return self._value


class _NonBlockingQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records when the queue is full."""

    def __init__(self, log_queue: queue.Queue[object], drop_counter: _DropCounter) -> None:
        super().__init__(log_queue)
        self._drop_counter = drop_counter

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Correlation lives in a contextvar of the emitting thread; capture it now.
        context = get_correlation_context()
        if context:
            record.correlation = context
        return cast("logging.LogRecord", super().prepare(record))

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self._drop_counter.increment()


class _JsonLineFormatter(logging.Formatter):
    """Formatter that emits canonical JSON objects per log line."""

    def __init__(self, *, redactor: LogRedactor, base_context: Mapping[str, str]) -> None:
        super().__init__()
        self._redactor = redactor
        self._base_context = dict(base_context)

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": _coerce_log_message(
                self._redactor(_normalize_json_value(record.getMessage()))
            ),
        }

        correlation = dict(self._base_context)
        captured = getattr(record, "correlation", None)
        if isinstance(captured, Mapping):
            correlation.update(captured)
        for key, value in sorted(correlation.items()):
            event[key] = value

        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = self._redactor(_normalize_json_value(extras))

        if record.exc_info is not None:
            event["exception"] = _coerce_log_message(
                self._redactor(_normalize_json_value(self.formatException(record.exc_info)))
            )

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class StructuredLoggingHandle:
    """Runtime handle for an active structured logging setup."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        node_id: str,
        log_path: Path,
        log_queue: queue.Queue[object],
        queue_handler: _NonBlockingQueueHandler,
        sink_handlers: tuple[logging.Handler, ...],
        listener: logging.handlers.QueueListener,
        drop_counter: _DropCounter,
    ) -> None:
        self.logger = logger
        self.node_id = node_id
        self.log_path = log_path
        self._queue = log_queue
        self._queue_handler = queue_handler
        self._sink_handlers = sink_handlers
        self._listener = listener
        self._drop_counter = drop_counter
        self._shutdown_lock = threading.Lock()
        self._is_shutdown = False

    @property
    def dropped_records(self) -> int:
        return self._drop_counter.value()

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._queue.unfinished_tasks > 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        for handler in self._sink_handlers:
            handler.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._shutdown_lock:
            if self._is_shutdown:
                return

            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()

            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for handler in self._sink_handlers:
                handler.flush()
                handler.close()

            self._is_shutdown = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Configure queue-backed structured logging under ``<base_log_dir>/<node_id>/``."""

    _shutdown_previous_active_handle()

    node_id = _validate_text(config.node_id, "node_id")
    log_filename = _validate_text(config.log_filename, "log_filename")
    if Path(log_filename).name != log_filename:
        raise ValueError("log_filename must not include path separators")
    if not isinstance(config.queue_size, int) or config.queue_size <= 0:
        raise ValueError("queue_size must be a positive integer")
    level = _parse_log_level(config.level)

    node_log_dir = Path(config.base_log_dir) / node_id
    node_log_dir.mkdir(parents=True, exist_ok=True)
    log_path = node_log_dir / log_filename

    redactor = default_log_redactor if config.redact_secrets else _identity_redactor
    formatter = _JsonLineFormatter(redactor=redactor, base_context={"node_id": node_id})

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    sink_handlers: list[logging.Handler] = [file_handler]
    if config.log_to_stdout:
        stdout_handler = logging.StreamHandler()
        stdout_handler.setLevel(level)
        stdout_handler.setFormatter(formatter)
        sink_handlers.append(stdout_handler)

    logger = logging.getLogger(_validate_text(config.logger_name, "logger_name"))
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    log_queue: queue.Queue[object] = queue.Queue(maxsize=config.queue_size)
    drop_counter = _DropCounter()
    queue_handler = _NonBlockingQueueHandler(log_queue, drop_counter)
    queue_handler.setLevel(level)

    listener = logging.handlers.QueueListener(log_queue, *sink_handlers, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    handle = StructuredLoggingHandle(
        logger=logger,
        node_id=node_id,
        log_path=log_path,
        log_queue=log_queue,
        queue_handler=queue_handler,
        sink_handlers=tuple(sink_handlers),
        listener=listener,
        drop_counter=drop_counter,
    )

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        _ACTIVE_HANDLE = handle

    _register_atexit_shutdown()
    return handle


def flush_logging(
    handle: StructuredLoggingHandle | None = None,
    *,
    timeout_seconds: float = 2.0,
) -> None:
    resolved = handle if handle is not None else get_active_logging_handle()
    if resolved is not None:
        resolved.flush(timeout_seconds=timeout_seconds)


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None,
    *,
    timeout_seconds: float = 2.0,
) -> None:
    """Shutdown logging listener and close all sinks."""

    resolved = handle if handle is not None else get_active_logging_handle()
    if resolved is None:
        return

    resolved.shutdown(timeout_seconds=timeout_seconds)

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        if _ACTIVE_HANDLE is resolved:
            _ACTIVE_HANDLE = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION_CONTEXT.get())


def set_correlation_fields(**fields: str | None) -> contextvars.Token[_CorrelationState]:
    """Set correlation fields for the active context and return a reset token.

    Only the names in ``CORRELATION_KEYS`` are accepted; ``None`` unbinds a field.
    """

    state = get_correlation_context()
    for key, value in fields.items():
        if key not in CORRELATION_KEYS:
            raise ValueError(f"unsupported correlation key {key!r}")
        if value is None:
            state.pop(key, None)
            continue
        state[key] = _validate_text(value, f"correlation value for {key}")
    return _CORRELATION_CONTEXT.set(tuple(sorted(state.items())))


def reset_correlation_fields(token: contextvars.Token[_CorrelationState]) -> None:
    _CORRELATION_CONTEXT.reset(token)


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Temporarily bind correlation fields for log records in scope."""

    token = set_correlation_fields(**fields)
    try:
        yield
    finally:
        reset_correlation_fields(token)


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Deep redaction of credential-like keys and token assignments."""

    return _normalize_json_value(redact_for_logging(value))


def _shutdown_previous_active_handle() -> None:
    existing = get_active_logging_handle()
    if existing is not None:
        existing.shutdown()

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        _ACTIVE_HANDLE = None


def _register_atexit_shutdown() -> None:
    global _ATEXIT_REGISTERED
    if _ATEXIT_REGISTERED:
        return
    atexit.register(shutdown_logging)
    _ATEXIT_REGISTERED = True


def _validate_text(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{name} must not be empty")
    return normalized


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")
    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _coerce_log_message(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key == "correlation":
            continue
        if key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return _normalize_json_value(value.value)
    if isinstance(value, float):
        return value if math.isfinite(value) else REDACTED_VALUE
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize_json_value(item) for item in value), key=repr)
    return repr(value)


def _identity_redactor(value: JSONValue) -> JSONValue:
    return value


__all__ = [
    "CORRELATION_KEYS",
    "JSONScalar",
    "JSONValue",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "flush_logging",
    "get_active_logging_handle",
    "get_correlation_context",
    "reset_correlation_fields",
    "set_correlation_fields",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
