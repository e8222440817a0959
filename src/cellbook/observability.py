"""Logging and metric hooks for cellbook.

Records and metrics pick up the request, cell and operation they were
emitted under from context variables, so a run can be followed from the
HTTP request through the pipeline to the sandbox call. Output goes
through a single handler on the ``cellbook`` package logger, installed
by configure_logging().
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, TextIO

PACKAGE_LOGGER = "cellbook"

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
cell_id_var: ContextVar[str | None] = ContextVar("cell_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

_CONTEXT_VARS = (
    ("request_id", request_id_var),
    ("cell_id", cell_id_var),
    ("operation", operation_var),
)


def current_context() -> dict[str, str]:
    """The context variables that are set, by name."""
    context = {}
    for name, var in _CONTEXT_VARS:
        value = var.get()
        if value:
            context[name] = value
    return context


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    context: dict[str, Any] = current_context()
    extra = getattr(record, "context", None)
    if isinstance(extra, dict):
        context.update(extra)
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: level, message, timestamp, logger, plus context, error and
    duration_ms when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "logger": record.name,
        }

        context = _record_context(record)
        if context:
            data["context"] = context

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            data["error"] = {"type": type(error).__name__, "message": str(error)}

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 3)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with the context appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            context["duration_ms"] = f"{duration_ms:.1f}"
        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


class StructuredLogger:
    """Module logger taking context, error and duration as keywords.

    Handlers live on the package logger, so this only builds the record.

    Example:
        logger = get_logger(__name__)
        logger.info("Code executed", context={"sandbox_id": "sbx-1"}, duration_ms=12.5)
        logger.error("Sandbox session creation failed", error=exc)
    """

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        context: dict[str, Any] | None,
        error: BaseException | None,
        duration_ms: float | None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        extra: dict[str, Any] = {}
        if context:
            extra["context"] = context
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        exc_info = (type(error), error, error.__traceback__) if error else None
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
    ) -> None:
        self._log(logging.DEBUG, message, context, error, None)

    def info(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self._log(logging.INFO, message, context, None, duration_ms)

    def warning(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self._log(logging.WARNING, message, context, error, duration_ms)

    def error(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        self._log(logging.ERROR, message, context, error, duration_ms)


class RequestContext:
    """Binds a request, cell and operation to everything logged in scope.

    A nested context keeps the enclosing request_id, so the operation
    records of one HTTP request share its ID.

    Example:
        async with RequestContext(cell_id="cell-3", operation="run"):
            logger.info("Running cell")
    """

    def __init__(
        self,
        request_id: str | None = None,
        cell_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.request_id = request_id or request_id_var.get() or str(uuid.uuid4())
        self.cell_id = cell_id
        self.operation = operation
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "RequestContext":
        bindings = (
            (request_id_var, self.request_id),
            (cell_id_var, self.cell_id),
            (operation_var, self.operation),
        )
        self._tokens = [(var, var.set(value)) for var, value in bindings if value]
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "RequestContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class Timer:
    """Wall time of a block, in milliseconds.

    Example:
        with Timer() as timer:
            execution = await handle.run_code(code)
        emit_timer("execution.run", timer.duration_ms)
    """

    def __init__(self) -> None:
        self.start_time: float = 0
        self.end_time: float = 0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()


# Receives (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Send every metric cellbook emits to callback."""
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def _emit(name: str, value: float, labels: dict[str, Any] | None) -> None:
    labels = dict(labels or {})
    context = current_context()
    for key in ("operation", "cell_id"):
        if key in context:
            labels.setdefault(key, context[key])

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, labels)
        except Exception as e:
            # Metric sinks never affect the run that emitted the metric
            get_logger(__name__).debug(
                "Metric callback failed", context={"metric": name}, error=e
            )


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Count one occurrence of name."""
    _emit(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    """Report how long name took."""
    _emit(name, duration_ms, labels)


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """Install the output handler on the package logger.

    Replaces any handler installed by an earlier call.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        format: "json" for StructuredFormatter, "text" for TextFormatter
        stream: Destination, stdout by default
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level.upper())
    package_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter() if format == "json" else TextFormatter())
    package_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
