"""
Logging setup for the clustering engine.

Core modules log through the standard library (``logging.getLogger``);
timing events go through structlog. Both end up on the same root handlers
and are rendered by one structlog ``ProcessorFormatter``, so a run emits a
single stream in either JSON or console form.
"""

import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import EventDict, Processor

# Marks handlers installed here so reconfiguration replaces them
_HANDLER_MARKER = "_vector_clustering_handler"

LOG_FILE_MAX_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def add_service_context(service_name: str) -> Processor:
    """Return a processor that stamps every event with the service name."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    return processor


def _shared_processors(service_name: str) -> List[Processor]:
    # Applied to structlog events and to foreign stdlib records alike
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context(service_name),
    ]


def _build_handlers(level: int, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARKER, True)
    return handlers


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    service_name: str = "vector-clustering",
) -> None:
    """
    Route stdlib and structlog output through one renderer.

    Safe to call repeatedly: handlers from a previous call are replaced,
    handlers installed by anyone else are left alone.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" or "console"
        log_file: Optional path of a rotating log file
        service_name: Value of the ``service`` field on every event
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    shared = _shared_processors(service_name)
    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)]:
        root.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(level, log_file):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level]
        + shared
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    structlog logger bound to the stdlib logger ``name``.

    Events always go through stdlib logging, so before configure_logging
    runs they follow whatever logging setup the host application has.
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


class PerformanceLogger:
    """
    Time a block and log how it went.

    Emits ``operation_started`` at debug level on entry, then either
    ``operation_completed`` (at ``log_level``) or ``operation_failed`` (at
    error level) on exit. Exceptions are never suppressed.

    Usage:
        with PerformanceLogger("cluster_and_get_representatives", item_count=n, strategy="direct"):
            ...
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[Any] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **context: Any,
    ):
        self.operation = operation
        self.logger = logger if logger is not None else get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.context = context
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    @property
    def elapsed_time(self) -> float:
        """Seconds since entry; frozen once the block has exited."""
        if self.start_time is None:
            return 0.0
        stop = self.end_time if self.end_time is not None else time.perf_counter()
        return stop - self.start_time

    @property
    def throughput(self) -> Optional[float]:
        """Items per second, when an item count was given."""
        elapsed = self.elapsed_time
        if not self.item_count or elapsed <= 0:
            return None
        return self.item_count / elapsed

    def _fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"operation": self.operation, **self.context}
        fields["duration_seconds"] = round(self.elapsed_time, 3)
        if self.item_count is not None:
            fields["item_count"] = self.item_count
        rate = self.throughput
        if rate is not None:
            fields["items_per_second"] = round(rate, 2)
        return fields

    def __enter__(self) -> "PerformanceLogger":
        self.logger.debug("operation_started", operation=self.operation, **self.context)
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.perf_counter()
        fields = self._fields()

        if exc_type is None:
            getattr(self.logger, self.log_level)("operation_completed", **fields)
            return

        self.logger.error(
            "operation_failed",
            error=str(exc_val),
            error_type=exc_type.__name__,
            **fields,
        )
