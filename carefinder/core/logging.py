"""
Structured logging and monitoring hooks

structlog is configured once at application startup. Log events use
snake_case event names with key/value context, e.g.

    logger.info("delta_ingested", entity_id="doc-1", kind="availability-change")

Counters are an in-process stub until a metrics backend is wired in.
"""

import inspect
import logging
import sys
import time
from collections import Counter
from functools import wraps
from typing import Any, Callable, TypeVar

import structlog
from structlog.types import EventDict, Processor

from carefinder.core.config import settings

F = TypeVar("F", bound=Callable[..., Any])


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every entry with app name, version and environment."""
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def _renderer(json_output: bool) -> list[Processor]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.processors.ExceptionPrettyPrinter(), structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, defaults to settings.log_level
        json_output: JSON lines instead of the coloured console renderer,
            defaults to settings.log_json
    """
    level = level or settings.log_level
    json_output = settings.log_json if json_output is None else json_output
    numeric_level = logging.getLevelName(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            add_app_context,
            *_renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Monitoring stubs (swap for Prometheus/OTEL) ---
_COUNTERS: Counter[tuple[str, tuple[tuple[str, Any], ...]]] = Counter()


def _counter_key(name: str, labels: dict[str, Any]) -> tuple[str, tuple[tuple[str, Any], ...]]:
    return name, tuple(sorted(labels.items()))


def metrics_counter(name: str, **labels: Any) -> None:
    """Increment counter `name` for the given label set."""
    _COUNTERS[_counter_key(name, labels)] += 1


def metrics_value(name: str, **labels: Any) -> int:
    """Current value of a counter; 0 if it was never incremented."""
    return _COUNTERS[_counter_key(name, labels)]


def measure_latency(operation: str) -> Callable[[F], F]:
    """
    Log `latency_ms` for every call of the decorated function.

    Works for both coroutine functions and plain callables; the latency is
    logged even when the call raises.
    """

    def decorator(func: F) -> F:
        logger = get_logger(func.__module__)

        def _log(start: float) -> None:
            logger.info(
                "latency",
                operation=operation,
                latency_ms=round((time.perf_counter() - start) * 1000, 3),
            )

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    _log(start)

            return async_wrapper  # type: ignore[return-value]

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log(start)

        return sync_wrapper  # type: ignore[return-value]

    return decorator


def log_embedding_call(
    *,
    operation: str,
    model: str | None,
    latency_ms: float,
    dimension: int | None = None,
    error: str | None = None,
) -> None:
    """Record one embedding generator call (success or failure)."""
    metrics_counter("embedding_calls", operation=operation, status="error" if error else "ok")
    log = get_logger("carefinder.embedding")
    if error:
        log.warning("embedding_call_failed", operation=operation, model=model, latency_ms=latency_ms, error=error)
    else:
        log.info("embedding_call", operation=operation, model=model, latency_ms=latency_ms, dimension=dimension)
