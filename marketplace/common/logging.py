import logging
from typing import Literal

from opentelemetry import trace

from .config import ServiceSettings


_TRACE_PLACEHOLDER = "-"
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | trace_id=%(trace_id)s span_id=%(span_id)s | %(message)s"


def _format_trace_id(value: int, length: int) -> str:
    return format(value, f"0{length}x")


class TraceContextFilter(logging.Filter):
    """Attach the active OpenTelemetry trace and span ids to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = _format_trace_id(span_context.trace_id, 32)
            record.span_id = _format_trace_id(span_context.span_id, 16)
        else:
            record.trace_id = _TRACE_PLACEHOLDER
            record.span_id = _TRACE_PLACEHOLDER
        return True


def configure_logging(settings: ServiceSettings) -> None:
    """Configure root logging level and format."""

    logging_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = settings.log_level
    logging.basicConfig(level=logging_level, format=_LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging_level)
    context_filter = next(
        (f for f in root_logger.filters if isinstance(f, TraceContextFilter)),
        None,
    )
    if context_filter is None:
        context_filter = TraceContextFilter()
        root_logger.addFilter(context_filter)
    for handler in root_logger.handlers:
        if not any(isinstance(f, TraceContextFilter) for f in handler.filters):
            handler.addFilter(context_filter)
