"""Utility modules."""

from thread_matcher.utils.logger import get_logger, log_context
from thread_matcher.utils.tracing import get_tracer, init_tracing, shutdown_tracing

__all__ = [
    "get_logger",
    "log_context",
    "get_tracer",
    "init_tracing",
    "shutdown_tracing",
]
