"""Observability helpers: structured logging and build context correlation."""

from scripture_index.observability.context import bind_index_context, get_index_context, index_context
from scripture_index.observability.logging import JsonFormatter, configure_logging


__all__ = [
    "JsonFormatter",
    "bind_index_context",
    "configure_logging",
    "get_index_context",
    "index_context",
]
