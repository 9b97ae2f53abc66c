"""Observability helpers."""

from vibedash.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_ingestion,
    record_line_categories,
    record_parser_failure,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_ingestion",
    "record_line_categories",
    "record_parser_failure",
]
