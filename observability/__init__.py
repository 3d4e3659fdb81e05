"""Logging and tracing infrastructure.

setup_logging:
    Console/file logging with run ID propagation (observability.logging).

setup_tracing / trace_operation:
    Optional Logfire spans around relay stages (observability.tracing).

Enable tracing via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional
"""

from observability.logging import clear_context, set_run_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
