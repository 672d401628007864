"""Correlation ID management for request and widget-session tracing."""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

# Shared by HTTP requests (middleware) and widget sessions
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)


@contextmanager
def bound_correlation_id(cid: str) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    Used by widget sessions so every log line of one page load carries
    the session ID.
    """
    token = set_correlation_id(cid)
    try:
        yield cid
    finally:
        reset_correlation_id(token)
