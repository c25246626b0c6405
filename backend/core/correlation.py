"""
Correlation ID generation and context management.

Every request (and every scheduled job run) gets a short ID that is attached
to log records and to domain exceptions, so an operator can match a user's
error report against the security log.
"""

import uuid
from contextvars import ContextVar

# Context variable for request-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Returns:
        8-character hexadecimal string (e.g. "abc123de").
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the current context's correlation ID, or "" if none is set."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current context."""
    correlation_id_var.set(correlation_id)


def ensure_correlation_id() -> str:
    """
    Return the current correlation ID, generating and binding one if unset.

    Used by background jobs that run outside a request.
    """
    current = correlation_id_var.get()
    if current:
        return current
    new_id = generate_correlation_id()
    correlation_id_var.set(new_id)
    return new_id
