"""Models package - settings, policy, Pydantic schemas and domain exceptions."""

from .security_policy import DEFAULT_POLICY, SecurityPolicy

__all__ = [
    "DEFAULT_POLICY",
    "SecurityPolicy",
]
