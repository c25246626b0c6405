"""
Custom domain exceptions for the account security module.

Services raise these internally and either convert them to structured results
at their public boundary (password flows) or let the application's centralized
exception handlers in main.py turn them into HTTP responses.

Every exception carries a correlation ID for error reporting.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


class AuthenticationException(DomainException):
    """Raised when a credential check fails."""

    pass


# Account security specific exceptions


class UserNotFoundException(NotFoundException):
    """User not found."""

    def __init__(self, message: str = "Usuario no encontrado"):
        super().__init__(message)


class InvalidCurrentPasswordException(AuthenticationException):
    """The supplied current password does not match the stored hash."""

    def __init__(self, message: str = "Contraseña actual incorrecta"):
        super().__init__(message)


class PasswordPolicyException(ValidationException):
    """New password rejected by the password policy."""


class InvalidResetTokenException(ValidationException):
    """Password reset token is unknown, already used or expired."""

    def __init__(self, message: str = "Token inválido o expirado"):
        super().__init__(message)
