"""Tests for domain exceptions: correlation IDs and default messages."""

import pytest

from core.correlation import set_correlation_id
from models.exceptions import (
    AuthenticationException,
    DomainException,
    InvalidCurrentPasswordException,
    InvalidResetTokenException,
    NotFoundException,
    PasswordPolicyException,
    UserNotFoundException,
    ValidationException,
)


class TestDomainExceptionCorrelationId:
    """Tests for correlation ID in DomainException."""

    def setup_method(self) -> None:
        """Reset correlation context before each test."""
        set_correlation_id("")

    def test_uses_context_correlation_id(self) -> None:
        """Exception should use correlation ID from context if available."""
        set_correlation_id("context1")

        exc = DomainException("Test error")
        assert exc.correlation_id == "context1"

    def test_generates_id_when_no_context(self) -> None:
        """Exception should generate new ID if no context available."""
        exc = DomainException("Test error")
        assert len(exc.correlation_id) == 8
        assert all(c in "0123456789abcdef" for c in exc.correlation_id)

    def test_explicit_overrides_context(self) -> None:
        """Explicit correlation ID should override context."""
        set_correlation_id("context_id")

        exc = DomainException("Test error", correlation_id="override")
        assert exc.correlation_id == "override"

    def test_without_context_ids_are_unique(self) -> None:
        """Exceptions without context should get unique IDs."""
        assert (
            DomainException("Error 1").correlation_id
            != DomainException("Error 2").correlation_id
        )

    @pytest.mark.parametrize(
        "exception_class",
        [NotFoundException, ValidationException, AuthenticationException],
    )
    def test_child_exceptions_use_context_id(
        self, exception_class: type[DomainException]
    ) -> None:
        """All child exceptions should use context correlation ID."""
        set_correlation_id("inherited")

        exc = exception_class("Test error")
        assert exc.correlation_id == "inherited"
        assert str(exc) == "Test error"


class TestAccountSecurityExceptions:
    """Tests for the account security exception hierarchy."""

    @pytest.mark.parametrize(
        "exception_class,parent,message",
        [
            (UserNotFoundException, NotFoundException, "Usuario no encontrado"),
            (
                InvalidCurrentPasswordException,
                AuthenticationException,
                "Contraseña actual incorrecta",
            ),
            (
                InvalidResetTokenException,
                ValidationException,
                "Token inválido o expirado",
            ),
        ],
    )
    def test_default_messages(
        self,
        exception_class: type[DomainException],
        parent: type[DomainException],
        message: str,
    ) -> None:
        """Each exception carries its user-facing message and parent type."""
        exc = exception_class()
        assert isinstance(exc, parent)
        assert exc.message == message

    def test_password_policy_exception_is_validation_error(self) -> None:
        """Policy rejections are validation errors carrying the rule message."""
        exc = PasswordPolicyException("Debe contener al menos un número")
        assert isinstance(exc, ValidationException)
        assert exc.message == "Debe contener al menos un número"
