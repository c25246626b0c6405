"""
Password strength validation helper.

Rules are checked in a fixed order and the first failing rule is reported:
length, then uppercase, lowercase, digit and symbol.
"""

import re

from models.schemas import PasswordStrength, PasswordValidationResult
from models.security_policy import DEFAULT_POLICY, SecurityPolicy

# Length that earns the length point, independent of the configured minimum
STRONG_LENGTH = 8

_UPPERCASE = re.compile(r"[A-Z]")
_LOWERCASE = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")
_SPECIAL = re.compile(r"[^A-Za-z0-9]")

VALID_MESSAGE = "Contraseña válida"


def score_password(password: str) -> int:
    """
    Score a password from 0 to 5.

    One point each for length, uppercase, lowercase, digit and symbol.
    """
    score = 0
    if len(password) >= STRONG_LENGTH:
        score += 1
    if _UPPERCASE.search(password):
        score += 1
    if _LOWERCASE.search(password):
        score += 1
    if _DIGIT.search(password):
        score += 1
    if _SPECIAL.search(password):
        score += 1
    return score


def strength_for_score(score: int) -> PasswordStrength:
    """Map a 0-5 score to a strength bucket."""
    if score < 3:
        return PasswordStrength.WEAK
    if score < 5:
        return PasswordStrength.MEDIUM
    return PasswordStrength.STRONG


def validate_password(
    password: str,
    policy: SecurityPolicy = DEFAULT_POLICY,
) -> PasswordValidationResult:
    """
    Validate a password against the policy.

    Args:
        password: Candidate password
        policy: Security policy providing the minimum length

    Returns:
        PasswordValidationResult with the first failing rule's message
    """
    if len(password) < policy.min_password_length:
        return PasswordValidationResult(
            is_valid=False,
            message=(
                f"La contraseña debe tener al menos "
                f"{policy.min_password_length} caracteres"
            ),
            strength=PasswordStrength.WEAK,
        )

    strength = strength_for_score(score_password(password))

    character_rules = (
        (_UPPERCASE, "Debe contener al menos una letra mayúscula"),
        (_LOWERCASE, "Debe contener al menos una letra minúscula"),
        (_DIGIT, "Debe contener al menos un número"),
        (_SPECIAL, "Debe contener al menos un carácter especial"),
    )
    for pattern, message in character_rules:
        if not pattern.search(password):
            return PasswordValidationResult(
                is_valid=False, message=message, strength=strength
            )

    return PasswordValidationResult(
        is_valid=True, message=VALID_MESSAGE, strength=PasswordStrength.STRONG
    )
