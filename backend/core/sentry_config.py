"""
Sentry SDK configuration with privacy-compliant settings.

Security events carry usernames, IP addresses and occasionally passwords in
request bodies. Everything except the numeric user ID is scrubbed before an
event leaves the process.
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

FILTERED = "[Filtered]"

SENSITIVE_BODY_FIELDS = frozenset(
    {
        "password",
        "current_password",
        "new_password",
        "token",
    }
)

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-forwarded-for"})


def _scrub_mapping(data: dict[str, Any], keys: frozenset[str]) -> None:
    """Replace values of sensitive keys (case-insensitive) in place."""
    for key in list(data.keys()):
        if key.lower() in keys:
            data[key] = FILTERED


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub PII before sending to Sentry.

    - Keep only user.id
    - Drop cookies
    - Filter credential headers and password fields in request bodies
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"  # Anonymized by Sentry

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict):
            _scrub_mapping(headers, SENSITIVE_HEADERS)
        body = request.get("data")
        if isinstance(body, dict):
            _scrub_mapping(body, SENSITIVE_BODY_FIELDS)

    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Sample rate per request.

    Admin security endpoints are traced at a higher rate than the rest.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    asgi_scope = sampling_context.get("asgi_scope", {})
    path = asgi_scope.get("path", "")

    if path in ["/health", "/api/health"]:
        return 0.0

    if path.startswith("/admin/security"):
        return 0.5

    return 0.2


def init_sentry() -> bool:
    """
    Initialize Sentry SDK with FastAPI, SQLAlchemy and Loguru integrations.

    Sentry stays disabled when SENTRY_DSN is not set.

    Returns:
        True if Sentry was initialized.
    """
    dsn = os.getenv("SENTRY_DSN")

    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[
            KeyboardInterrupt,
            SystemExit,
        ],
    )
    return True
