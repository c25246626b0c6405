"""
Request utilities for extracting client information.

The security guard takes the client IP and user agent as plain strings;
these helpers pull them from a FastAPI request.
"""

from typing import Optional

from fastapi import Request

MAX_USER_AGENT_LENGTH = 500
MAX_IP_ADDRESS_LENGTH = 45

UNKNOWN_IP = "unknown"


def get_client_ip(request: Request) -> str:
    """
    Extract the client's IP address from the request.

    Uses the first entry of X-Forwarded-For (the original client), falling
    back to the connection's remote address. The result is cut to 45
    characters, the longest IPv6 text form.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address, or "unknown" if none is available
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip[:MAX_IP_ADDRESS_LENGTH]

    if request.client and request.client.host:
        return request.client.host[:MAX_IP_ADDRESS_LENGTH]

    return UNKNOWN_IP


def get_user_agent(request: Request) -> Optional[str]:
    """
    Extract the user agent string from the request.

    Truncates to 500 characters to fit the log columns.
    """
    user_agent = request.headers.get("User-Agent")
    if user_agent:
        return user_agent[:MAX_USER_AGENT_LENGTH]
    return None


def get_request_metadata(request: Request) -> dict:
    """
    Extract common metadata from a request.

    Returns:
        Dictionary with 'ip_address' and 'user_agent' keys
    """
    return {
        "ip_address": get_client_ip(request),
        "user_agent": get_user_agent(request),
    }
