# oil_monitor/api/auth.py

"""Bearer-token check against the shared cron secret."""

import secrets
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthResult:
    """Whether a request may proceed, and why not if it may not."""

    authorized: bool
    message: str | None = None


def require_bearer_auth(
    authorization: str | None, secret: str,
) -> AuthResult:
    """Validate an ``Authorization: Bearer <token>`` header value."""
    if not secret:
        return AuthResult(False, "CRON_SECRET_TOKEN not configured")
    if not authorization:
        return AuthResult(False, "Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not secrets.compare_digest(
        token.encode(), secret.encode(),
    ):
        return AuthResult(False, "Invalid token")

    return AuthResult(True)
