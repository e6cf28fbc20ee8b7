"""
Access gate for the chat endpoint.

A request may proceed when it brings its own upstream credentials or when
it carries the server's shared access password.
"""

from dataclasses import dataclass
from typing import Optional

PASSWORD_HEADER = "X-Access-Password"

NO_SERVER_PASSWORD = "server has no configured password; supply your own credentials."
PASSWORD_REQUIRED = "password or credentials required."
INCORRECT_PASSWORD = "incorrect password."


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


def authorize(
    supplied_password: Optional[str],
    configured_password: Optional[str],
    has_credential_override: bool,
) -> AccessDecision:
    """
    Decide whether a chat request may reach an upstream provider.

    Args:
        supplied_password: Password sent by the caller, if any
        configured_password: Shared password configured on the server
        has_credential_override: Caller sent credentials with a non-empty API key

    Returns:
        AccessDecision with a human readable reason when denied
    """
    if has_credential_override:
        return AccessDecision.allow()

    if not configured_password:
        return AccessDecision.deny(NO_SERVER_PASSWORD)

    if not supplied_password:
        return AccessDecision.deny(PASSWORD_REQUIRED)

    if supplied_password == configured_password:
        return AccessDecision.allow()

    return AccessDecision.deny(INCORRECT_PASSWORD)
