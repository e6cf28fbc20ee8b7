"""
Chat gateway error types.

Every error carries the HTTP status the gateway answers with when it
escapes the dispatcher.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""

    status_code = 500

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        super().__init__(message)


class ClientError(GatewayError):
    """Raised when the inbound chat request is malformed."""

    status_code = 400


class AuthError(GatewayError):
    """Raised when the access gate denies a request."""

    status_code = 401


class ConfigError(GatewayError):
    """Raised when no API key can be resolved for the upstream call."""

    status_code = 500


class UpstreamError(GatewayError):
    """Raised when the upstream answers with a non-success status."""

    status_code = 500

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        upstream_status: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message, provider)
        self.upstream_status = upstream_status
        self.body = body


class UpstreamConnectionError(UpstreamError):
    """Raised when the upstream cannot be reached."""

    status_code = 502


class StreamError(GatewayError):
    """Raised when the upstream connection fails after streaming began."""
    pass
