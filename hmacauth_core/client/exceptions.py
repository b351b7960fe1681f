"""
Client Errors
=============
Failures seen by ``SignedClient`` when calling an HMAC-protected API.
"""

from typing import Any, Optional

from ..exceptions import HmacAuthError


class ClientError(HmacAuthError):
    """A signed call did not produce a usable response."""

    def __init__(
        self,
        message: str,
        service: str = "api",
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message
        self.service = service
        self.status_code = status_code
        self.details = details
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{service}: {message}{status}")


class ServiceUnavailableError(ClientError):
    """Network failure or 5xx. Retried."""


class ServiceTimeoutError(ServiceUnavailableError):
    pass


class AuthenticationError(ClientError):
    """
    The server refused the signature (401) or the identity (403).

    ``challenge`` holds the scheme named in ``WWW-Authenticate``, if any.
    A challenge for a different scheme usually means the client and the
    server disagree on configuration rather than on the secret.
    """

    def __init__(self, message: str, challenge: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.challenge = challenge


class NotFoundError(ClientError):
    pass
