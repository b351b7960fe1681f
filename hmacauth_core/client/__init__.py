from .auth import HmacAuth
from .client import SignedClient
from .exceptions import (
    ClientError,
    ServiceUnavailableError,
    ServiceTimeoutError,
    AuthenticationError,
    NotFoundError,
)

__all__ = [
    "HmacAuth",
    "SignedClient",
    "ClientError",
    "ServiceUnavailableError",
    "ServiceTimeoutError",
    "AuthenticationError",
    "NotFoundError",
]
