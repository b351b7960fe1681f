from enum import Enum
from typing import Optional


class RejectReason(str, Enum):
    """Internal reasons for rejecting a request. Logged, never returned to callers."""
    MISSING_CREDENTIALS = "missing_credentials"
    MALFORMED_TOKEN = "malformed_token"
    REPLAY_OR_EXPIRED = "replay_or_expired"
    SIGNATURE_MISMATCH = "signature_mismatch"


class HmacAuthError(Exception):
    """Base exception for all HMAC authentication errors."""
    pass


class ConfigurationError(HmacAuthError):
    """Raised when the scheme or secret is missing or invalid. Fatal at startup."""
    pass


class AuthenticationFailed(HmacAuthError):
    """Raised when a single request fails authentication."""

    reason: RejectReason = RejectReason.MISSING_CREDENTIALS

    def __init__(self, message: str = "", app_id: Optional[str] = None):
        self.message = message or self.reason.value
        self.app_id = app_id
        super().__init__(f"{self.reason.value}: {self.message}")


class MissingCredentials(AuthenticationFailed):
    """No authorization header, or a different scheme."""
    reason = RejectReason.MISSING_CREDENTIALS


class MalformedToken(AuthenticationFailed):
    """Token parameter is not exactly four colon-separated fields."""
    reason = RejectReason.MALFORMED_TOKEN


class ReplayOrExpired(AuthenticationFailed):
    """Nonce already seen for this appId, or timestamp outside the window."""
    reason = RejectReason.REPLAY_OR_EXPIRED


class SignatureMismatch(AuthenticationFailed):
    """Recomputed signature differs from the declared one."""
    reason = RejectReason.SIGNATURE_MISMATCH
