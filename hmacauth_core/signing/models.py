"""
Signing Models
==============
Data models and enums for HMAC request authentication.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from ..exceptions import RejectReason


class AuthDecision(str, Enum):
    """Verifier outcome."""
    AUTHENTICATED = "AUTHENTICATED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class Credential:
    """Shared-secret credential for one application."""
    app_id: str
    secret_key: bytes = field(repr=False)


@dataclass(frozen=True)
class AuthorizationToken:
    """Parsed `appId:signature:nonce:timestamp` token."""
    app_id: str
    signature: str
    nonce: str
    timestamp: int


@dataclass
class RequestView:
    """
    The parts of an inbound HTTP request the verifier needs.

    The surrounding framework fills this in; ``uri`` must be the absolute
    request URI exactly as the client signed it.
    """
    method: str
    uri: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        value = self.headers.get(name)
        if value is not None:
            return value
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


@dataclass
class AuthResult:
    """Result of an authentication check."""
    decision: AuthDecision
    app_id: Optional[str] = None
    reason_code: Optional[RejectReason] = None

    @property
    def is_authenticated(self) -> bool:
        return self.decision == AuthDecision.AUTHENTICATED

    @classmethod
    def authenticated(cls, app_id: str) -> "AuthResult":
        return cls(decision=AuthDecision.AUTHENTICATED, app_id=app_id)

    @classmethod
    def rejected(cls, reason: RejectReason, app_id: Optional[str] = None) -> "AuthResult":
        return cls(decision=AuthDecision.REJECTED, app_id=app_id, reason_code=reason)
