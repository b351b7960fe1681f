"""
Request Signing
===============
HMAC-SHA256 request signatures with nonce/timestamp replay protection.
"""

from .models import (
    AuthDecision,
    AuthorizationToken,
    AuthResult,
    Credential,
    RejectReason,
    RequestView,
)
from .signature import (
    build_canonical_string,
    compute_signature,
    current_timestamp,
    generate_nonce,
    hash_body,
    signatures_match,
    SIGNATURE_ALGORITHM,
)
from .token import (
    build_authorization_header,
    format_token,
    parse_authorization_header,
    parse_token,
)
from .replay import (
    InMemoryReplayGuard,
    RedisReplayGuard,
    ReplayGuard,
    is_within_window,
    make_replay_key,
)
from .verifier import Authenticator, HmacVerifier
from .signer import ClientSigner

__all__ = [
    # Models
    "AuthDecision",
    "AuthorizationToken",
    "AuthResult",
    "Credential",
    "RejectReason",
    "RequestView",
    # Signature
    "build_canonical_string",
    "compute_signature",
    "current_timestamp",
    "generate_nonce",
    "hash_body",
    "signatures_match",
    "SIGNATURE_ALGORITHM",
    # Token
    "build_authorization_header",
    "format_token",
    "parse_authorization_header",
    "parse_token",
    # Replay
    "InMemoryReplayGuard",
    "RedisReplayGuard",
    "ReplayGuard",
    "is_within_window",
    "make_replay_key",
    # Verifier / Signer
    "Authenticator",
    "HmacVerifier",
    "ClientSigner",
]
