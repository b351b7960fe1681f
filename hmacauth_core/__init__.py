"""
HMAC Auth Core Library
======================
Shared-secret request authentication for HTTP APIs: HMAC-SHA256 request
signatures with nonce/timestamp replay protection, for both the server
(ASGI middleware) and the client (httpx auth).
"""

__version__ = "0.1.0"

# Errors
from hmacauth_core.exceptions import (
    HmacAuthError,
    ConfigurationError,
    AuthenticationFailed,
    MissingCredentials,
    MalformedToken,
    ReplayOrExpired,
    SignatureMismatch,
    RejectReason,
)

# Configuration
from hmacauth_core.config import HmacAuthConfig, decode_secret

# Signing
from hmacauth_core.signing import (
    AuthDecision,
    AuthorizationToken,
    AuthResult,
    Credential,
    RequestView,
    compute_signature,
    hash_body,
    generate_nonce,
    parse_authorization_header,
    format_token,
    InMemoryReplayGuard,
    RedisReplayGuard,
    ReplayGuard,
    Authenticator,
    HmacVerifier,
    ClientSigner,
)

# Server integration
from hmacauth_core.middleware import (
    ChallengeResponder,
    HmacAuthMiddleware,
    require_app_id,
)

# Client integration
from hmacauth_core.client import HmacAuth, SignedClient

# Logging
from hmacauth_core.logging_config import setup_logging

__all__ = [
    "__version__",
    # Errors
    "HmacAuthError",
    "ConfigurationError",
    "AuthenticationFailed",
    "MissingCredentials",
    "MalformedToken",
    "ReplayOrExpired",
    "SignatureMismatch",
    "RejectReason",
    # Configuration
    "HmacAuthConfig",
    "decode_secret",
    # Signing
    "AuthDecision",
    "AuthorizationToken",
    "AuthResult",
    "Credential",
    "RequestView",
    "compute_signature",
    "hash_body",
    "generate_nonce",
    "parse_authorization_header",
    "format_token",
    "InMemoryReplayGuard",
    "RedisReplayGuard",
    "ReplayGuard",
    "Authenticator",
    "HmacVerifier",
    "ClientSigner",
    # Server
    "ChallengeResponder",
    "HmacAuthMiddleware",
    "require_app_id",
    # Client
    "HmacAuth",
    "SignedClient",
    # Logging
    "setup_logging",
]
