"""
HMAC Auth Configuration
=======================
Immutable configuration for the verifier, middleware and client signer.
"""

import base64
import binascii
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .exceptions import ConfigurationError

DEFAULT_SCHEME = "hmacauth"
DEFAULT_WINDOW_SECONDS = 300  # 5 minutes

REPLAY_KEY_CONCATENATED = "concatenated"
REPLAY_KEY_STRUCTURED = "structured"
REPLAY_KEY_MODES = (REPLAY_KEY_CONCATENATED, REPLAY_KEY_STRUCTURED)

# Paths that bypass authentication (health checks, etc.)
DEFAULT_PUBLIC_PATHS: FrozenSet[str] = frozenset({"/health", "/ready", "/live"})


@dataclass(frozen=True)
class HmacAuthConfig:
    """
    Process-wide settings for the HMAC authentication scheme.

    Build it once at startup and pass it to ``HmacVerifier``,
    ``HmacAuthMiddleware`` or ``ClientSigner``. Invalid values raise
    ``ConfigurationError`` so the service never starts misconfigured.
    """

    secret_key: bytes = field(repr=False)
    scheme: str = DEFAULT_SCHEME

    # Maximum accepted age of a request, also the nonce retention time
    window_seconds: int = DEFAULT_WINDOW_SECONDS

    # None accepts client clocks running ahead by any amount
    max_future_skew_seconds: Optional[int] = None

    # "concatenated" keys the replay cache by appId + nonce, "structured" keeps them apart
    replay_key_mode: str = REPLAY_KEY_CONCATENATED

    public_paths: FrozenSet[str] = DEFAULT_PUBLIC_PATHS

    def __post_init__(self):
        if not self.scheme or not self.scheme.strip():
            raise ConfigurationError("authentication scheme is not configured")
        if any(ch.isspace() for ch in self.scheme):
            raise ConfigurationError("authentication scheme must be a single token")
        if not isinstance(self.secret_key, bytes):
            raise ConfigurationError("secret key must be bytes")
        if not self.secret_key:
            raise ConfigurationError("secret key is not configured")
        if self.window_seconds <= 0:
            raise ConfigurationError("window_seconds must be positive")
        if self.max_future_skew_seconds is not None and self.max_future_skew_seconds < 0:
            raise ConfigurationError("max_future_skew_seconds must not be negative")
        if self.replay_key_mode not in REPLAY_KEY_MODES:
            raise ConfigurationError(f"unknown replay_key_mode '{self.replay_key_mode}'")
        object.__setattr__(self, "public_paths", frozenset(self.public_paths))

    @classmethod
    def from_env(cls, prefix: str = "HMAC_AUTH_") -> "HmacAuthConfig":
        """
        Load configuration from environment variables.

        Variables (with the default prefix):
            HMAC_AUTH_SECRET: shared secret (required)
            HMAC_AUTH_SECRET_ENCODING: "raw" (UTF-8 bytes of the string) or "base64"
            HMAC_AUTH_SCHEME: authorization scheme name
            HMAC_AUTH_WINDOW_SECONDS: replay window in seconds
            HMAC_AUTH_MAX_FUTURE_SKEW_SECONDS: bound on client clocks running ahead
            HMAC_AUTH_REPLAY_KEY_MODE: "concatenated" or "structured"
            HMAC_AUTH_PUBLIC_PATHS: comma separated paths that skip authentication
        """
        secret = os.getenv(f"{prefix}SECRET", "")
        encoding = os.getenv(f"{prefix}SECRET_ENCODING", "raw").lower()
        public_paths = os.getenv(f"{prefix}PUBLIC_PATHS")
        future_skew = os.getenv(f"{prefix}MAX_FUTURE_SKEW_SECONDS")

        return cls(
            secret_key=decode_secret(secret, encoding),
            scheme=os.getenv(f"{prefix}SCHEME", DEFAULT_SCHEME),
            window_seconds=_int_setting(
                f"{prefix}WINDOW_SECONDS",
                os.getenv(f"{prefix}WINDOW_SECONDS", str(DEFAULT_WINDOW_SECONDS)),
            ),
            max_future_skew_seconds=(
                _int_setting(f"{prefix}MAX_FUTURE_SKEW_SECONDS", future_skew)
                if future_skew else None
            ),
            replay_key_mode=os.getenv(f"{prefix}REPLAY_KEY_MODE", REPLAY_KEY_CONCATENATED),
            public_paths=(
                frozenset(p.strip() for p in public_paths.split(",") if p.strip())
                if public_paths is not None else DEFAULT_PUBLIC_PATHS
            ),
        )


def decode_secret(secret: str, encoding: str = "raw") -> bytes:
    """
    Turn a configured secret string into key bytes.

    "raw" uses the UTF-8 bytes of the string as-is, even when it looks like
    base64. "base64" decodes it first.
    """
    if not secret:
        raise ConfigurationError("secret key is not configured")
    if encoding == "raw":
        return secret.encode("utf-8")
    if encoding == "base64":
        try:
            return base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"secret key is not valid base64: {e}") from e
    raise ConfigurationError(f"unknown secret encoding '{encoding}'")


def _int_setting(name: str, value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer") from e
