"""
Signature Functions
===================
Canonical string construction and HMAC-SHA256 signatures for request authentication.
"""

import base64
import hashlib
import hmac
import time
import secrets

from .models import Credential

SIGNATURE_ALGORITHM = "sha256"


def hash_body(body: bytes) -> str:
    """
    Compute the body digest contribution of the canonical string.

    An empty body contributes the empty string; the hash step is skipped
    rather than hashing zero bytes. Signer and verifier both rely on this.

    Args:
        body: Raw request body bytes

    Returns:
        Base64-encoded SHA-256 hash, or "" for an empty body
    """
    if not body:
        return ""
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def build_canonical_string(
    app_id: str,
    method: str,
    uri: str,
    timestamp: int,
    nonce: str,
    body_hash: str,
) -> str:
    """
    Concatenate the signed fields, in order, with no separators:
    appId, METHOD, uri (lowercased), timestamp, nonce, body digest.
    """
    return f"{app_id}{method.upper()}{uri.lower()}{timestamp}{nonce}{body_hash}"


def compute_signature(
    credential: Credential,
    method: str,
    uri: str,
    timestamp: int,
    nonce: str,
    body: bytes = b"",
) -> str:
    """
    Compute the HMAC-SHA256 signature of a request.

    The signature covers:
    - Application ID
    - HTTP method
    - Absolute request URI
    - Timestamp (Unix epoch seconds)
    - Unique nonce
    - SHA-256 hash of request body (when there is one)

    Args:
        credential: Application ID and shared secret
        method: HTTP method (GET, POST, etc.)
        uri: Absolute request URI (e.g., https://api.example.com/v1/items)
        timestamp: Unix timestamp in seconds
        nonce: Unique request identifier
        body: Raw request body

    Returns:
        Base64-encoded HMAC-SHA256 signature
    """
    canonical = build_canonical_string(
        credential.app_id, method, uri, timestamp, nonce, hash_body(body)
    )
    digest = hmac.new(
        credential.secret_key,
        canonical.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def signatures_match(expected: str, provided: str) -> bool:
    """
    Compare two base64 signatures case-insensitively in constant time.

    Case-insensitive comparison is kept for compatibility with existing
    clients of this scheme.
    """
    try:
        return hmac.compare_digest(
            expected.lower().encode("ascii"),
            provided.lower().encode("ascii"),
        )
    except UnicodeEncodeError:
        return False


def generate_nonce() -> str:
    """Generate a unique nonce (128 random bits) for request signing."""
    return secrets.token_hex(16)


def current_timestamp() -> int:
    """Seconds since the Unix epoch, UTC."""
    return int(time.time())
