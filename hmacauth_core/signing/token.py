"""
Authorization Token
===================
Functions for building and parsing the ``Authorization`` header value.

Wire format: ``<Scheme> <appId>:<signatureBase64>:<nonce>:<timestampSeconds>``
"""

import re
from typing import Optional

from ..exceptions import MalformedToken, MissingCredentials
from .models import AuthorizationToken

TOKEN_SEPARATOR = ":"
TOKEN_FIELD_COUNT = 4

# Canonical ASCII decimal, so the declared text is exactly what gets signed
TIMESTAMP_PATTERN = re.compile(r"-?(0|[1-9][0-9]*)")


def format_token(app_id: str, signature: str, nonce: str, timestamp: int) -> str:
    """Serialize token fields as ``appId:signature:nonce:timestamp``."""
    return TOKEN_SEPARATOR.join([app_id, signature, nonce, str(timestamp)])


def build_authorization_header(scheme: str, token: str) -> str:
    """Prefix a serialized token with its scheme."""
    return f"{scheme} {token}"


def parse_token(parameter: str) -> AuthorizationToken:
    """
    Parse the header parameter into its four fields.

    Raises:
        MalformedToken: If there are not exactly four fields or the
            timestamp is not an integer
    """
    fields = parameter.split(TOKEN_SEPARATOR)
    if len(fields) != TOKEN_FIELD_COUNT:
        raise MalformedToken(f"expected {TOKEN_FIELD_COUNT} fields, got {len(fields)}")

    app_id, signature, nonce, timestamp = fields
    if not TIMESTAMP_PATTERN.fullmatch(timestamp):
        raise MalformedToken("timestamp is not an integer", app_id=app_id)
    timestamp_value = int(timestamp)

    return AuthorizationToken(
        app_id=app_id,
        signature=signature,
        nonce=nonce,
        timestamp=timestamp_value,
    )


def parse_authorization_header(header: Optional[str], scheme: str) -> AuthorizationToken:
    """
    Parse an ``Authorization`` header for the given scheme.

    Args:
        header: Raw header value, or None if absent
        scheme: Expected scheme name (compared case-insensitively)

    Returns:
        Parsed AuthorizationToken

    Raises:
        MissingCredentials: Header absent, empty, or for another scheme
        MalformedToken: Token parameter has the wrong shape
    """
    if not header or not header.strip():
        raise MissingCredentials("no authorization header")

    parts = header.strip().split(None, 1)
    if parts[0].lower() != scheme.lower():
        raise MissingCredentials("authorization scheme does not match")
    if len(parts) < 2:
        raise MalformedToken("authorization parameter is empty")

    return parse_token(parts[1].strip())
