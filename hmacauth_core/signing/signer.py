"""
Client Signer
=============
Builds outgoing authorization tokens.
"""

from typing import Callable, Dict, Optional

from ..config import DEFAULT_SCHEME, HmacAuthConfig
from ..exceptions import ConfigurationError
from .models import Credential
from .signature import compute_signature, current_timestamp, generate_nonce
from .token import build_authorization_header, format_token


class ClientSigner:
    """
    Signs outgoing requests for one application.

    Usage:
        signer = ClientSigner("app1", b"secret")
        headers = signer.sign_headers("POST", "https://api.example.com/items", body)
    """

    def __init__(
        self,
        app_id: str,
        secret_key: bytes,
        scheme: str = DEFAULT_SCHEME,
        clock: Callable[[], int] = current_timestamp,
        nonce_factory: Callable[[], str] = generate_nonce,
    ):
        if not app_id or ":" in app_id:
            raise ConfigurationError("app_id must be non-empty and must not contain ':'")
        if not secret_key:
            raise ConfigurationError("secret key is not configured")
        self.credential = Credential(app_id=app_id, secret_key=secret_key)
        self.scheme = scheme
        self.clock = clock
        self.nonce_factory = nonce_factory

    @classmethod
    def from_config(cls, app_id: str, config: HmacAuthConfig, **kwargs) -> "ClientSigner":
        return cls(app_id, config.secret_key, scheme=config.scheme, **kwargs)

    @property
    def app_id(self) -> str:
        return self.credential.app_id

    def create_token(
        self,
        method: str,
        uri: str,
        body: Optional[bytes] = b"",
        timestamp: Optional[int] = None,
        nonce: Optional[str] = None,
    ) -> str:
        """
        Build the ``appId:signature:nonce:timestamp`` token for a request.

        Args:
            method: HTTP method
            uri: Absolute request URI, exactly as it will be sent
            body: Raw request body (None or b"" for no body)
            timestamp: Override the current time (Unix seconds)
            nonce: Override the generated nonce
        """
        timestamp = self.clock() if timestamp is None else timestamp
        nonce = nonce or self.nonce_factory()
        signature = compute_signature(
            self.credential, method, uri, timestamp, nonce, body or b""
        )
        return format_token(self.app_id, signature, nonce, timestamp)

    def authorization_header(self, method: str, uri: str, body: Optional[bytes] = b"", **kwargs) -> str:
        """Full ``Authorization`` header value including the scheme."""
        return build_authorization_header(
            self.scheme, self.create_token(method, uri, body, **kwargs)
        )

    def sign_headers(self, method: str, uri: str, body: Optional[bytes] = b"", **kwargs) -> Dict[str, str]:
        """Headers to include in a signed request."""
        return {"Authorization": self.authorization_header(method, uri, body, **kwargs)}
