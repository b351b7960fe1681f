"""
HMAC Verifier
=============
Server-side verification of signed requests.
"""

from typing import Callable, Optional, Protocol

import structlog

from ..config import HmacAuthConfig
from ..exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    ReplayOrExpired,
    SignatureMismatch,
)
from .models import AuthResult, Credential, RequestView
from .replay import InMemoryReplayGuard, ReplayGuard
from .signature import compute_signature, current_timestamp, signatures_match
from .token import parse_authorization_header

logger = structlog.get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"


class Authenticator(Protocol):
    """Pluggable request authenticator used by the middleware."""

    def authenticate(self, request: RequestView) -> AuthResult:
        ...


class HmacVerifier:
    """
    Verifies the HMAC authorization token of an inbound request.

    Steps, in order:
    1. Parse ``Authorization: <scheme> appId:signature:nonce:timestamp``
    2. Reject timestamps further ahead than ``max_future_skew_seconds``
    3. Admit the (appId, nonce) pair through the replay guard
    4. Recompute the signature over method, URI, timestamp, nonce and body

    The nonce is consumed in step 3 even when step 4 fails, so a client
    cannot try further signatures by retrying with the same nonce.
    """

    def __init__(
        self,
        config: HmacAuthConfig,
        replay_guard: Optional[ReplayGuard] = None,
        clock: Callable[[], int] = current_timestamp,
    ):
        self.config = config
        if replay_guard is None:
            replay_guard = InMemoryReplayGuard.from_config(config)
        else:
            guard_mode = getattr(replay_guard, "key_mode", config.replay_key_mode)
            if guard_mode != config.replay_key_mode:
                raise ConfigurationError(
                    f"replay guard key mode '{guard_mode}' does not match '{config.replay_key_mode}'"
                )
        self.replay_guard = replay_guard
        self.clock = clock

    def verify(self, request: RequestView) -> str:
        """
        Verify a request and return the authenticated appId.

        Raises:
            MissingCredentials: No token for the configured scheme
            MalformedToken: Token does not have four fields
            ReplayOrExpired: Nonce reused or timestamp outside the window
            SignatureMismatch: Signature does not match the request
        """
        token = parse_authorization_header(
            request.get_header(AUTHORIZATION_HEADER), self.config.scheme
        )

        now = self.clock()

        # Bound on client clocks running ahead, whichever guard is in use
        future_skew = self.config.max_future_skew_seconds
        if future_skew is not None and token.timestamp - now > future_skew:
            raise ReplayOrExpired("timestamp too far in the future", app_id=token.app_id)

        admitted = self.replay_guard.admit(
            token.app_id,
            token.nonce,
            token.timestamp,
            now,
            self.config.window_seconds,
        )
        if not admitted:
            raise ReplayOrExpired(app_id=token.app_id)

        expected = compute_signature(
            Credential(app_id=token.app_id, secret_key=self.config.secret_key),
            request.method,
            request.uri,
            token.timestamp,
            token.nonce,
            request.body,
        )
        if not signatures_match(expected, token.signature):
            raise SignatureMismatch(app_id=token.app_id)

        return token.app_id

    def authenticate(self, request: RequestView) -> AuthResult:
        """Verify a request, reporting failures as a rejected AuthResult."""
        try:
            app_id = self.verify(request)
        except AuthenticationFailed as e:
            logger.warning(
                "hmac_auth_rejected",
                reason=e.reason.value,
                app_id=e.app_id,
                method=request.method,
                uri=request.uri,
            )
            return AuthResult.rejected(e.reason, app_id=e.app_id)

        logger.debug("hmac_auth_passed", app_id=app_id, method=request.method)
        return AuthResult.authenticated(app_id)
