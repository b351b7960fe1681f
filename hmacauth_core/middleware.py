"""
HMAC Authentication Middleware
==============================
ASGI middleware that authenticates signed requests.

Usage:
    from hmacauth_core import HmacAuthConfig, HmacAuthMiddleware

    config = HmacAuthConfig.from_env()
    app.add_middleware(HmacAuthMiddleware, config=config)

    @app.get("/api/items")
    async def list_items(app_id: str = Depends(require_app_id)):
        ...
"""

from typing import Optional
from urllib.parse import quote

from fastapi import HTTPException, Request
from starlette.authentication import AuthCredentials, SimpleUser
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog

from .config import HmacAuthConfig
from .signing.models import RequestView
from .signing.replay import ReplayGuard
from .signing.verifier import Authenticator, HmacVerifier

logger = structlog.get_logger(__name__)

STATE_APP_ID = "hmac_app_id"
WS_POLICY_VIOLATION = 1008

# Identical for every rejection reason
UNAUTHORIZED_BODY = {
    "error": "unauthorized",
    "message": "Authentication required",
}


class ChallengeResponder:
    """
    Wraps an ASGI ``send`` callable and adds ``WWW-Authenticate: <scheme>``
    to any 401 response passing through it. Other statuses are untouched.
    """

    def __init__(self, send: Send, scheme: str):
        self.send = send
        self.scheme = scheme

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start" and message["status"] == 401:
            headers = MutableHeaders(scope=message)
            headers.append("WWW-Authenticate", self.scheme)
        await self.send(message)


class HmacAuthMiddleware:
    """
    Authenticates every HTTP request and websocket handshake with the
    configured HMAC scheme.

    Rejected requests get a generic 401 with the scheme challenge; the
    internal reason is only logged. Accepted requests reach the app with
    the appId in ``request.state.hmac_app_id`` and ``request.user``.
    The request body is buffered and replayed so handlers can still read it.
    Rejected websocket handshakes are closed with code 1008.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: HmacAuthConfig,
        authenticator: Optional[Authenticator] = None,
        replay_guard: Optional[ReplayGuard] = None,
        base_url: Optional[str] = None,
    ):
        """
        Args:
            app: Downstream ASGI application
            config: Scheme, secret and window settings
            authenticator: Custom authenticator (defaults to HmacVerifier)
            replay_guard: Nonce cache for the default verifier
            base_url: Public scheme://host to sign against when behind a proxy
        """
        self.app = app
        self.config = config
        self.authenticator = authenticator or HmacVerifier(config, replay_guard=replay_guard)
        self.base_url = base_url.rstrip("/") if base_url else None

        logger.info(
            "hmac_auth_configured",
            scheme=config.scheme,
            window_seconds=config.window_seconds,
            public_paths=sorted(config.public_paths),
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "websocket":
            await self._authenticate_websocket(scope, receive, send)
            return
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        send = ChallengeResponder(send, self.config.scheme)

        # Public paths and CORS preflight skip authentication
        if self._is_public_path(scope["path"]) or scope["method"] == "OPTIONS":
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        if body is None:
            logger.info("hmac_auth_client_disconnected", path=scope["path"])
            return

        request = RequestView(
            method=scope["method"],
            uri=self.request_uri(scope),
            headers=Headers(scope=scope),
            body=body,
        )
        result = self.authenticator.authenticate(request)

        if not result.is_authenticated:
            response = JSONResponse(status_code=401, content=UNAUTHORIZED_BODY)
            await response(scope, receive, send)
            return

        self._attach_identity(scope, result.app_id)
        await self.app(scope, replay_body(body, receive), send)

    async def _authenticate_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        """
        Authenticate the websocket handshake as a bodyless GET.

        Rejected handshakes are closed before accept, which servers turn
        into an HTTP 403.
        """
        if not self._is_public_path(scope["path"]):
            request = RequestView(
                method="GET",
                uri=self.request_uri(scope),
                headers=Headers(scope=scope),
            )
            result = self.authenticator.authenticate(request)
            if not result.is_authenticated:
                await send({"type": "websocket.close", "code": WS_POLICY_VIOLATION})
                return
            self._attach_identity(scope, result.app_id)

        await self.app(scope, receive, send)

    def _attach_identity(self, scope: Scope, app_id: str) -> None:
        scope.setdefault("state", {})[STATE_APP_ID] = app_id
        scope["user"] = SimpleUser(app_id)
        scope["auth"] = AuthCredentials(["authenticated"])

    def _is_public_path(self, path: str) -> bool:
        """Check if path is public (bypasses auth)."""
        return path in self.config.public_paths or path.rstrip("/") in self.config.public_paths

    def request_uri(self, scope: Scope) -> str:
        """
        Rebuild the absolute URI the client signed.

        Uses the raw (still percent-encoded) path so encoding matches the
        client's view of the URL.
        """
        if self.base_url:
            base = self.base_url
        else:
            host = Headers(scope=scope).get("host")
            if not host:
                server_host, server_port = scope.get("server") or ("localhost", None)
                host = f"{server_host}:{server_port}" if server_port else server_host
            base = f"{scope.get('scheme', 'http')}://{host}"

        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1")
        else:
            path = quote(scope.get("root_path", "") + scope["path"])

        query = scope.get("query_string", b"")
        if query:
            return f"{base}{path}?{query.decode('latin-1')}"
        return f"{base}{path}"


async def read_body(receive: Receive) -> Optional[bytes]:
    """Read the full request body. Returns None if the client disconnected."""
    chunks = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            return None
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay_body(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields the buffered body once, then defers to ``receive``."""
    sent = False

    async def receive_replayed() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return receive_replayed


def require_app_id(request: Request) -> str:
    """
    FastAPI dependency returning the authenticated appId.

    Usage:
        @app.post("/api/items")
        async def create_item(app_id: str = Depends(require_app_id)):
            ...
    """
    app_id = getattr(request.state, STATE_APP_ID, None)
    if not app_id:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_BODY)
    return app_id
