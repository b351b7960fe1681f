"""
httpx Authentication
====================
Signs every outgoing httpx request with the HMAC scheme.
"""

from typing import Generator

import httpx

from ..signing.signer import ClientSigner


class HmacAuth(httpx.Auth):
    """
    httpx auth flow that adds the ``Authorization`` header.

    Works with both ``httpx.Client`` and ``httpx.AsyncClient``. The header
    is computed per send, so retries and redirects get a fresh nonce.

    Usage:
        auth = HmacAuth(ClientSigner("app1", secret))
        httpx.get("https://api.example.com/items", auth=auth)
    """

    requires_request_body = True

    def __init__(self, signer: ClientSigner):
        self.signer = signer

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.signer.authorization_header(
            request.method,
            str(request.url),
            request.content,
        )
        yield request
