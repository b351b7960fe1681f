"""
Signed Client
=============
Async JSON client for APIs behind ``HmacAuthMiddleware``.

Usage:
    signer = ClientSigner.from_config("app1", config)
    async with SignedClient("https://api.example.com", signer) as client:
        item = await client.get("/api/items/2", response_model=Item)
"""

from typing import Any, Dict, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..signing.signer import ClientSigner
from .auth import HmacAuth
from .exceptions import (
    AuthenticationError,
    ClientError,
    NotFoundError,
    ServiceTimeoutError,
    ServiceUnavailableError,
)

T = TypeVar("T", bound=BaseModel)

logger = structlog.get_logger(__name__)


def challenge_scheme(response: httpx.Response) -> Optional[str]:
    """Scheme token of the ``WWW-Authenticate`` header, or None."""
    value = response.headers.get("WWW-Authenticate", "").strip()
    return value.split(None, 1)[0] if value else None


class SignedClient:
    """
    Calls an HMAC-protected API, one fresh signature per attempt.

    Network failures and 5xx responses are retried up to ``max_attempts``
    times with exponential backoff. Authentication failures are never
    retried: a rejected signature stays rejected.
    """

    def __init__(
        self,
        base_url: str,
        signer: ClientSigner,
        service_name: str = "api",
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.signer = signer
        self.service_name = service_name
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            auth=HmacAuth(signer),
            headers={
                "User-Agent": f"hmacauth-client/{signer.app_id}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "SignedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        response_model: Optional[Type[T]] = None,
        **kwargs,
    ) -> Union[T, Dict[str, Any], None]:
        """
        Send a signed request and decode its JSON body.

        Returns None for 204 and empty bodies, a ``response_model``
        instance when one is given, otherwise the decoded JSON.

        Raises:
            AuthenticationError: 401/403
            NotFoundError: 404
            ServiceUnavailableError: network failure or 5xx after all attempts
            ClientError: any other failure, including undecodable bodies
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ServiceUnavailableError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._send(method, path, **kwargs)
        return self._decode(response, response_model)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ServiceTimeoutError("request timed out", service=self.service_name) from e
        except httpx.TransportError as e:
            raise ServiceUnavailableError(f"transport failure: {e}", service=self.service_name) from e
        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        context = {"service": self.service_name, "status_code": status}

        if status in (401, 403):
            challenge = challenge_scheme(response)
            if challenge and challenge.lower() != self.signer.scheme.lower():
                logger.warning(
                    "hmac_client_scheme_mismatch",
                    service=self.service_name,
                    challenge=challenge,
                    scheme=self.signer.scheme,
                )
            message = "signature rejected" if status == 401 else "forbidden"
            raise AuthenticationError(message, challenge=challenge, **context)
        if status == 404:
            raise NotFoundError("resource not found", **context)
        if status >= 500:
            raise ServiceUnavailableError("server error", details=response.text, **context)
        raise ClientError("request failed", details=response.text, **context)

    def _decode(
        self, response: httpx.Response, response_model: Optional[Type[T]]
    ) -> Union[T, Dict[str, Any], None]:
        if response.status_code == 204 or not response.content:
            return None
        try:
            if response_model:
                return response_model.model_validate_json(response.content)
            return response.json()
        except PydanticValidationError as e:
            raise ClientError(
                "response does not match model",
                service=self.service_name,
                status_code=response.status_code,
                details=str(e),
            ) from e
        except ValueError as e:
            raise ClientError(
                "response is not JSON",
                service=self.service_name,
                status_code=response.status_code,
                details=response.text,
            ) from e

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "hmac_client_retry",
            service=self.service_name,
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()),
        )

    async def get(self, path: str, params: Optional[Dict] = None, response_model: Optional[Type[T]] = None):
        return await self.request("GET", path, params=params, response_model=response_model)

    async def post(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None):
        return await self.request("POST", path, json=json, response_model=response_model)

    async def put(self, path: str, json: Any = None, response_model: Optional[Type[T]] = None):
        return await self.request("PUT", path, json=json, response_model=response_model)

    async def delete(self, path: str, response_model: Optional[Type[T]] = None):
        return await self.request("DELETE", path, response_model=response_model)
