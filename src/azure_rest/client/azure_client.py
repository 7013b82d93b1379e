"""Token-aware asynchronous HTTP client for Azure REST APIs.

:class:`AzureClient` wraps :class:`httpx.AsyncClient` and guarantees that
every request carries a non-expired bearer token:

- **Token cache** -- one :class:`~azure_rest.models.AccessToken` per client
  instance, shared by every call made through it.
- **Refresh with bounded retry** -- a missing or expired token is refreshed
  through the configured credential, up to :attr:`AzureClient.MAX_TOKEN_RETRIES`
  times with linear backoff (0 ms, 100 ms, 200 ms).
- **Header injection** -- ``Authorization: Bearer <token>`` by default, or
  whatever the configured ``builder`` returns. Caller headers always win.
- **Verb helpers** -- :meth:`~AzureClient.get`, :meth:`~AzureClient.post`,
  :meth:`~AzureClient.put`, :meth:`~AzureClient.patch` and
  :meth:`~AzureClient.delete`; body verbs serialise their ``body`` to JSON.

Responses are returned untouched: non-2xx statuses are neither raised nor
retried, and :mod:`httpx` transport errors propagate as they are.

Concurrent calls against a stale token each refresh independently; the last
refresh to finish wins the cache.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict

from azure_rest.credentials.base import TokenCredential
from azure_rest.exceptions import (
    ConfigurationError,
    RefreshExhaustedError,
    TokenUnavailableError,
)
from azure_rest.models import AccessToken

logger = logging.getLogger(__name__)

HeaderBuilder = Callable[[AccessToken], Mapping[str, str]]
HeaderTypes = Union[Mapping[str, str], httpx.Headers]


class CredentialOptions(BaseModel):
    """How an :class:`AzureClient` obtains and presents its token.

    Attributes:
        helper: Credential used to (re)acquire tokens.
        scope: Scope requested from *helper*, e.g.
            ``https://management.azure.com/.default``.
        builder: Optional function turning a token into request headers.
            Defaults to a single ``Authorization: Bearer`` header.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    helper: TokenCredential
    scope: str
    builder: Optional[HeaderBuilder] = None


class ClientOptions(BaseModel):
    """Configuration of an :class:`AzureClient`.

    Example::

        ClientOptions(
            base_url="https://management.azure.com",
            credential=CredentialOptions(
                helper=ChainedCredential(),
                scope="https://management.azure.com/.default",
            ),
        )
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    credential: CredentialOptions


def join_url(base_url: str, path: str) -> str:
    """Join *base_url* and *path* with exactly one slash between them."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class AzureClient:
    """Asynchronous Azure REST client with automatic token refresh.

    Can be used directly, in which case each request opens a short-lived
    :class:`httpx.AsyncClient`, or as an async context manager that keeps
    one pooled client open until exit. An existing client can also be
    injected with *http_client*; it is never closed by :class:`AzureClient`.

    Args:
        options: Base URL and credential configuration.
        http_client: Optional pre-configured :class:`httpx.AsyncClient`.

    Example::

        async with AzureClient(options) as client:
            response = await client.get("/subscriptions?api-version=2022-12-01")
    """

    MAX_TOKEN_RETRIES = 3
    RETRY_DELAY = 0.1
    """Seconds multiplied by the attempt number before each retry."""

    def __init__(
        self,
        options: ClientOptions,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.options = options
        self._http_client = http_client
        self._owns_http_client = False
        self._token: Optional[AccessToken] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AzureClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
            self._owns_http_client = True
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_http_client = False

    @property
    def token(self) -> Optional[AccessToken]:
        """The currently cached token, if any."""
        return self._token

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def send_request(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Optional[HeaderTypes] = None,
        **options: Any,
    ) -> httpx.Response:
        """Send one request with a fresh token.

        Args:
            path: Path relative to ``options.base_url``.
            method: HTTP method.
            headers: Extra headers. They override the auth headers on
                collision (case-insensitive).
            **options: Forwarded to :meth:`httpx.AsyncClient.request`
                (``content``, ``params``, ``timeout``, ...).

        Returns:
            The :class:`httpx.Response`, whatever its status.

        Raises:
            RefreshExhaustedError: No fresh token after all refresh attempts.
            ConfigurationError: The credential is missing a required input.
            httpx.HTTPError: Transport failure while sending the request.
        """
        await self._ensure_fresh_token()

        token = self._token
        if token is None:
            raise TokenUnavailableError("Token is unexpectedly absent after refresh attempts")

        url = join_url(self.options.base_url, path)
        request_headers = self._build_headers(token, headers)
        logger.debug("%s %s", method, url)

        if self._http_client is not None:
            return await self._http_client.request(method, url, headers=request_headers, **options)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, headers=request_headers, **options)

    async def get(self, path: str, **options: Any) -> httpx.Response:
        """Send a GET request. *options* as for :meth:`send_request`."""
        return await self.send_request(path, method="GET", **options)

    async def post(self, path: str, body: Any = None, **options: Any) -> httpx.Response:
        """Send a POST request with *body* serialised as JSON."""
        return await self._send_json("POST", path, body, **options)

    async def put(self, path: str, body: Any = None, **options: Any) -> httpx.Response:
        """Send a PUT request with *body* serialised as JSON."""
        return await self._send_json("PUT", path, body, **options)

    async def patch(self, path: str, body: Any = None, **options: Any) -> httpx.Response:
        """Send a PATCH request with *body* serialised as JSON."""
        return await self._send_json("PATCH", path, body, **options)

    async def delete(self, path: str, **options: Any) -> httpx.Response:
        """Send a DELETE request. *options* as for :meth:`send_request`."""
        return await self.send_request(path, method="DELETE", **options)

    async def refresh_token(self) -> AccessToken:
        """Fetch a new token from the credential and replace the cached one.

        The cache is overwritten even if the previous token was still valid.
        """
        credential = self.options.credential
        self._token = await credential.helper.get_token(credential.scope)
        return self._token

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _ensure_fresh_token(self) -> None:
        """Refresh the cached token until it is valid or attempts run out."""
        last_error: Optional[Exception] = None

        for attempt in range(self.MAX_TOKEN_RETRIES + 1):
            if self._token is not None and not self._token.is_expired():
                return
            if attempt == self.MAX_TOKEN_RETRIES:
                message = "Failed to refresh token after multiple attempts"
                if last_error is not None:
                    message = f"{message}: {last_error}"
                raise RefreshExhaustedError(message) from last_error
            if attempt > 0:
                await self._sleep(self.RETRY_DELAY * attempt)

            try:
                await self.refresh_token()
            except ConfigurationError:
                raise
            except Exception as exc:
                last_error = exc
                logger.debug(
                    "Token refresh attempt %d/%d failed: %s",
                    attempt + 1, self.MAX_TOKEN_RETRIES, exc,
                )

    async def _sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def _build_headers(
        self,
        token: AccessToken,
        headers: Optional[HeaderTypes],
    ) -> httpx.Headers:
        """Auth headers first, then caller headers on top."""
        builder = self.options.credential.builder
        if builder is not None:
            auth_headers: Mapping[str, str] = builder(token)
        else:
            auth_headers = {"Authorization": f"Bearer {token.access_token}"}

        merged = httpx.Headers(auth_headers)
        if headers:
            merged.update(headers)
        return merged

    async def _send_json(
        self,
        method: str,
        path: str,
        body: Any,
        *,
        headers: Optional[HeaderTypes] = None,
        **options: Any,
    ) -> httpx.Response:
        json_headers = httpx.Headers({"Content-Type": "application/json"})
        if headers:
            json_headers.update(headers)
        if body is not None:
            options["content"] = json.dumps(body, separators=(",", ":"))
        return await self.send_request(path, method=method, headers=json_headers, **options)
