"""Tests for the token-aware asynchronous client."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

import httpx
import pytest

from azure_rest.client import AzureClient, ClientOptions, CredentialOptions, join_url
from azure_rest.credentials.base import TokenCredential
from azure_rest.exceptions import ConfigurationError, RefreshExhaustedError
from azure_rest.models import AccessToken, utcnow

BASE_URL = "https://management.azure.com"
SCOPE = "https://management.azure.com/.default"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _token(value: str = "tok", lifetime: timedelta = timedelta(hours=1)) -> AccessToken:
    return AccessToken(access_token=value, expires_at=utcnow() + lifetime)


class FakeCredential(TokenCredential):
    """Returns queued tokens (or raises queued exceptions) and counts calls."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0
        self.scopes: list[str] = []

    @classmethod
    def from_env(cls) -> FakeCredential:
        return cls()

    async def get_token(self, scope: str) -> AccessToken:
        self.calls += 1
        self.scopes.append(scope)
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class Recorder:
    """httpx.MockTransport handler that remembers every request."""

    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.payload = {"value": []} if payload is None else payload

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


def _client(credential: TokenCredential, recorder: Recorder, builder=None) -> AzureClient:
    options = ClientOptions(
        base_url=BASE_URL,
        credential=CredentialOptions(helper=credential, scope=SCOPE, builder=builder),
    )
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    client = AzureClient(options, http_client=http_client)
    client.sleeps = []

    async def record_sleep(seconds: float) -> None:
        client.sleeps.append(seconds)

    client._sleep = record_sleep
    return client


# ---------------------------------------------------------------------------
# URL joining
# ---------------------------------------------------------------------------


class TestJoinUrl:
    @pytest.mark.parametrize(
        ("base", "path"),
        [
            ("https://h", "/p"),
            ("https://h/", "p"),
            ("https://h/", "/p"),
            ("https://h", "p"),
        ],
    )
    def test_exactly_one_slash(self, base: str, path: str) -> None:
        assert join_url(base, path) == "https://h/p"

    def test_query_string_kept(self) -> None:
        assert join_url("https://h/", "/subs?api-version=1") == "https://h/subs?api-version=1"


# ---------------------------------------------------------------------------
# Token lifecycle
# ---------------------------------------------------------------------------


class TestTokenLifecycle:
    @pytest.mark.asyncio
    async def test_first_request_fetches_token(self) -> None:
        credential = FakeCredential(_token("t1"))
        recorder = Recorder()
        client = _client(credential, recorder)

        await client.get("/subscriptions")

        assert credential.calls == 1
        assert credential.scopes == [SCOPE]
        assert recorder.requests[0].headers["Authorization"] == "Bearer t1"
        assert client.token is not None and client.token.access_token == "t1"

    @pytest.mark.asyncio
    async def test_valid_token_reused(self) -> None:
        credential = FakeCredential(_token("t1"))
        client = _client(credential, Recorder())

        await client.get("/a")
        await client.get("/b")
        await client.delete("/c")

        assert credential.calls == 1

    @pytest.mark.asyncio
    async def test_expired_token_refreshed_once(self) -> None:
        credential = FakeCredential(_token("old", timedelta(seconds=-1)), _token("new"))
        recorder = Recorder()
        client = _client(credential, recorder)

        await client.get("/a")

        assert credential.calls == 2
        assert client.sleeps == [0.1]
        assert recorder.requests[0].headers["Authorization"] == "Bearer new"

    @pytest.mark.asyncio
    async def test_failing_helper_exhausts_retries(self) -> None:
        credential = FakeCredential(RuntimeError("no network"))
        recorder = Recorder()
        client = _client(credential, recorder)

        with pytest.raises(RefreshExhaustedError, match="no network") as exc_info:
            await client.get("/a")

        assert credential.calls == 3
        assert client.sleeps == [0.1, 0.2]
        assert recorder.requests == []
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_always_expired_tokens_exhaust_retries(self) -> None:
        credential = FakeCredential(_token("stale", timedelta(seconds=-5)))
        recorder = Recorder()
        client = _client(credential, recorder)

        with pytest.raises(RefreshExhaustedError, match="multiple attempts"):
            await client.get("/a")

        assert credential.calls == 3
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_transient_failure_then_success(self) -> None:
        credential = FakeCredential(RuntimeError("blip"), _token("t2"))
        recorder = Recorder()
        client = _client(credential, recorder)

        await client.get("/a")

        assert credential.calls == 2
        assert recorder.requests[0].headers["Authorization"] == "Bearer t2"

    @pytest.mark.asyncio
    async def test_configuration_error_not_retried(self) -> None:
        credential = FakeCredential(ConfigurationError("client id is not provided"))
        recorder = Recorder()
        client = _client(credential, recorder)

        with pytest.raises(ConfigurationError):
            await client.get("/a")

        assert credential.calls == 1
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_helper_with_naive_expiry(self) -> None:
        naive_future = utcnow().replace(tzinfo=None) + timedelta(hours=1)
        credential = FakeCredential(AccessToken(access_token="naive", expires_at=naive_future))
        recorder = Recorder()
        client = _client(credential, recorder)

        await client.get("/a")
        await client.get("/b")

        assert credential.calls == 1
        assert recorder.requests[1].headers["Authorization"] == "Bearer naive"

    @pytest.mark.asyncio
    async def test_refresh_token_overwrites_valid_cache(self) -> None:
        credential = FakeCredential(_token("t1"), _token("t2"))
        client = _client(credential, Recorder())

        await client.get("/a")
        refreshed = await client.refresh_token()

        assert refreshed.access_token == "t2"
        assert client.token is refreshed


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestRequests:
    @pytest.mark.asyncio
    async def test_url_joined_with_base(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await client.get("subscriptions?api-version=2022-12-01")

        url = recorder.requests[0].url
        assert url.path == "/subscriptions"
        assert url.params["api-version"] == "2022-12-01"

    @pytest.mark.asyncio
    async def test_post_serialises_body(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await client.post("/resources", {"a": 1})

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert request.content == b'{"a":1}'

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["put", "patch"])
    async def test_put_and_patch(self, verb: str) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await getattr(client, verb)("/r", {"tags": {"env": "dev"}})

        assert recorder.requests[0].method == verb.upper()
        assert json.loads(recorder.requests[0].content) == {"tags": {"env": "dev"}}

    @pytest.mark.asyncio
    async def test_post_without_body(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await client.post("/actions/restart")

        assert recorder.requests[0].content == b""
        assert recorder.requests[0].headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_caller_content_type_wins(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await client.patch(
            "/r", {"op": "add"}, headers={"content-type": "application/merge-patch+json"}
        )

        assert recorder.requests[0].headers["Content-Type"] == "application/merge-patch+json"

    @pytest.mark.asyncio
    async def test_caller_authorization_wins(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token("t1")), recorder)

        await client.get("/a", headers={"authorization": "Bearer override"})

        assert recorder.requests[0].headers.get_list("Authorization") == ["Bearer override"]

    @pytest.mark.asyncio
    async def test_custom_header_builder(self) -> None:
        recorder = Recorder()

        def builder(token: AccessToken) -> dict[str, str]:
            return {"X-Api-Token": token.access_token}

        client = _client(FakeCredential(_token("t1")), recorder, builder=builder)
        await client.get("/a")

        headers = recorder.requests[0].headers
        assert headers["X-Api-Token"] == "t1"
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_send_request_forwards_options(self) -> None:
        recorder = Recorder()
        client = _client(FakeCredential(_token()), recorder)

        await client.send_request("/a", method="HEAD", params={"$top": "5"})

        assert recorder.requests[0].method == "HEAD"
        assert recorder.requests[0].url.params["$top"] == "5"

    @pytest.mark.asyncio
    async def test_non_success_returned_untouched(self) -> None:
        recorder = Recorder(404, {"error": {"code": "NotFound"}})
        client = _client(FakeCredential(_token()), recorder)

        response = await client.get("/missing")

        assert response.status_code == 404
        assert response.json() == {"error": {"code": "NotFound"}}

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        options = ClientOptions(
            base_url=BASE_URL,
            credential=CredentialOptions(helper=FakeCredential(_token()), scope=SCOPE),
        )
        client = AzureClient(
            options, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )

        with pytest.raises(httpx.ConnectError):
            await client.get("/a")


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    @pytest.mark.asyncio
    async def test_owns_and_closes_client(self) -> None:
        options = ClientOptions(
            base_url=BASE_URL,
            credential=CredentialOptions(helper=FakeCredential(_token()), scope=SCOPE),
        )
        client = AzureClient(options)
        async with client:
            inner = client._http_client
            assert isinstance(inner, httpx.AsyncClient)
        assert inner.is_closed
        assert client._http_client is None

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self) -> None:
        options = ClientOptions(
            base_url=BASE_URL,
            credential=CredentialOptions(helper=FakeCredential(_token()), scope=SCOPE),
        )
        injected = httpx.AsyncClient(transport=httpx.MockTransport(Recorder()))
        async with AzureClient(options, http_client=injected):
            pass
        assert not injected.is_closed
        await injected.aclose()
