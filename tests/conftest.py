import json
from collections.abc import Callable
from urllib.parse import urlsplit

import httpx
import pytest
from starlette.requests import Request

from oauth2_strategy.models.config import FlowCookieSettings, ProviderConfig
from oauth2_strategy.services.tokens import OAuth2TokenManager

COOKIE_SECRET = "test-cookie-secret-0123456789abcdef"


def build_request(url: str, cookies: dict[str, str] | None = None) -> Request:
    """Build a starlette GET request for an absolute URL."""
    parsed = urlsplit(url)
    headers = [(b"host", parsed.netloc.encode())]
    if cookies:
        cookie_header = "; ".join(
            f"{name}={value}" for name, value in cookies.items()
        )
        headers.append((b"cookie", cookie_header.encode()))

    scope = {
        "type": "http",
        "method": "GET",
        "scheme": parsed.scheme,
        "server": (parsed.hostname, 443 if parsed.scheme == "https" else 80),
        "path": parsed.path or "/",
        "raw_path": (parsed.path or "/").encode(),
        "root_path": "",
        "query_string": parsed.query.encode(),
        "headers": headers,
    }
    return Request(scope)


class CountingRandom:
    """Deterministic stand-in for secrets.token_bytes."""

    def __init__(self):
        self.calls = 0

    def __call__(self, n: int) -> bytes:
        self.calls += 1
        return bytes([self.calls]) * n


class TokenEndpointStub:
    """Records token endpoint requests and replies with a canned response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload: object = {
            "access_token": "access token",
            "scope": "custom",
            "expires_in": 86400,
            "token_type": "Bearer",
        }
        self.raw_body: str | None = None
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw_body is not None:
            return httpx.Response(self.status_code, text=self.raw_body)
        return httpx.Response(self.status_code, content=json.dumps(self.payload))

    def form(self, index: int = -1) -> dict[str, str]:
        body = self.requests[index].content.decode()
        return dict(httpx.QueryParams(body))


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


@pytest.fixture
def random_source() -> CountingRandom:
    return CountingRandom()


@pytest.fixture
def cookie_settings() -> FlowCookieSettings:
    return FlowCookieSettings(secret=COOKIE_SECRET)


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        authorization_endpoint="https://auth.example.com/authorize",
        token_endpoint="https://auth.example.com/oauth/token",
        token_revocation_endpoint="https://auth.example.com/oauth/revoke",
        client_id="CLIENT_ID",
        client_secret="CLIENT_SECRET",
        redirect_uri="https://example.app/callback",
        scopes=["openid", "profile"],
    )


@pytest.fixture
def token_endpoint() -> TokenEndpointStub:
    return TokenEndpointStub()


@pytest.fixture
async def token_manager(token_endpoint):
    transport = httpx.MockTransport(token_endpoint.handler)
    http_client = httpx.AsyncClient(transport=transport)
    manager = OAuth2TokenManager(http_client=http_client)
    yield manager
    await http_client.aclose()
