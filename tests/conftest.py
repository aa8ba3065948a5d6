"""Pytest configuration and fixtures for multipost tests."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from multipost.config import (
    AppConfig,
    BlueskyConfig,
    LinkedInConfig,
    MastodonConfig,
    TwitterConfig,
)
from multipost.models import Platform, TokenRecord
from multipost.platforms import (
    BlueskyAdapter,
    LinkedInAdapter,
    MastodonAdapter,
    PlatformAdapter,
    TwitterAdapter,
)
from multipost.session import SessionState
from multipost.storage import CredentialStore


class FakeProvider:
    """Scripted HTTP replies keyed by (method, path).

    Replies for a route are served in order; the last one repeats.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[tuple[int, object]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int, body: object = None) -> "FakeProvider":
        self.routes.setdefault((method, path), []).append((status, body))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"error": "NoRoute"})

        status, body = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body if body is not None else {})

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def json(request: httpx.Request) -> dict:
        return json.loads(request.content)

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        return dict(httpx.QueryParams(request.content.decode()))


@pytest.fixture
def provider() -> FakeProvider:
    """Scripted platform API."""
    return FakeProvider()


@pytest_asyncio.fixture
async def http_client(provider):
    """HTTP client routed to the fake provider."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
    yield client
    await client.aclose()


@pytest.fixture
def bluesky_config() -> BlueskyConfig:
    return BlueskyConfig(
        username="alice.bsky.social",
        password="app-password",
        service_url="https://bsky.test",
    )


@pytest.fixture
def twitter_config() -> TwitterConfig:
    return TwitterConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:8080/callback/twitter",
    )


@pytest.fixture
def mastodon_config() -> MastodonConfig:
    return MastodonConfig(
        instance_url="https://mastodon.test",
        client_id="test_client_id",
        client_secret="test_client_secret",
    )


@pytest.fixture
def linkedin_config() -> LinkedInConfig:
    return LinkedInConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:8080/callback/linkedin",
    )


@pytest.fixture
def config(tmp_path, bluesky_config, twitter_config, mastodon_config, linkedin_config) -> AppConfig:
    """Create test configuration."""
    return AppConfig(
        bluesky=bluesky_config,
        twitter=twitter_config,
        mastodon=mastodon_config,
        linkedin=linkedin_config,
        storage={"token_dir": str(tmp_path)},
        server={"host": "127.0.0.1", "port": 8080},
    )


@pytest.fixture
def bluesky(bluesky_config, http_client) -> BlueskyAdapter:
    return BlueskyAdapter(bluesky_config, http_client=http_client)


@pytest.fixture
def twitter(twitter_config, http_client) -> TwitterAdapter:
    return TwitterAdapter(twitter_config, http_client=http_client)


@pytest.fixture
def mastodon(mastodon_config, http_client) -> MastodonAdapter:
    return MastodonAdapter(mastodon_config, http_client=http_client)


@pytest.fixture
def linkedin(linkedin_config, http_client) -> LinkedInAdapter:
    return LinkedInAdapter(linkedin_config, http_client=http_client)


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    """Credential store in a temporary directory."""
    return CredentialStore(tmp_path)


@pytest.fixture
def session(store) -> SessionState:
    """Empty session state backed by the temporary store."""
    return SessionState(store)


@pytest.fixture
def bluesky_token() -> TokenRecord:
    return TokenRecord(access_token="A", refresh_token="R", subject_id="did:plc:x")


@pytest.fixture
def twitter_token() -> TokenRecord:
    return TokenRecord(access_token="tw_access", refresh_token="tw_refresh")


@pytest.fixture
def mastodon_token() -> TokenRecord:
    return TokenRecord(access_token="masto_access")


def make_mock_adapter(
    platform: Platform,
    supports_refresh: bool = False,
    interactive_reauth: bool = True,
) -> MagicMock:
    """Create a mock adapter whose posts succeed."""
    adapter = MagicMock(spec=PlatformAdapter)
    adapter.platform = platform
    adapter.supports_refresh = supports_refresh
    adapter.interactive_reauth = interactive_reauth
    adapter.create_post = AsyncMock(return_value=f"{platform.value}_post_1")
    adapter.refresh = AsyncMock()
    adapter.reauthorize = AsyncMock()
    adapter.revoke = AsyncMock(return_value=True)
    adapter.close = AsyncMock()
    return adapter


@pytest.fixture
def mock_adapter_factory():
    """Factory for mock adapters."""
    return make_mock_adapter
