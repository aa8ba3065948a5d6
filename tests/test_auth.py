"""Tests for the authorization service."""

import pytest

from multipost.auth import AuthorizationResult, AuthorizationService
from multipost.errors import AuthRejected, StorageError, TransportError
from multipost.models import AuthPhase, Platform, TokenRecord

CREATE_SESSION = "/xrpc/com.atproto.server.createSession"


@pytest.fixture
def service(session, bluesky, twitter, mastodon, linkedin) -> AuthorizationService:
    return AuthorizationService(session, {
        Platform.BLUESKY: bluesky,
        Platform.TWITTER: twitter,
        Platform.MASTODON: mastodon,
        Platform.LINKEDIN: linkedin,
    })


class TestBeginAuthorization:
    """Tests for starting authorization."""

    async def test_password_platform_completes_immediately(self, service, provider, session, store):
        provider.add("POST", CREATE_SESSION, 200, {
            "accessJwt": "A", "refreshJwt": "R", "did": "did:plc:x",
        })

        result = await service.begin_authorization(Platform.BLUESKY)

        assert result.authorized
        assert result.subject_id == "did:plc:x"
        assert result.authorization_url is None
        assert session.phase(Platform.BLUESKY) == AuthPhase.AUTHORIZED
        assert store.load(Platform.BLUESKY) == TokenRecord(
            access_token="A", refresh_token="R", subject_id="did:plc:x",
        )

    async def test_password_rejected(self, service, provider, session, store):
        provider.add("POST", CREATE_SESSION, 401, {"error": "AuthenticationRequired"})

        with pytest.raises(AuthRejected):
            await service.begin_authorization(Platform.BLUESKY)

        assert session.phase(Platform.BLUESKY) == AuthPhase.UNAUTHORIZED
        assert store.load(Platform.BLUESKY) is None

    async def test_code_platform_returns_url(self, service, session, twitter):
        result = await service.begin_authorization(Platform.TWITTER)

        assert not result.authorized
        assert result.authorization_url == twitter.pending.authorization_url
        assert session.phase(Platform.TWITTER) == AuthPhase.UNAUTHORIZED

    async def test_unconfigured_platform(self, session, bluesky):
        service = AuthorizationService(session, {Platform.BLUESKY: bluesky})

        with pytest.raises(ValueError, match="not configured"):
            await service.begin_authorization(Platform.LINKEDIN)


class TestCompleteAuthorization:
    """Tests for finishing a code flow."""

    async def test_twitter_round_trip(self, service, provider, session, store, twitter):
        provider.add("POST", "/2/oauth2/token", 200, {
            "access_token": "tw_access", "refresh_token": "tw_refresh",
        })
        await service.begin_authorization(Platform.TWITTER)

        result = await service.complete_authorization(
            Platform.TWITTER, "code", twitter.pending.state
        )

        assert result.authorized
        assert store.load(Platform.TWITTER) == TokenRecord(
            access_token="tw_access", refresh_token="tw_refresh",
        )

    async def test_linkedin_records_member_id(self, service, provider, session, linkedin):
        provider.add("POST", "/oauth/v2/accessToken", 200, {"access_token": "li_access"})
        provider.add("GET", "/v2/userinfo", 200, {"sub": "abc123"})
        await service.begin_authorization(Platform.LINKEDIN)

        result = await service.complete_authorization(Platform.LINKEDIN, "code")

        assert result.subject_id == "abc123"
        assert session.token(Platform.LINKEDIN).subject_id == "abc123"

    async def test_existing_token_survives_failed_exchange(
        self, service, provider, session, twitter_token
    ):
        await session.store_token(Platform.TWITTER, twitter_token)
        provider.add("POST", "/2/oauth2/token", 400, {"error": "invalid_grant"})
        await service.begin_authorization(Platform.TWITTER)

        with pytest.raises(AuthRejected):
            await service.complete_authorization(Platform.TWITTER, "bad")

        assert session.token(Platform.TWITTER) == twitter_token

    async def test_password_platform_has_no_codes(self, service):
        with pytest.raises(AuthRejected):
            await service.complete_authorization(Platform.BLUESKY, "code")

    async def test_storage_failure_still_authorizes(self, service, provider, session, monkeypatch):
        provider.add("POST", "/oauth/token", 200, {"access_token": "masto_access"})
        error = StorageError(Platform.MASTODON, "mastodon_tokens.json", "permission denied")

        def fail(platform, record):
            raise error

        monkeypatch.setattr(session.store, "save", fail)
        await service.begin_authorization(Platform.MASTODON)

        result = await service.complete_authorization(Platform.MASTODON, "code")

        assert result.authorized
        assert result.storage_error is error
        assert session.phase(Platform.MASTODON) == AuthPhase.AUTHORIZED


class TestUnlink:
    """Tests for unlinking a platform."""

    async def test_revokes_and_forgets(self, service, provider, session, store, twitter_token):
        provider.add("POST", "/2/oauth2/revoke", 200, {"revoked": True})
        await session.store_token(Platform.TWITTER, twitter_token)

        assert await service.unlink(Platform.TWITTER) is True

        assert len(provider.calls("/2/oauth2/revoke")) == 1
        assert session.phase(Platform.TWITTER) == AuthPhase.UNAUTHORIZED
        assert store.load(Platform.TWITTER) is None

    async def test_revoke_unsupported(self, service, provider, session, bluesky_token):
        await session.store_token(Platform.BLUESKY, bluesky_token)

        assert await service.unlink(Platform.BLUESKY) is True
        assert provider.requests == []

    async def test_revoke_transport_error_still_forgets(
        self, session, mock_adapter_factory, mastodon_token
    ):
        adapter = mock_adapter_factory(Platform.MASTODON)
        adapter.revoke.side_effect = TransportError(Platform.MASTODON, "timed out")
        service = AuthorizationService(session, {Platform.MASTODON: adapter})
        await session.store_token(Platform.MASTODON, mastodon_token)

        assert await service.unlink(Platform.MASTODON) is True
        assert session.token(Platform.MASTODON) is None

    async def test_not_authorized(self, service):
        assert await service.unlink(Platform.LINKEDIN) is False


class TestAuthorizationResult:
    """Tests for AuthorizationResult."""

    def test_to_dict(self):
        result = AuthorizationResult(
            platform=Platform.TWITTER,
            authorized=False,
            authorization_url="https://twitter.com/i/oauth2/authorize?x=1",
        )

        assert result.to_dict() == {
            "platform": "twitter",
            "authorized": False,
            "authorization_url": "https://twitter.com/i/oauth2/authorize?x=1",
            "subject_id": None,
            "storage_error": None,
        }
