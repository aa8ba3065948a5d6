"""Tests for the LinkedIn adapter."""

import pytest

from multipost.errors import AuthRejected, PostRejected, PostUnauthorized
from multipost.models import TokenRecord

TOKEN = "/oauth/v2/accessToken"
USERINFO = "/v2/userinfo"
UGC_POSTS = "/v2/ugcPosts"


@pytest.fixture
def linkedin_token() -> TokenRecord:
    return TokenRecord(access_token="li_access", subject_id="abc123")


class TestExchangeCode:
    """Tests for the code exchange and member lookup."""

    async def test_success(self, linkedin, provider):
        provider.add("POST", TOKEN, 200, {"access_token": "li_access", "expires_in": 5184000})
        provider.add("GET", USERINFO, 200, {"sub": "abc123", "name": "Alice"})
        linkedin.authorization_url()
        state = linkedin.pending.state

        record = await linkedin.exchange_code("code", state=state)

        assert record == TokenRecord(access_token="li_access", subject_id="abc123")
        form = provider.form(provider.calls(TOKEN)[0])
        assert form["client_secret"] == "test_client_secret"
        assert "code_verifier" not in form
        assert provider.calls(USERINFO)[0].headers["Authorization"] == "Bearer li_access"

    async def test_userinfo_failure(self, linkedin, provider):
        provider.add("POST", TOKEN, 200, {"access_token": "li_access"})
        provider.add("GET", USERINFO, 403, {"message": "Not enough permissions"})
        linkedin.authorization_url()

        with pytest.raises(AuthRejected, match="member profile"):
            await linkedin.exchange_code("code")

    async def test_userinfo_without_sub(self, linkedin, provider):
        provider.add("POST", TOKEN, 200, {"access_token": "li_access"})
        provider.add("GET", USERINFO, 200, {"name": "Alice"})
        linkedin.authorization_url()

        with pytest.raises(AuthRejected, match="no id"):
            await linkedin.exchange_code("code")

    async def test_userinfo_sub_not_a_string(self, linkedin, provider):
        provider.add("POST", TOKEN, 200, {"access_token": "li_access"})
        provider.add("GET", USERINFO, 200, {"sub": 12345})
        linkedin.authorization_url()

        with pytest.raises(AuthRejected, match="no id"):
            await linkedin.exchange_code("code")

    async def test_refresh_token_not_a_string(self, linkedin, provider):
        provider.add("POST", TOKEN, 200, {"access_token": "li_access", "refresh_token": ["x"]})
        provider.add("GET", USERINFO, 200, {"sub": "abc123"})
        linkedin.authorization_url()

        with pytest.raises(AuthRejected, match="Unparsable"):
            await linkedin.exchange_code("code")


class TestCreatePost:
    """Tests for UGC posts."""

    async def test_success(self, linkedin, provider, linkedin_token):
        provider.add("POST", UGC_POSTS, 201, {"id": "urn:li:share:1"})

        post_id = await linkedin.create_post(linkedin_token, "Hello network")

        assert post_id == "urn:li:share:1"
        request = provider.calls(UGC_POSTS)[0]
        assert request.headers["X-Restli-Protocol-Version"] == "2.0.0"
        assert request.headers["Authorization"] == "Bearer li_access"
        body = provider.json(request)
        assert body["author"] == "urn:li:person:abc123"
        assert body["lifecycleState"] == "PUBLISHED"
        content = body["specificContent"]["com.linkedin.ugc.ShareContent"]
        assert content["shareCommentary"]["text"] == "Hello network"

    async def test_no_member_id(self, linkedin, provider):
        with pytest.raises(PostUnauthorized):
            await linkedin.create_post(TokenRecord(access_token="li_access"), "hi")
        assert provider.requests == []

    async def test_unauthorized(self, linkedin, provider, linkedin_token):
        provider.add("POST", UGC_POSTS, 401, {"serviceErrorCode": 65600})

        with pytest.raises(PostUnauthorized):
            await linkedin.create_post(linkedin_token, "hi")

    async def test_rejected(self, linkedin, provider, linkedin_token):
        provider.add("POST", UGC_POSTS, 422, {"message": "Content is a duplicate"})

        with pytest.raises(PostRejected):
            await linkedin.create_post(linkedin_token, "hi")
