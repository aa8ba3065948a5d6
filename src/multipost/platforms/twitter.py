"""X/Twitter API v2 adapter.

OAuth 2.0 PKCE with offline.access, so posts recover through the refresh
token; once that is refused the user has to authorize again.
"""

import httpx
import structlog

from ..errors import RefreshRejected
from ..models import Platform, TokenRecord
from .base import bearer
from .oauth import OAuthCodeAdapter

logger = structlog.get_logger()

# Twitter API v2 endpoints
TWITTER_API_BASE = "https://api.twitter.com/2"
TWITTER_OAUTH2_AUTHORIZE = "https://twitter.com/i/oauth2/authorize"
TWITTER_OAUTH2_TOKEN = "https://api.twitter.com/2/oauth2/token"
TWITTER_OAUTH2_REVOKE = "https://api.twitter.com/2/oauth2/revoke"


class TwitterAdapter(OAuthCodeAdapter):
    """Code-flow adapter with refresh and interactive reauthorization."""

    platform = Platform.TWITTER
    supports_refresh = True
    authorize_endpoint = TWITTER_OAUTH2_AUTHORIZE
    token_endpoint = TWITTER_OAUTH2_TOKEN
    # offline.access is what gets us a refresh token
    scopes = ("tweet.read", "tweet.write", "users.read", "offline.access")

    def _client_auth(self, data: dict[str, str]) -> httpx.BasicAuth | None:
        if self.config.client_secret:
            return httpx.BasicAuth(self.config.client_id, self.config.client_secret)
        # For public clients, include client_id in body
        data["client_id"] = self.config.client_id
        return None

    async def refresh(self, token: TokenRecord) -> TokenRecord:
        """Refresh an expired access token.

        Raises:
            RefreshRejected: If no refresh token is stored or it is refused
        """
        if not token.refresh_token:
            raise RefreshRejected(self.platform, "No refresh token stored")

        response = await self._post_token({
            "grant_type": "refresh_token",
            "refresh_token": token.refresh_token,
        })
        payload = self._token_payload(response, RefreshRejected, ("access_token",))

        logger.info("Refreshed Twitter token")
        return self._record(
            response,
            RefreshRejected,
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or token.refresh_token,
            subject_id=token.subject_id,
        )

    async def create_post(self, token: TokenRecord, text: str) -> str:
        """Post a tweet.

        Returns:
            Tweet ID
        """
        response = await self._send(
            "POST",
            f"{TWITTER_API_BASE}/tweets",
            headers=bearer(token),
            json={"text": text},
        )
        payload = self._check_post_response(response)
        return payload.get("data", {}).get("id", "")

    async def revoke(self, token: TokenRecord) -> bool:
        """Revoke an access token.

        Returns:
            True if revoked successfully
        """
        data = {
            "token": token.access_token,
            "token_type_hint": "access_token",
        }
        auth = self._client_auth(data)
        kwargs = {"auth": auth} if auth is not None else {}
        response = await self._send(
            "POST",
            TWITTER_OAUTH2_REVOKE,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            **kwargs,
        )
        return response.status_code == 200
