"""Mastodon adapter.

Instance tokens do not expire and there is no refresh grant: a rejected
token can only be replaced by authorizing again.
"""

from ..models import Platform, TokenRecord
from .base import bearer
from .oauth import OAuthCodeAdapter


class MastodonAdapter(OAuthCodeAdapter):
    """Code-flow adapter without refresh."""

    platform = Platform.MASTODON
    scopes = ("write:statuses",)

    @property
    def base_url(self) -> str:
        return self.config.instance_url.rstrip("/")

    @property
    def authorize_endpoint(self) -> str:
        return f"{self.base_url}/oauth/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.base_url}/oauth/token"

    async def create_post(self, token: TokenRecord, text: str) -> str:
        """Publish a status.

        Returns:
            Status ID
        """
        response = await self._send(
            "POST",
            f"{self.base_url}/api/v1/statuses",
            headers=bearer(token),
            json={"status": text},
        )
        payload = self._check_post_response(response)
        return str(payload.get("id", ""))

    async def revoke(self, token: TokenRecord) -> bool:
        data = {"token": token.access_token}
        self._client_auth(data)
        response = await self._send(
            "POST",
            f"{self.base_url}/oauth/revoke",
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return response.status_code == 200
