"""LinkedIn adapter.

Standard 3-legged OAuth (client secret, no PKCE) and the UGC Posts API.
Refresh tokens are only issued to approved partner apps, so a rejected
token is treated as needing reauthorization.
"""

from typing import Any

import httpx
import structlog

from ..errors import AuthRejected, PostUnauthorized
from ..models import Platform, TokenRecord
from .base import bearer
from .oauth import OAuthCodeAdapter

logger = structlog.get_logger()

# LinkedIn OAuth 2.0 endpoints
LINKEDIN_AUTHORIZE = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_REVOKE = "https://www.linkedin.com/oauth/v2/revoke"

# LinkedIn API endpoints
LINKEDIN_API_BASE = "https://api.linkedin.com/v2"
LINKEDIN_USERINFO = "https://api.linkedin.com/v2/userinfo"

RESTLI_HEADERS = {"X-Restli-Protocol-Version": "2.0.0"}


class LinkedInAdapter(OAuthCodeAdapter):
    """Code-flow adapter, reauthorization only."""

    platform = Platform.LINKEDIN
    authorize_endpoint = LINKEDIN_AUTHORIZE
    token_endpoint = LINKEDIN_TOKEN
    # openid and profile are needed for userinfo, which gives the member id
    scopes = ("openid", "profile", "w_member_social")
    uses_pkce = False

    async def _token_record(self, response: httpx.Response, payload: dict[str, Any]) -> TokenRecord:
        """Attach the member id, which posts need as their author."""
        access_token = payload["access_token"]
        userinfo = await self._send(
            "GET",
            LINKEDIN_USERINFO,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not userinfo.is_success:
            raise AuthRejected(
                self.platform,
                "Failed to read member profile",
                status_code=userinfo.status_code,
                body=userinfo.text,
            )

        try:
            member_id = userinfo.json().get("sub")
        except (ValueError, AttributeError):
            member_id = None
        if not isinstance(member_id, str) or not member_id:
            raise AuthRejected(
                self.platform,
                "Member profile has no id",
                status_code=userinfo.status_code,
                body=userinfo.text,
            )

        logger.info("Resolved LinkedIn member", member_id=member_id)
        return self._record(
            response,
            AuthRejected,
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            subject_id=member_id,
        )

    async def create_post(self, token: TokenRecord, text: str) -> str:
        """Share a public text post on the member's feed.

        Returns:
            URN of the created post
        """
        if not token.subject_id:
            raise PostUnauthorized(self.platform, None, "No member id stored")

        body = {
            "author": f"urn:li:person:{token.subject_id}",
            "lifecycleState": "PUBLISHED",
            "specificContent": {
                "com.linkedin.ugc.ShareContent": {
                    "shareCommentary": {"text": text},
                    "shareMediaCategory": "NONE",
                },
            },
            "visibility": {
                "com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC",
            },
        }
        response = await self._send(
            "POST",
            f"{LINKEDIN_API_BASE}/ugcPosts",
            headers={**bearer(token), **RESTLI_HEADERS},
            json=body,
        )
        payload = self._check_post_response(response)
        return response.headers.get("x-restli-id") or payload.get("id", "")

    async def revoke(self, token: TokenRecord) -> bool:
        data = {"token": token.access_token}
        self._client_auth(data)
        response = await self._send(
            "POST",
            LINKEDIN_REVOKE,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return response.status_code == 200
