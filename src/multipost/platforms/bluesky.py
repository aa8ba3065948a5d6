"""Bluesky adapter (AT Protocol XRPC).

App-password sessions: createSession for login, refreshSession with the
refresh JWT, createRecord to post. Reauthorization replays the
configured password, so Bluesky recovers without the user.
"""

from datetime import datetime, timezone

import httpx
import structlog

from ..errors import AuthError, AuthRejected, PostUnauthorized, RefreshRejected
from ..models import Platform, TokenRecord
from .base import PlatformAdapter, bearer

logger = structlog.get_logger()

POST_COLLECTION = "app.bsky.feed.post"
# The PDS reports a stale access JWT as 400 with one of these error names
EXPIRED_TOKEN_ERRORS = frozenset({"ExpiredToken", "InvalidToken"})
SESSION_FIELDS = ("accessJwt", "refreshJwt", "did")


class BlueskyAdapter(PlatformAdapter):
    """Password-grant adapter with refresh and unattended reauthorization."""

    platform = Platform.BLUESKY
    supports_refresh = True
    interactive_reauth = False

    def _xrpc(self, method: str) -> str:
        return f"{self.config.service_url.rstrip('/')}/xrpc/{method}"

    def _session_record(
        self,
        response: httpx.Response,
        error_cls: type[AuthError],
        payload: dict,
    ) -> TokenRecord:
        return self._record(
            response,
            error_cls,
            access_token=payload["accessJwt"],
            refresh_token=payload["refreshJwt"],
            subject_id=payload["did"],
        )

    async def password_grant(self, identifier: str, secret: str) -> TokenRecord:
        """Create a session from account credentials.

        Args:
            identifier: Handle, email or DID
            secret: App password

        Returns:
            Token record carrying the account DID

        Raises:
            AuthRejected: If the login is refused or the reply is unusable
        """
        response = await self._send(
            "POST",
            self._xrpc("com.atproto.server.createSession"),
            json={"identifier": identifier, "password": secret},
        )
        payload = self._token_payload(response, AuthRejected, SESSION_FIELDS)

        logger.info(
            "Created Bluesky session",
            handle=payload.get("handle"),
            did=payload["did"],
        )
        return self._session_record(response, AuthRejected, payload)

    async def refresh(self, token: TokenRecord) -> TokenRecord:
        """Trade the refresh JWT for a new session.

        Raises:
            RefreshRejected: If there is no refresh JWT or it is refused
        """
        if not token.refresh_token:
            raise RefreshRejected(self.platform, "No refresh token stored")

        response = await self._send(
            "POST",
            self._xrpc("com.atproto.server.refreshSession"),
            headers={"Authorization": f"Bearer {token.refresh_token}"},
        )
        payload = self._token_payload(response, RefreshRejected, ("accessJwt", "refreshJwt"))
        payload["did"] = payload.get("did") or token.subject_id
        if not payload["did"]:
            raise RefreshRejected(self.platform, "Refreshed session has no DID", body=response.text)

        record = self._session_record(response, RefreshRejected, payload)
        logger.info("Refreshed Bluesky session", did=record.subject_id)
        return record

    async def reauthorize(self) -> TokenRecord:
        return await self.password_grant(self.config.username, self.config.password)

    def _is_unauthorized(self, response: httpx.Response) -> bool:
        if response.status_code == 401:
            return True
        if response.status_code != 400:
            return False
        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            return False
        return error in EXPIRED_TOKEN_ERRORS

    async def create_post(self, token: TokenRecord, text: str) -> str:
        """Create an app.bsky.feed.post record in the account's repo.

        Returns:
            AT URI of the new record
        """
        if not token.subject_id:
            # createRecord needs the repo DID; a fresh session supplies it
            raise PostUnauthorized(self.platform, None, "No account DID stored")

        record = {
            "$type": POST_COLLECTION,
            "text": text,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        response = await self._send(
            "POST",
            self._xrpc("com.atproto.repo.createRecord"),
            headers=bearer(token),
            json={
                "repo": token.subject_id,
                "collection": POST_COLLECTION,
                "record": record,
            },
        )
        payload = self._check_post_response(response)
        return payload.get("uri", "")
