"""OAuth 2.0 authorization-code flow shared by Twitter, Mastodon and LinkedIn.

Each call to authorization_url() starts a new attempt with its own
random state and PKCE verifier. The verifier lives in memory only until
the code is exchanged or the attempt expires.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from ..errors import AuthRejected, InteractionRequired
from ..models import TokenRecord
from .base import PlatformAdapter

logger = structlog.get_logger()

# Authorization attempt validity period
PENDING_EXPIRY_MINUTES = 10


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier.

    Returns:
        Random URL-safe string (43-128 characters)
    """
    return secrets.token_urlsafe(32)


def generate_code_challenge(verifier: str) -> str:
    """Generate PKCE code challenge from verifier.

    Args:
        verifier: Code verifier string

    Returns:
        Base64-URL encoded SHA256 hash of verifier
    """
    digest = hashlib.sha256(verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def generate_state() -> str:
    """Generate random state for OAuth flow.

    Returns:
        Random hex string
    """
    return secrets.token_hex(32)


@dataclass
class PendingAuthorization:
    """An authorization attempt waiting for its code."""
    state: str
    code_verifier: str
    authorization_url: str
    expires_at: datetime

    @property
    def expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at


class OAuthCodeAdapter(PlatformAdapter):
    """Adapter for platforms authorized through a browser code flow."""

    authorize_endpoint: str
    token_endpoint: str
    scopes: tuple[str, ...] = ()
    uses_pkce: bool = True

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._pending: PendingAuthorization | None = None

    @property
    def pending(self) -> PendingAuthorization | None:
        return self._pending

    def authorization_url(self, scopes: list[str] | None = None) -> str:
        """Start an authorization attempt.

        Replaces any attempt already in progress.

        Args:
            scopes: Requested OAuth scopes (platform defaults if None)

        Returns:
            URL the user must open to authorize this app
        """
        state = generate_state()
        code_verifier = generate_code_verifier()

        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "scope": " ".join(scopes if scopes is not None else self.scopes),
            "state": state,
        }
        if self.uses_pkce:
            params["code_challenge"] = generate_code_challenge(code_verifier)
            params["code_challenge_method"] = "S256"

        url = f"{self.authorize_endpoint}?{urlencode(params)}"
        self._pending = PendingAuthorization(
            state=state,
            code_verifier=code_verifier,
            authorization_url=url,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=PENDING_EXPIRY_MINUTES),
        )

        logger.info(
            "Started authorization",
            platform=self.platform.value,
            state=state[:8] + "...",
        )
        return url

    def _take_pending(self, state: str | None) -> PendingAuthorization:
        """Consume the attempt a code belongs to.

        Raises:
            AuthRejected: No attempt in progress, expired, or state mismatch
        """
        pending = self._pending
        if pending is None:
            raise AuthRejected(self.platform, "No authorization in progress")
        if state is not None and not secrets.compare_digest(state, pending.state):
            raise AuthRejected(self.platform, "OAuth state does not match")

        self._pending = None
        if pending.expired:
            raise AuthRejected(self.platform, "Authorization attempt expired. Please start over.")
        return pending

    def _client_auth(self, data: dict[str, str]) -> httpx.BasicAuth | None:
        """Attach client credentials to a token request body.

        Returns:
            HTTP basic auth to send, or None when credentials go in the body
        """
        data["client_id"] = self.config.client_id
        data["client_secret"] = self.config.client_secret
        return None

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        auth = self._client_auth(data)
        kwargs: dict[str, Any] = {
            "data": data,
            "headers": {"Content-Type": "application/x-www-form-urlencoded"},
        }
        if auth is not None:
            kwargs["auth"] = auth
        return await self._send("POST", self.token_endpoint, **kwargs)

    async def _token_record(self, response: httpx.Response, payload: dict[str, Any]) -> TokenRecord:
        """Build a record from a token endpoint reply."""
        return self._record(
            response,
            AuthRejected,
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
        )

    async def exchange_code(self, code: str, state: str | None = None) -> TokenRecord:
        """Exchange an authorization code for a token.

        Args:
            code: Authorization code handed back by the provider
            state: State from the redirect (None when the user pasted the code)

        Returns:
            New token record

        Raises:
            AuthRejected: If the attempt is unknown or the provider refuses
        """
        pending = self._take_pending(state)

        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
        }
        if self.uses_pkce:
            data["code_verifier"] = pending.code_verifier

        response = await self._post_token(data)
        payload = self._token_payload(response, AuthRejected, ("access_token",))
        return await self._token_record(response, payload)

    async def reauthorize(self) -> TokenRecord:
        """Code flows cannot finish unattended; hand the caller a URL instead."""
        raise InteractionRequired(self.platform, self.authorization_url())
