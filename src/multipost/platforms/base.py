"""Platform adapter interface and shared HTTP handling.

Every adapter exposes the same capability set so the executor never
needs platform-specific knowledge:

- reauthorize(): get a fresh token unattended, or raise InteractionRequired
- refresh(token): exchange a refresh token (supports_refresh only)
- create_post(token, text): returns the post id, raises PostUnauthorized
  or PostRejected otherwise
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from ..config import PlatformSettings
from ..errors import (
    AuthError,
    ConfigurationError,
    PostRejected,
    PostUnauthorized,
    RefreshRejected,
    TransportError,
)
from ..models import Platform, TokenRecord

logger = structlog.get_logger()

USER_AGENT = "multipost/0.1"


class PlatformAdapter(ABC):
    """Base class for a platform's auth and posting calls."""

    platform: Platform
    supports_refresh: bool = False
    # True when reauthorization needs the user to hand back a code
    interactive_reauth: bool = True

    def __init__(
        self,
        config: PlatformSettings,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize adapter.

        Args:
            config: Settings section for this platform
            timeout: Seconds before any request is abandoned
            http_client: Shared HTTP client (the adapter creates its own if None)

        Raises:
            ConfigurationError: If required settings are missing
        """
        missing = config.missing_settings()
        if missing:
            raise ConfigurationError(self.platform, missing)

        self.config = config
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping network failures to TransportError."""
        client = await self._get_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                "Request failed",
                platform=self.platform.value,
                url=url,
                error=repr(e),
            )
            raise TransportError(self.platform, str(e) or type(e).__name__) from e

    # === Response handling ===

    def _token_payload(
        self,
        response: httpx.Response,
        error_cls: type[AuthError],
        required: tuple[str, ...],
    ) -> dict[str, Any]:
        """Parse a token endpoint reply.

        Args:
            response: Reply from the token endpoint
            error_cls: AuthError subclass to raise on failure
            required: Fields that must be present, non-empty strings

        Returns:
            Parsed JSON body

        Raises:
            AuthError: error_cls on a non-success status or unusable body
        """
        if not response.is_success:
            raise error_cls(
                self.platform,
                "Token request rejected",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or not all(
            isinstance(payload.get(k), str) and payload.get(k) for k in required
        ):
            raise error_cls(
                self.platform,
                "Unparsable token response",
                status_code=response.status_code,
                body=response.text,
            )
        return payload

    def _record(
        self,
        response: httpx.Response,
        error_cls: type[AuthError],
        **fields: Any,
    ) -> TokenRecord:
        """Build a TokenRecord from reply fields.

        Raises:
            AuthError: error_cls if a field has the wrong type
        """
        try:
            return TokenRecord(**fields)
        except ValidationError as e:
            raise error_cls(
                self.platform,
                "Unparsable token response",
                status_code=response.status_code,
                body=response.text,
            ) from e

    def _is_unauthorized(self, response: httpx.Response) -> bool:
        return response.status_code == 401

    def _check_post_response(self, response: httpx.Response) -> dict[str, Any]:
        """Classify a create-post reply.

        Returns:
            Parsed JSON body of a successful reply ({} if not JSON)

        Raises:
            PostUnauthorized: The token was rejected
            PostRejected: Any other non-success status
        """
        if response.is_success:
            try:
                payload = response.json()
            except ValueError:
                return {}
            return payload if isinstance(payload, dict) else {}

        if self._is_unauthorized(response):
            raise PostUnauthorized(self.platform, response.status_code, response.text)
        raise PostRejected(self.platform, response.status_code, response.text)

    # === Capabilities ===

    async def refresh(self, token: TokenRecord) -> TokenRecord:
        """Exchange the refresh token for a new record.

        Raises:
            RefreshRejected: Refresh is unsupported or the refresh token is invalid
        """
        raise RefreshRejected(self.platform, "Token refresh not supported")

    @abstractmethod
    async def reauthorize(self) -> TokenRecord:
        """Obtain a brand-new token.

        Raises:
            InteractionRequired: The user has to authorize again
            AuthRejected: The provider refused the credentials
        """

    @abstractmethod
    async def create_post(self, token: TokenRecord, text: str) -> str:
        """Publish text.

        Returns:
            Identifier of the created post

        Raises:
            PostUnauthorized: The access token was rejected
            PostRejected: The platform refused the post
            TransportError: The request never got a reply
        """

    async def revoke(self, token: TokenRecord) -> bool:
        """Revoke a token at the provider, if the platform supports it."""
        return False


def bearer(token: TokenRecord) -> dict[str, str]:
    return {"Authorization": f"Bearer {token.access_token}"}
