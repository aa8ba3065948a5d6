"""Authorization service: connect and disconnect platforms.

Code-flow platforms authorize in two phases. begin_authorization()
returns the URL for the user to open; complete_authorization() takes
the code the provider handed back. Nothing here waits on the user.
"""

from dataclasses import dataclass

import structlog

from .errors import AuthRejected, StorageError, TransportError
from .models import Platform, TokenRecord
from .platforms.base import PlatformAdapter
from .platforms.oauth import OAuthCodeAdapter
from .session import SessionState

logger = structlog.get_logger()


@dataclass
class AuthorizationResult:
    """Where a platform's authorization stands after a call."""
    platform: Platform
    authorized: bool
    authorization_url: str | None = None
    subject_id: str | None = None
    # Set when the token is live in memory but could not be written to disk
    storage_error: StorageError | None = None

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "authorized": self.authorized,
            "authorization_url": self.authorization_url,
            "subject_id": self.subject_id,
            "storage_error": str(self.storage_error) if self.storage_error else None,
        }


class AuthorizationService:
    """Acquires, installs and revokes platform tokens."""

    def __init__(
        self,
        session: SessionState,
        adapters: dict[Platform, PlatformAdapter],
    ):
        """Initialize authorization service.

        Args:
            session: Shared session state
            adapters: Adapters for the configured platforms
        """
        self.session = session
        self.adapters = adapters

    def adapter(self, platform: Platform) -> PlatformAdapter:
        """Get the adapter for a platform.

        Raises:
            ValueError: If the platform is not configured
        """
        adapter = self.adapters.get(platform)
        if adapter is None:
            raise ValueError(f"{platform.value} is not configured")
        return adapter

    async def _install(self, platform: Platform, record: TokenRecord) -> AuthorizationResult:
        result = AuthorizationResult(
            platform=platform,
            authorized=True,
            subject_id=record.subject_id,
        )
        try:
            await self.session.store_token(platform, record)
        except StorageError as e:
            result.storage_error = e
        return result

    async def begin_authorization(self, platform: Platform) -> AuthorizationResult:
        """Start authorizing a platform.

        Password-grant platforms finish right away. Code-flow platforms
        return the URL the user has to open.

        Returns:
            AuthorizationResult, authorized or carrying authorization_url

        Raises:
            AuthRejected: If a password grant is refused
            TransportError: If the provider cannot be reached
        """
        adapter = self.adapter(platform)

        if isinstance(adapter, OAuthCodeAdapter):
            url = adapter.authorization_url()
            return AuthorizationResult(
                platform=platform,
                authorized=False,
                authorization_url=url,
            )

        record = await adapter.reauthorize()
        return await self._install(platform, record)

    async def complete_authorization(
        self,
        platform: Platform,
        code: str,
        state: str | None = None,
    ) -> AuthorizationResult:
        """Finish a code-flow authorization.

        On failure the platform's state is left untouched and nothing is
        persisted.

        Args:
            platform: Platform being authorized
            code: Authorization code from the provider
            state: OAuth state from the redirect, if there was one

        Raises:
            AuthRejected: If the code or attempt is rejected
            TransportError: If the provider cannot be reached
        """
        adapter = self.adapter(platform)
        if not isinstance(adapter, OAuthCodeAdapter):
            raise AuthRejected(platform, "Platform does not use authorization codes")

        try:
            record = await adapter.exchange_code(code, state)
        except (AuthRejected, TransportError) as e:
            logger.error("Authorization failed", platform=platform.value, error=str(e))
            raise

        return await self._install(platform, record)

    async def unlink(self, platform: Platform) -> bool:
        """Forget a platform's token, revoking it at the provider if possible.

        Returns:
            True if a token was dropped, False if none was held
        """
        token = self.session.token(platform)
        if token is None:
            return False

        adapter = self.adapters.get(platform)
        if adapter is not None:
            try:
                revoked = await adapter.revoke(token)
                logger.info("Revoked token", platform=platform.value, revoked=revoked)
            except TransportError as e:
                logger.warning("Failed to revoke token", platform=platform.value, error=str(e))

        await self.session.clear_token(platform)
        return True
