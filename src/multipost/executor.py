"""Resilient post executor.

Wraps one adapter's create_post so a stale token is renewed without the
caller knowing how each platform does it:

1. post with the current token
2. on PostUnauthorized, refresh (if supported)
3. if refresh is unsupported or refused, reauthorize
4. with a new token, post exactly once more

Two create_post attempts at most. Reauthorization that needs the user
never blocks here: it comes back as an InteractionRequired error carrying
the URL to open, and the caller finishes it later with
AuthorizationService.complete_authorization().
"""

from dataclasses import dataclass

import structlog

from .errors import (
    AuthError,
    InteractionRequired,
    MultipostError,
    PostError,
    PostUnauthorized,
    StorageError,
    TransportError,
)
from .models import AuthPhase, Platform, TokenRecord
from .platforms.base import PlatformAdapter
from .session import SessionState

logger = structlog.get_logger()

@dataclass
class PostOutcome:
    """Result of one resilient post to one platform."""
    platform: Platform
    success: bool
    attempts: int = 0
    post_id: str | None = None
    error: MultipostError | None = None
    refreshed: bool = False
    reauthorized: bool = False
    # Set when the new token could not be written to disk
    storage_error: StorageError | None = None

    @property
    def authorization_url(self) -> str | None:
        """URL the user must open when reauthorization needs them."""
        if isinstance(self.error, InteractionRequired):
            return self.error.authorization_url
        return None

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "success": self.success,
            "attempts": self.attempts,
            "post_id": self.post_id,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "authorization_url": self.authorization_url,
            "refreshed": self.refreshed,
            "reauthorized": self.reauthorized,
            "storage_error": str(self.storage_error) if self.storage_error else None,
        }


class ResilientPoster:
    """Runs the refresh-then-reauthorize protocol around create_post."""

    def __init__(self, session: SessionState):
        """Initialize executor.

        Args:
            session: Shared session state holding the current tokens
        """
        self.session = session

    async def post(self, adapter: PlatformAdapter, text: str) -> PostOutcome:
        """Post text through an adapter, renewing the token at most once.

        Args:
            adapter: Adapter for the target platform
            text: Message to publish

        Returns:
            PostOutcome; never raises for platform or network failures
        """
        platform = adapter.platform
        outcome = PostOutcome(platform=platform, success=False)

        token = self.session.token(platform)
        if token is None:
            outcome.error = AuthError(platform, "Not authorized")
            return outcome

        try:
            outcome.post_id = await self._attempt(adapter, token, text, outcome)
        except PostUnauthorized as e:
            logger.info("Access token rejected, renewing", platform=platform.value)
            new_token = await self._renew(adapter, token, outcome)
            if new_token is None:
                if outcome.error is None:
                    outcome.error = e
                return outcome

            try:
                outcome.post_id = await self._attempt(adapter, new_token, text, outcome)
            except (PostError, TransportError) as retry_error:
                outcome.error = retry_error
                return outcome
        except (PostError, TransportError) as e:
            outcome.error = e
            return outcome

        outcome.success = True
        return outcome

    async def _attempt(
        self,
        adapter: PlatformAdapter,
        token: TokenRecord,
        text: str,
        outcome: PostOutcome,
    ) -> str:
        outcome.attempts += 1
        return await adapter.create_post(token, text)

    def _newer_token(self, platform: Platform, token: TokenRecord) -> TokenRecord | None:
        current = self.session.token(platform)
        if current is not None and current != token:
            return current
        return None

    async def _renew(
        self,
        adapter: PlatformAdapter,
        token: TokenRecord,
        outcome: PostOutcome,
    ) -> TokenRecord | None:
        """Refresh, falling back to reauthorization.

        Returns:
            The installed replacement token, or None (outcome.error set
            when the failure is more specific than the 401)
        """
        platform = adapter.platform

        newer = self._newer_token(platform, token)
        if newer is not None:
            # Another task already renewed this platform
            return newer

        try:
            new_token = await self._refresh(adapter, token, outcome)
            if (
                new_token is None
                and outcome.error is None
                and self._newer_token(platform, token) is None
            ):
                new_token = await self._reauthorize(adapter, token, outcome)
        finally:
            # No-op once the token was replaced or dropped
            await self.session.set_phase(platform, AuthPhase.AUTHORIZED, expected=token)

        if new_token is None:
            newer = self._newer_token(platform, token)
            if newer is not None:
                logger.info("Using token renewed by a concurrent post", platform=platform.value)
                outcome.error = None
            return newer

        try:
            await self.session.store_token(platform, new_token)
        except StorageError as e:
            # In-memory token is already installed; keep going
            outcome.storage_error = e
        return new_token

    async def _refresh(
        self,
        adapter: PlatformAdapter,
        token: TokenRecord,
        outcome: PostOutcome,
    ) -> TokenRecord | None:
        platform = adapter.platform
        if not (adapter.supports_refresh and token.refresh_token):
            return None

        await self.session.set_phase(platform, AuthPhase.REFRESHING, expected=token)
        try:
            new_token = await adapter.refresh(token)
        except TransportError as e:
            outcome.error = e
            return None
        except AuthError as e:
            logger.warning(
                "Token refresh rejected, reauthorizing",
                platform=platform.value,
                error=str(e),
            )
            return None

        outcome.refreshed = True
        return new_token

    async def _reauthorize(
        self,
        adapter: PlatformAdapter,
        token: TokenRecord,
        outcome: PostOutcome,
    ) -> TokenRecord | None:
        platform = adapter.platform
        await self.session.set_phase(platform, AuthPhase.REAUTHORIZING, expected=token)
        try:
            new_token = await adapter.reauthorize()
        except TransportError as e:
            outcome.error = e
            return None
        except AuthError as e:
            if isinstance(e, InteractionRequired):
                logger.warning("Reauthorization needs the user", platform=platform.value)
            else:
                logger.error("Reauthorization failed", platform=platform.value, error=str(e))
            outcome.error = e
            await self._drop_token(platform, token)
            return None

        outcome.reauthorized = True
        return new_token

    async def _drop_token(self, platform: Platform, token: TokenRecord) -> None:
        try:
            await self.session.clear_token(platform, expected=token)
        except StorageError as e:
            logger.error("Failed to remove stale credentials", platform=platform.value, error=str(e))
