"""Shared session state for all platforms.

One SessionState object is created at startup and handed to every
service that needs it. Every mutation happens inside a single
asyncio.Lock; readers that only render may take a lock-free snapshot.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

import structlog

from .errors import StorageError
from .models import AuthPhase, Platform, TokenRecord
from .storage import CredentialStore

logger = structlog.get_logger()


@dataclass
class PlatformSession:
    """Authorization state held for one platform."""
    phase: AuthPhase = AuthPhase.UNAUTHORIZED
    token: TokenRecord | None = None

    @property
    def authorized(self) -> bool:
        return self.phase != AuthPhase.UNAUTHORIZED


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time copy of the session for rendering."""
    platforms: dict[Platform, PlatformSession]
    message: str
    selected: frozenset[Platform] = field(default_factory=frozenset)

    def is_authorized(self, platform: Platform) -> bool:
        session = self.platforms.get(platform)
        return bool(session and session.authorized)

    def to_dict(self) -> dict:
        """Render without credentials."""
        return {
            "message": self.message,
            "selected": sorted(p.value for p in self.selected),
            "platforms": {
                platform.value: {
                    "authorized": session.authorized,
                    "phase": session.phase.value,
                    "subject_id": session.token.subject_id if session.token else None,
                }
                for platform, session in self.platforms.items()
            },
        }


class SessionState:
    """Mutation-guarded record of per-platform tokens, message and selection."""

    def __init__(
        self,
        store: CredentialStore,
        platforms: Iterable[Platform] = tuple(Platform),
    ):
        """Initialize session state.

        Args:
            store: Credential store that mirrors every token change
            platforms: Platforms tracked by this session
        """
        self.store = store
        self._lock = asyncio.Lock()
        self._platforms: dict[Platform, PlatformSession] = {
            platform: PlatformSession() for platform in platforms
        }
        self._message = ""
        self._selected: set[Platform] = set()

    def _session(self, platform: Platform) -> PlatformSession:
        try:
            return self._platforms[platform]
        except KeyError:
            raise ValueError(f"Platform not tracked by this session: {platform.value}") from None

    # === Startup ===

    def load_credentials(self) -> list[Platform]:
        """Load stored tokens once at process start.

        Returns:
            Platforms that came back authorized
        """
        loaded = []
        for platform, session in self._platforms.items():
            record = self.store.load(platform)
            if record is None:
                continue
            session.token = record
            session.phase = AuthPhase.AUTHORIZED
            loaded.append(platform)

        logger.info("Loaded stored credentials", platforms=[p.value for p in loaded])
        return loaded

    # === Reads ===

    def snapshot(self) -> SessionSnapshot:
        """Best-effort copy of the current state, taken without the lock."""
        return SessionSnapshot(
            platforms={p: replace(s) for p, s in self._platforms.items()},
            message=self._message,
            selected=frozenset(self._selected),
        )

    def token(self, platform: Platform) -> TokenRecord | None:
        return self._session(platform).token

    def phase(self, platform: Platform) -> AuthPhase:
        return self._session(platform).phase

    @property
    def platforms(self) -> list[Platform]:
        return list(self._platforms)

    # === Token mutations ===

    async def store_token(self, platform: Platform, record: TokenRecord) -> None:
        """Install a new token and mark the platform authorized.

        The in-memory state is updated even when persisting fails, so the
        running session stays usable.

        Raises:
            StorageError: If the credential file could not be written
        """
        async with self._lock:
            session = self._session(platform)
            session.token = record
            session.phase = AuthPhase.AUTHORIZED
            try:
                await asyncio.to_thread(self.store.save, platform, record)
            except StorageError as e:
                logger.error(
                    "Failed to persist credentials",
                    platform=platform.value,
                    error=str(e),
                )
                raise

        logger.info("Platform authorized", platform=platform.value)

    async def clear_token(self, platform: Platform, expected: TokenRecord | None = None) -> bool:
        """Drop a platform's token and mark it unauthorized.

        Args:
            platform: Platform to forget
            expected: Only clear if this is still the current token

        Returns:
            False if the token was replaced meanwhile and was left alone

        Raises:
            StorageError: If the credential file could not be removed
        """
        async with self._lock:
            session = self._session(platform)
            if expected is not None and session.token != expected:
                return False
            session.token = None
            session.phase = AuthPhase.UNAUTHORIZED
            await asyncio.to_thread(self.store.delete, platform)

        logger.info("Platform unauthorized", platform=platform.value)
        return True

    async def set_phase(
        self,
        platform: Platform,
        phase: AuthPhase,
        expected: TokenRecord | None = None,
    ) -> bool:
        """Move an authorized platform through the refresh/reauth phases.

        Args:
            platform: Platform to update
            phase: New phase
            expected: Only update while this is still the current token

        Returns:
            False if the platform lost or replaced its token meanwhile
            and was left alone
        """
        async with self._lock:
            session = self._session(platform)
            if phase != AuthPhase.UNAUTHORIZED and session.token is None:
                return False
            if expected is not None and session.token != expected:
                return False
            session.phase = phase
            return True

    # === Message and selection ===

    async def set_message(self, text: str) -> None:
        async with self._lock:
            self._message = text

    async def clear_message(self) -> None:
        async with self._lock:
            self._message = ""

    async def set_selected(self, platform: Platform, selected: bool = True) -> None:
        async with self._lock:
            self._session(platform)
            if selected:
                self._selected.add(platform)
            else:
                self._selected.discard(platform)

    async def select_only(self, platforms: Iterable[Platform]) -> None:
        """Replace the selection with exactly these platforms."""
        platforms = set(platforms)
        async with self._lock:
            for platform in platforms:
                self._session(platform)
            self._selected = platforms

    async def broadcast_plan(self) -> tuple[str, list[Platform]]:
        """Read the message and the selected, authorized platforms together.

        Returns:
            (message, platforms) in the session's platform order
        """
        async with self._lock:
            targets = [
                platform
                for platform, session in self._platforms.items()
                if platform in self._selected and session.authorized
            ]
            return self._message, targets
