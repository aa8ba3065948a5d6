"""Multipost: one message, several social platforms.

Authorizes against Bluesky, X/Twitter, Mastodon and LinkedIn and
broadcasts a message to every selected platform. Stale tokens are
renewed transparently while posting.

Key components:
- storage: per-platform JSON credential files
- session: lock-guarded shared session state
- platforms: one adapter per platform behind a common interface
- executor: refresh-then-reauthorize retry around create_post
- broadcast: best-effort fan-out to the selected platforms
- auth: two-phase authorization and unlinking
- main: HTTP server entry point for the UI
"""

from .auth import AuthorizationResult, AuthorizationService
from .broadcast import BroadcastCoordinator, BroadcastReport
from .config import (
    AppConfig,
    BlueskyConfig,
    LinkedInConfig,
    MastodonConfig,
    ServerConfig,
    StorageConfig,
    TwitterConfig,
    load_config,
)
from .errors import (
    AuthError,
    AuthRejected,
    ConfigurationError,
    InteractionRequired,
    MultipostError,
    PostError,
    PostRejected,
    PostUnauthorized,
    RefreshRejected,
    StorageError,
    TransportError,
)
from .executor import PostOutcome, ResilientPoster
from .models import AuthPhase, Platform, TokenRecord
from .platforms import (
    BlueskyAdapter,
    LinkedInAdapter,
    MastodonAdapter,
    PlatformAdapter,
    TwitterAdapter,
    build_adapters,
)
from .session import SessionSnapshot, SessionState
from .storage import CredentialStore

__version__ = "0.1.0"

__all__ = [
    # Auth
    "AuthorizationResult",
    "AuthorizationService",
    # Broadcast
    "BroadcastCoordinator",
    "BroadcastReport",
    # Config
    "AppConfig",
    "BlueskyConfig",
    "LinkedInConfig",
    "MastodonConfig",
    "ServerConfig",
    "StorageConfig",
    "TwitterConfig",
    "load_config",
    # Errors
    "AuthError",
    "AuthRejected",
    "ConfigurationError",
    "InteractionRequired",
    "MultipostError",
    "PostError",
    "PostRejected",
    "PostUnauthorized",
    "RefreshRejected",
    "StorageError",
    "TransportError",
    # Executor
    "PostOutcome",
    "ResilientPoster",
    # Models
    "AuthPhase",
    "Platform",
    "TokenRecord",
    # Platforms
    "BlueskyAdapter",
    "LinkedInAdapter",
    "MastodonAdapter",
    "PlatformAdapter",
    "TwitterAdapter",
    "build_adapters",
    # Session
    "CredentialStore",
    "SessionSnapshot",
    "SessionState",
]
