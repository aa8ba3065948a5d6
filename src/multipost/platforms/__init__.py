"""Platform adapters and the registry that builds them from configuration."""

import httpx
import structlog

from ..config import AppConfig
from ..errors import ConfigurationError
from ..models import Platform
from .base import PlatformAdapter
from .bluesky import BlueskyAdapter
from .linkedin import LinkedInAdapter
from .mastodon import MastodonAdapter
from .oauth import OAuthCodeAdapter, PendingAuthorization
from .twitter import TwitterAdapter

logger = structlog.get_logger()

ADAPTER_CLASSES: dict[Platform, type[PlatformAdapter]] = {
    Platform.BLUESKY: BlueskyAdapter,
    Platform.TWITTER: TwitterAdapter,
    Platform.MASTODON: MastodonAdapter,
    Platform.LINKEDIN: LinkedInAdapter,
}


def build_adapters(
    config: AppConfig,
    http_client: httpx.AsyncClient | None = None,
) -> dict[Platform, PlatformAdapter]:
    """Build an adapter for every configured platform.

    A platform with missing settings is logged and left out; the others
    are still returned.

    Args:
        config: Application configuration
        http_client: Optional HTTP client shared by all adapters

    Returns:
        Adapters keyed by platform
    """
    adapters: dict[Platform, PlatformAdapter] = {}
    for platform, adapter_cls in ADAPTER_CLASSES.items():
        try:
            adapters[platform] = adapter_cls(
                config.platform_config(platform),
                timeout=config.http_timeout_seconds,
                http_client=http_client,
            )
        except ConfigurationError as e:
            logger.error(
                "Platform disabled",
                platform=platform.value,
                missing=e.missing,
            )

    logger.info("Adapters ready", platforms=[p.value for p in adapters])
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "BlueskyAdapter",
    "LinkedInAdapter",
    "MastodonAdapter",
    "OAuthCodeAdapter",
    "PendingAuthorization",
    "PlatformAdapter",
    "TwitterAdapter",
    "build_adapters",
]
