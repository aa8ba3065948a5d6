"""Configuration for multipost."""

from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Platform

MASTODON_OOB_REDIRECT = "urn:ietf:wg:oauth:2.0:oob"


class PlatformSettings(BaseSettings):
    """Settings shared by every platform section."""

    required: ClassVar[tuple[str, ...]] = ()

    def missing_settings(self) -> list[str]:
        """Names of required settings that are empty."""
        return [name for name in self.required if not getattr(self, name)]

    @property
    def is_configured(self) -> bool:
        return not self.missing_settings()


class BlueskyConfig(PlatformSettings):
    """Bluesky account settings (app password login)."""

    model_config = SettingsConfigDict(env_prefix="BLUESKY_")

    required: ClassVar[tuple[str, ...]] = ("username", "password")

    username: str = Field(
        default="",
        description="Handle or email used as the session identifier"
    )
    password: str = Field(
        default="",
        description="App password"
    )
    service_url: str = Field(
        default="https://bsky.social",
        description="PDS base URL"
    )


class TwitterConfig(PlatformSettings):
    """X/Twitter OAuth 2.0 PKCE settings."""

    model_config = SettingsConfigDict(env_prefix="TWITTER_")

    required: ClassVar[tuple[str, ...]] = ("client_id", "redirect_uri")

    client_id: str = Field(
        default="",
        description="OAuth 2.0 Client ID"
    )
    client_secret: str = Field(
        default="",
        description="OAuth 2.0 Client Secret (confidential clients only)"
    )
    redirect_uri: str = Field(
        default="",
        description="OAuth callback URL registered with the app"
    )


class MastodonConfig(PlatformSettings):
    """Mastodon instance OAuth settings."""

    model_config = SettingsConfigDict(env_prefix="MASTODON_")

    required: ClassVar[tuple[str, ...]] = ("client_id", "client_secret")

    instance_url: str = Field(
        default="https://fosstodon.org",
        description="Base URL of the Mastodon instance"
    )
    client_id: str = Field(
        default="",
        description="Application client key"
    )
    client_secret: str = Field(
        default="",
        description="Application client secret"
    )
    redirect_uri: str = Field(
        default=MASTODON_OOB_REDIRECT,
        description="OAuth redirect URI; out-of-band shows the code to the user"
    )


class LinkedInConfig(PlatformSettings):
    """LinkedIn OAuth 2.0 settings."""

    model_config = SettingsConfigDict(env_prefix="LINKEDIN_")

    required: ClassVar[tuple[str, ...]] = ("client_id", "client_secret", "redirect_uri")

    client_id: str = Field(
        default="",
        description="LinkedIn app Client ID"
    )
    client_secret: str = Field(
        default="",
        description="LinkedIn app Client Secret"
    )
    redirect_uri: str = Field(
        default="",
        description="OAuth callback URL registered with the app"
    )


class StorageConfig(BaseSettings):
    """Credential file settings."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    token_dir: str = Field(
        default=".",
        description="Directory holding <platform>_tokens.json files"
    )


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(
        default="127.0.0.1",
        description="Server host address"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Server port"
    )


class AppConfig(BaseSettings):
    """Main configuration combining all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-configs
    bluesky: BlueskyConfig = Field(default_factory=BlueskyConfig)
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    mastodon: MastodonConfig = Field(default_factory=MastodonConfig)
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to every platform request"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    def platform_config(self, platform: Platform) -> PlatformSettings:
        """Get the settings section for a platform."""
        return getattr(self, platform.value)

    @classmethod
    def from_yaml(cls, path: str) -> "AppConfig":
        """Load configuration from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)


def load_config() -> AppConfig:
    """Load configuration from environment and .env file."""
    return AppConfig()
