"""Data model for platform credentials and authorization state."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    """Platforms a message can be broadcast to."""
    BLUESKY = "bluesky"
    TWITTER = "twitter"
    MASTODON = "mastodon"
    LINKEDIN = "linkedin"


class AuthPhase(str, Enum):
    """Authorization state of a single platform.

    unauthorized -> authorized -> refreshing -> authorized
                                             -> reauthorizing -> authorized
                                                              -> unauthorized
    """
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"
    REFRESHING = "refreshing"        # Post got a 401, trying the refresh token
    REAUTHORIZING = "reauthorizing"  # Refresh failed or unsupported


class TokenRecord(BaseModel):
    """Credential held for one platform.

    Replaced wholesale on refresh or reauthorization, never patched.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1, description="Bearer credential for API calls")
    refresh_token: str | None = Field(
        default=None,
        description="Exchanged for a new access token (platforms with refresh only)",
    )
    subject_id: str | None = Field(
        default=None,
        description="Account identifier, e.g. Bluesky DID or LinkedIn member id",
    )
