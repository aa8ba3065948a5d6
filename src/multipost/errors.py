"""Error taxonomy for multipost.

Adapters raise these; the executor and coordinator turn them into
per-platform results so one platform's failure never aborts another.
"""

from .models import Platform


class MultipostError(Exception):
    """Base class for every multipost error."""
    pass


class ConfigurationError(MultipostError):
    """Required settings for a platform are missing."""

    def __init__(self, platform: Platform, missing: list[str]):
        self.platform = platform
        self.missing = missing
        super().__init__(
            f"{platform.value} is not configured, missing: {', '.join(missing)}"
        )


class TransportError(MultipostError):
    """Network, DNS or timeout failure talking to a platform."""

    def __init__(self, platform: Platform, message: str):
        self.platform = platform
        self.message = message
        super().__init__(f"{platform.value} transport error: {message}")


class StorageError(MultipostError):
    """Writing a credential file failed."""

    def __init__(self, platform: Platform, path: str, message: str):
        self.platform = platform
        self.path = path
        self.message = message
        super().__init__(f"Failed to store {platform.value} credentials at {path}: {message}")


class AuthError(MultipostError):
    """Error acquiring or renewing a platform credential."""

    def __init__(
        self,
        platform: Platform,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        self.platform = platform
        self.message = message
        self.status_code = status_code
        self.body = body
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{platform.value} auth error{detail}: {message}")


class AuthRejected(AuthError):
    """The provider refused the grant (code, password or unparsable reply)."""
    pass


class RefreshRejected(AuthError):
    """The refresh token itself is no longer accepted."""
    pass


class InteractionRequired(AuthError):
    """Reauthorization needs the user to visit a URL and supply a code."""

    def __init__(self, platform: Platform, authorization_url: str):
        self.authorization_url = authorization_url
        super().__init__(platform, "User authorization required")


class PostError(MultipostError):
    """A create-post call did not succeed."""

    def __init__(self, platform: Platform, status_code: int | None, body: str = ""):
        self.platform = platform
        self.status_code = status_code
        self.body = body
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{platform.value} post failed{detail}: {body}")


class PostUnauthorized(PostError):
    """The platform rejected the access token."""
    pass


class PostRejected(PostError):
    """The platform declined the post for a non-auth reason. Not retried."""
    pass
