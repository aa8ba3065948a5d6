"""Credential store: one JSON file per platform.

A missing or unreadable file means "never authorized"; only writes can
fail loudly. Single process, single writer, no file locking.
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from .errors import StorageError
from .models import Platform, TokenRecord

logger = structlog.get_logger()

TOKEN_FILE_SUFFIX = "_tokens.json"


class CredentialStore:
    """Persists a TokenRecord per platform under a directory."""

    def __init__(self, directory: str | Path = "."):
        """Initialize credential store.

        Args:
            directory: Directory holding the per-platform token files
        """
        self.directory = Path(directory)

    def path_for(self, platform: Platform) -> Path:
        """Get the token file path for a platform."""
        return self.directory / f"{platform.value}{TOKEN_FILE_SUFFIX}"

    def save(self, platform: Platform, record: TokenRecord) -> None:
        """Write a record, replacing whatever the file held before.

        Args:
            platform: Platform the record belongs to
            record: Token record to persist

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.path_for(platform)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(record.model_dump_json(), encoding="utf-8")
        except OSError as e:
            raise StorageError(platform, str(path), str(e)) from e

        logger.debug("Saved credentials", platform=platform.value, path=str(path))

    def load(self, platform: Platform) -> TokenRecord | None:
        """Read a platform's record.

        Args:
            platform: Platform to load

        Returns:
            The stored TokenRecord, or None if absent, unreadable or invalid
        """
        path = self.path_for(platform)
        if not path.exists():
            return None

        try:
            return TokenRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning(
                "Ignoring unreadable credential file",
                platform=platform.value,
                path=str(path),
                error=str(e),
            )
            return None

    def delete(self, platform: Platform) -> bool:
        """Remove a platform's record.

        Returns:
            True if a file was removed, False if there was none

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        path = self.path_for(platform)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(platform, str(path), str(e)) from e
        return True
