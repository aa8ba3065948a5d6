"""Broadcast coordinator.

Sends the session's message to every selected, authorized platform at
once. Best effort, not a transaction: each platform succeeds or fails
on its own and the message is cleared afterwards either way.
"""

import asyncio
from dataclasses import dataclass, field

import structlog

from .errors import MultipostError
from .executor import PostOutcome, ResilientPoster
from .models import Platform
from .platforms.base import PlatformAdapter
from .session import SessionState

logger = structlog.get_logger()


@dataclass
class BroadcastReport:
    """Per-platform outcomes of one broadcast."""
    outcomes: dict[Platform, PostOutcome] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[Platform]:
        return [p for p, o in self.outcomes.items() if o.success]

    @property
    def failed(self) -> list[Platform]:
        return [p for p, o in self.outcomes.items() if not o.success]

    def to_dict(self) -> dict:
        return {
            "succeeded": [p.value for p in self.succeeded],
            "failed": [p.value for p in self.failed],
            "outcomes": {p.value: o.to_dict() for p, o in self.outcomes.items()},
        }


class BroadcastCoordinator:
    """Fans one message out to the selected platforms."""

    def __init__(
        self,
        session: SessionState,
        adapters: dict[Platform, PlatformAdapter],
        poster: ResilientPoster | None = None,
    ):
        """Initialize coordinator.

        Args:
            session: Shared session state (message, selection, tokens)
            adapters: Adapters for the configured platforms
            poster: Resilient executor (one is built on the session if None)
        """
        self.session = session
        self.adapters = adapters
        self.poster = poster or ResilientPoster(session)

    async def broadcast(self) -> BroadcastReport:
        """Post the current message to every selected, authorized platform.

        Returns:
            BroadcastReport with one outcome per platform attempted
        """
        message, targets = await self.session.broadcast_plan()
        report = BroadcastReport()

        targets = [p for p in targets if p in self.adapters]
        try:
            if not message.strip():
                logger.warning("Nothing to broadcast, message is empty")
                return report
            if not targets:
                logger.warning("No selected platform is authorized")

            results = await asyncio.gather(
                *(self.poster.post(self.adapters[p], message) for p in targets),
                return_exceptions=True,
            )
        finally:
            await self.session.clear_message()

        for platform, result in zip(targets, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.exception(
                    "Unexpected error while posting",
                    platform=platform.value,
                    exc_info=result,
                )
                error = result if isinstance(result, MultipostError) else MultipostError(str(result))
                result = PostOutcome(platform=platform, success=False, error=error)

            report.outcomes[platform] = result
            self._report(result)

        return report

    @staticmethod
    def _report(outcome: PostOutcome) -> None:
        if outcome.success:
            logger.info(
                "Broadcast succeeded",
                platform=outcome.platform.value,
                post_id=outcome.post_id,
                attempts=outcome.attempts,
                refreshed=outcome.refreshed,
                reauthorized=outcome.reauthorized,
            )
        elif outcome.authorization_url:
            logger.warning(
                "Broadcast failed, user must reauthorize",
                platform=outcome.platform.value,
                authorization_url=outcome.authorization_url,
            )
        else:
            logger.warning(
                "Broadcast failed",
                platform=outcome.platform.value,
                attempts=outcome.attempts,
                error=str(outcome.error),
            )
