"""Main entry point for multipost.

Runs a local HTTP server that a desktop UI drives: authorize platforms,
receive OAuth callbacks, set the message and selection, and broadcast.
Every request is its own task on the event loop, so a slow platform
never holds up the UI.
"""

import asyncio
import json
import logging
import signal
from datetime import datetime, timezone

import structlog
from aiohttp import web

from .auth import AuthorizationService
from .broadcast import BroadcastCoordinator
from .config import AppConfig, load_config
from .errors import AuthError, StorageError, TransportError
from .models import Platform
from .platforms import build_adapters
from .platforms.base import PlatformAdapter
from .session import SessionState
from .storage import CredentialStore

logger = structlog.get_logger()


class MultipostApp:
    """Main application."""

    def __init__(self, config: AppConfig):
        """Initialize application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.session: SessionState | None = None
        self.adapters: dict[Platform, PlatformAdapter] = {}
        self.auth_service: AuthorizationService | None = None
        self.coordinator: BroadcastCoordinator | None = None
        self.app: web.Application | None = None
        self._running = False

    def setup(self, adapters: dict[Platform, PlatformAdapter] | None = None) -> None:
        """Load stored credentials and build services.

        Args:
            adapters: Prebuilt adapters (built from config if None)
        """
        store = CredentialStore(self.config.storage.token_dir)
        self.session = SessionState(store)
        self.session.load_credentials()

        self.adapters = adapters if adapters is not None else build_adapters(self.config)
        self.auth_service = AuthorizationService(self.session, self.adapters)
        self.coordinator = BroadcastCoordinator(self.session, self.adapters)

        logger.info("Multipost initialized", platforms=[p.value for p in self.adapters])

    async def cleanup(self) -> None:
        """Clean up resources."""
        self._running = False
        for adapter in self.adapters.values():
            await adapter.close()
        logger.info("Multipost cleaned up")

    # === Helpers ===

    @staticmethod
    def _platform(request: web.Request) -> Platform:
        name = request.match_info["platform"]
        try:
            return Platform(name)
        except ValueError:
            raise web.HTTPNotFound(
                text=json.dumps({"error": f"Unknown platform: {name}"}),
                content_type="application/json",
            ) from None

    @staticmethod
    async def _json_body(request: web.Request) -> dict:
        if not request.can_read_body:
            return {}
        try:
            data = await request.json()
        except json.JSONDecodeError:
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Body must be JSON"}),
                content_type="application/json",
            ) from None
        if not isinstance(data, dict):
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Body must be a JSON object"}),
                content_type="application/json",
            )
        return data

    @staticmethod
    def _error(e: Exception, status: int) -> web.Response:
        payload = {"error": str(e), "error_type": type(e).__name__}
        if isinstance(e, AuthError) and e.body:
            payload["detail"] = e.body
        return web.json_response(payload, status=status)

    # === HTTP Handlers ===

    async def handle_status(self, request: web.Request) -> web.Response:
        """Get authorization state, message and selection.

        GET /status
        """
        status = self.session.snapshot().to_dict()
        status["configured"] = [p.value for p in self.adapters]
        return web.json_response(status)

    async def handle_authorize(self, request: web.Request) -> web.Response:
        """Start authorizing a platform.

        POST /authorize/{platform}
        """
        platform = self._platform(request)
        try:
            result = await self.auth_service.begin_authorization(platform)
        except ValueError as e:
            return self._error(e, 404)
        except AuthError as e:
            logger.error("Authorization failed", platform=platform.value, error=str(e))
            return self._error(e, 400)
        except TransportError as e:
            return self._error(e, 502)

        return web.json_response(result.to_dict())

    async def _complete(
        self,
        platform: Platform,
        code: str | None,
        state: str | None,
    ) -> web.Response:
        if not code:
            return web.json_response({"error": "code is required"}, status=400)

        try:
            result = await self.auth_service.complete_authorization(platform, code, state)
        except ValueError as e:
            return self._error(e, 404)
        except AuthError as e:
            return self._error(e, 400)
        except TransportError as e:
            return self._error(e, 502)

        return web.json_response(result.to_dict())

    async def handle_callback(self, request: web.Request) -> web.Response:
        """Handle OAuth redirect from a provider.

        GET /callback/{platform}?code=xxx&state=xxx
        """
        platform = self._platform(request)
        error = request.query.get("error")
        if error:
            return web.json_response(
                {"error": f"{platform.value} authorization denied: {error}"},
                status=400,
            )

        state = request.query.get("state")
        if not state:
            return web.json_response({"error": "Missing state parameter"}, status=400)

        return await self._complete(platform, request.query.get("code"), state)

    async def handle_complete(self, request: web.Request) -> web.Response:
        """Finish authorization with a code the user pasted.

        POST /authorize/{platform}/complete
        Body: {"code": "...", "state": "..."}
        """
        platform = self._platform(request)
        data = await self._json_body(request)
        return await self._complete(platform, data.get("code"), data.get("state"))

    async def handle_unlink(self, request: web.Request) -> web.Response:
        """Forget a platform's token.

        POST /unlink/{platform}
        """
        platform = self._platform(request)
        try:
            removed = await self.auth_service.unlink(platform)
        except StorageError as e:
            return self._error(e, 500)

        if not removed:
            return web.json_response({"error": "Platform is not authorized"}, status=404)
        return web.json_response({"success": True, "platform": platform.value})

    async def handle_message(self, request: web.Request) -> web.Response:
        """Set the outbound message.

        PUT /message
        Body: {"text": "..."}
        """
        data = await self._json_body(request)
        text = data.get("text")
        if not isinstance(text, str):
            return web.json_response({"error": "text is required"}, status=400)

        await self.session.set_message(text)
        return web.json_response({"success": True})

    @staticmethod
    def _parse_platforms(names) -> list[Platform]:
        if not isinstance(names, list):
            raise ValueError("platforms must be a list")
        return [Platform(name) for name in names]

    async def handle_selection(self, request: web.Request) -> web.Response:
        """Choose the platforms for the next broadcast.

        PUT /selection
        Body: {"platforms": ["bluesky", "mastodon"]}
        """
        data = await self._json_body(request)
        try:
            platforms = self._parse_platforms(data.get("platforms"))
        except ValueError as e:
            return self._error(e, 400)

        await self.session.select_only(platforms)
        return web.json_response({"selected": sorted(p.value for p in platforms)})

    async def handle_broadcast(self, request: web.Request) -> web.Response:
        """Broadcast the message to the selected platforms.

        POST /broadcast
        Body (optional): {"text": "...", "platforms": [...]}
        """
        data = await self._json_body(request)

        if "platforms" in data:
            try:
                platforms = self._parse_platforms(data["platforms"])
            except ValueError as e:
                return self._error(e, 400)
            await self.session.select_only(platforms)

        if "text" in data:
            if not isinstance(data["text"], str):
                return web.json_response({"error": "text must be a string"}, status=400)
            await self.session.set_message(data["text"])

        report = await self.coordinator.broadcast()
        return web.json_response(report.to_dict())

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint.

        GET /health
        """
        return web.json_response({
            "status": "healthy",
            "configured": [p.value for p in self.adapters],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    # === Server Setup ===

    def create_app(self) -> web.Application:
        """Create aiohttp web application."""
        app = web.Application()

        # Routes
        app.router.add_get("/status", self.handle_status)
        app.router.add_post("/authorize/{platform}", self.handle_authorize)
        app.router.add_post("/authorize/{platform}/complete", self.handle_complete)
        app.router.add_get("/callback/{platform}", self.handle_callback)
        app.router.add_post("/unlink/{platform}", self.handle_unlink)
        app.router.add_put("/message", self.handle_message)
        app.router.add_put("/selection", self.handle_selection)
        app.router.add_post("/broadcast", self.handle_broadcast)
        app.router.add_get("/health", self.handle_health)

        return app

    async def run(self) -> None:
        """Run the server."""
        self.setup()
        self._running = True

        # Create app
        self.app = self.create_app()

        # Start server
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(
            runner,
            self.config.server.host,
            self.config.server.port,
        )
        await site.start()

        logger.info(
            "Multipost server started",
            host=self.config.server.host,
            port=self.config.server.port,
        )

        # Wait for shutdown signal
        try:
            while self._running:
                await asyncio.sleep(1)
        finally:
            await self.cleanup()
            await runner.cleanup()


def configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )


async def async_main(config: AppConfig | None = None) -> None:
    """Async main entry point."""
    if config is None:
        config = load_config()

    # Configure logging
    configure_logging(config.log_level)

    multipost = MultipostApp(config)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def shutdown():
        multipost._running = False

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown)

    await multipost.run()


def main() -> None:
    """Main entry point."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
