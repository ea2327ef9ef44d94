"""
Liveness HTTP server for uptime probes and hosting platforms.

GET /        -> 200 "<name> bot OK"
GET /health  -> 200 {"ok": true, "service": "mc-status-panel"}
"""
from typing import Optional

from aiohttp import web
import structlog

logger = structlog.get_logger()

SERVICE_NAME = "mc-status-panel"


class HealthCheckServer:
    """Minimal HTTP server with fixed OK responses."""

    def __init__(self, host: str = "0.0.0.0", port: int = 3000, name: str = "MC Status Panel"):
        """
        Initialize health check server.

        Args:
            host: Host to bind to (default: 0.0.0.0)
            port: Port to bind to (default: 3000)
            name: Display name used in the root response
        """
        self.host = host
        self.port = port
        self.name = name
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/", self.root_handler)
        self.app.router.add_get("/health", self.health_handler)

    async def root_handler(self, request: web.Request) -> web.Response:
        return web.Response(text=f"{self.name} bot OK")

    async def health_handler(self, request: web.Request) -> web.Response:
        return web.json_response({"ok": True, "service": SERVICE_NAME})

    async def start(self) -> None:
        """Start the health check server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info("health_server_started", host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop the health check server."""
        if self.site is not None:
            await self.site.stop()
            self.site = None

        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None

        logger.info("health_server_stopped")
