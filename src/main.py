"""
MC Status Panel - Main Entry Point

Discord bot that keeps one live status panel per channel (or guild) showing
the Minecraft server's player count, plus presence text and slash commands.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Optional

import structlog

from config import Config, load_config
from discord_bot import DiscordBot
from health import HealthCheckServer
from panel_reconciler import PanelReconciler
from panel_store import PanelStore
from status_service import StatusService
from status_sources import create_status_source

logger = structlog.get_logger()


def setup_logging(log_level: str, log_format: str) -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (debug, info, warning, error, critical)
        log_format: Output format ("json" or "console")
    """
    level_map: dict[str, int] = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    min_level = level_map.get(log_level.lower(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # discord.py logs through the stdlib
    logging.basicConfig(level=max(min_level, logging.INFO))

    logger.info("logging_configured", level=log_level, format=log_format)


class Application:
    """Main application orchestrator."""

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize application components."""
        self.config: Optional[Config] = config
        self.health_server: Optional[HealthCheckServer] = None
        self.bot: Optional[DiscordBot] = None
        self.status_service: Optional[StatusService] = None
        self.store: Optional[PanelStore] = None
        self.reconciler: Optional[PanelReconciler] = None
        self.shutdown_event: asyncio.Event = asyncio.Event()

    async def setup(self) -> None:
        """Load configuration and build every component (nothing connects yet)."""
        logger.info("application_starting")

        if self.config is None:
            try:
                self.config = load_config()
            except Exception as e:
                logger.error("config_load_failed", error=str(e))
                raise

        config = self.config
        setup_logging(config.log_level, config.log_format)

        self.health_server = HealthCheckServer(
            host=config.health_check_host,
            port=config.health_check_port,
            name=config.mc_name,
        )

        self.bot = DiscordBot(config)
        source = create_status_source(config, bot=self.bot)
        self.status_service = StatusService(source)
        self.store = PanelStore(config.panel_state_file)
        self.reconciler = PanelReconciler(
            bot=self.bot,
            config=config,
            store=self.store,
            status=self.status_service,
        )
        self.bot.set_services(self.status_service, self.reconciler)

        logger.info(
            "application_configured",
            health_port=config.health_check_port,
            status_source=config.status_source.value,
            panel_state_file=str(config.panel_state_file),
            stored_panels=len(self.store.keys()),
        )

    async def start(self) -> None:
        """Start the health server, then connect to Discord."""
        logger.info("application_starting_components")
        assert self.config is not None, "Config not loaded"
        assert self.health_server is not None, "Health server not initialized"
        assert self.bot is not None, "Bot not initialized"

        # Health first so hosting platforms see the process as alive during login
        await self.health_server.start()

        await self.bot.connect_bot()
        logger.info("application_running")

    async def stop(self) -> None:
        """Gracefully stop all components."""
        logger.info("application_stopping")

        if self.bot is not None:
            try:
                await self.bot.disconnect_bot()
            except Exception as e:
                logger.error("discord_disconnect_failed", error=str(e))

        if self.status_service is not None:
            try:
                await self.status_service.close()
            except Exception as e:
                logger.error("status_source_close_failed", error=str(e))

        if self.health_server is not None:
            try:
                await self.health_server.stop()
            except Exception as e:
                logger.error("health_server_stop_failed", error=str(e))

        logger.info("application_stopped")

    async def run(self) -> None:
        """Main application run loop."""
        try:
            await self.setup()
            await self.start()
            await self.shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info("received_keyboard_interrupt")
        except Exception as e:
            logger.error("application_error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()


async def main() -> None:
    """Main async entry point."""
    app = Application()

    def _signal_handler(signum: int, frame: Any) -> None:
        logger.info("received_signal", signal=signal.Signals(signum).name)
        app.shutdown_event.set()

    # Not available on every platform or outside the main thread
    try:
        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)
    except ValueError:
        logger.debug("signal_handlers_unavailable")

    try:
        await app.run()
    except Exception as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown complete.")
        sys.exit(0)


if __name__ == "__main__":
    run()
