"""Fixed-interval refresh of every stored panel.

The timer is the retry mechanism: a failed pass is logged and the next tick
tries again. An in-flight pass is never interrupted by the next tick.
"""

import asyncio
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


class PanelUpdater:
    """Background loop calling PanelReconciler.refresh_all()."""

    def __init__(self, bot: Any, reconciler: Any, interval: float = 60.0) -> None:
        self.bot = bot
        self.reconciler = reconciler
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def _update_loop(self) -> None:
        logger.info("panel_update_loop_started", interval=self.interval)
        try:
            # Survives gateway drops; passes are skipped until the session is back
            while not self.bot.is_closed():
                if self.bot._connected:
                    try:
                        refreshed = await self.reconciler.refresh_all()
                        logger.debug("panels_refreshed", count=refreshed)
                    except Exception as e:
                        logger.error("panel_update_pass_failed", error=str(e), exc_info=True)
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            logger.info("panel_update_loop_cancelled")
            raise
        finally:
            logger.info("panel_update_loop_stopped")

    async def start(self) -> None:
        """Start the loop (first pass runs immediately) unless it is already running."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._update_loop())
            logger.info("panel_updater_started")
        else:
            logger.debug("panel_updater_already_running")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("panel_updater_stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
