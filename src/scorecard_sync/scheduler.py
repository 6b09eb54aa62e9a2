"""Periodic state refresh.

Re-reads every managed scorecard on start, then on a configurable interval,
so drift made outside this tool shows up in the stored state. Uses asyncio
tasks, no external scheduler dependency.
"""

from __future__ import annotations

import asyncio
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_HOURS = 6


class RefreshScheduler:
    """Runs ``refresh_all`` in the background."""

    def __init__(self):
        self._task: asyncio.Task | None = None
        self._running = False
        self._interval_seconds = float(os.environ.get(
            "REFRESH_INTERVAL_HOURS",
            str(DEFAULT_REFRESH_INTERVAL_HOURS),
        )) * 3600

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        if self._running:
            return
        if not os.environ.get("DX_API_TOKEN"):
            logger.warning("DX_API_TOKEN not set, refresh scheduler disabled")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Refresh scheduler started (interval: %.1f hours)", self._interval_seconds / 3600)

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Refresh scheduler stopped")

    async def _run_loop(self):
        from .core.clients.dx import DXClient
        from .core.lifecycle import ScorecardLifecycle
        from .sync import refresh_all

        lifecycle = ScorecardLifecycle(DXClient.from_env())

        while self._running:
            try:
                await refresh_all(lifecycle)
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("Scheduled refresh failed: %s", exc, exc_info=True)
            try:
                await asyncio.sleep(self._interval_seconds)
            except asyncio.CancelledError:
                break
