"""Diagnostic heartbeat for the shared cycle timer.

While the timer holds an anchor, the heartbeat logs the computed cycle,
position and phase once per tick. It never changes the timer and stops on its
own as soon as the anchor is gone.
"""

from __future__ import annotations

import asyncio
import logging

from autobet_meter.core.settings import settings
from autobet_meter.services.cycle_timer import CyclePhase, CycleTimer

logger = logging.getLogger(__name__)


class CycleHeartbeat:
    """Periodically logs the state of a CycleTimer."""

    def __init__(self, timer: CycleTimer, interval_seconds: float | None = None) -> None:
        self.timer = timer
        self.interval_seconds = max(
            0.05,
            float(
                settings.heartbeat_interval_seconds
                if interval_seconds is None
                else interval_seconds
            ),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_running(self) -> None:
        """Start the heartbeat loop if it is not already running.

        Must be called from within a running event loop.
        """
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the heartbeat loop and wait for it to finish."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def beat(self) -> bool:
        """Log one heartbeat line. Returns False once the timer has no anchor."""
        reading = self.timer.snapshot()
        if reading.phase is CyclePhase.ABSENT:
            logger.info("Cycle timer no longer anchored - stopping heartbeat")
            return False

        logger.info(
            "Cycle %d - position: %ds - startBetting: %s, timer: %s",
            reading.cycle_number,
            int(reading.position),
            reading.active,
            f"{reading.remaining:.1f}" if reading.remaining is not None else "0",
        )
        return True

    async def _run(self) -> None:
        while not self._stopping.is_set():
            if not self.beat():
                return
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
