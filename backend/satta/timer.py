"""Game clock — background task that feeds elapsed time into a session."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Awaitable, Callable, Optional

from satta.game_manager import GameSession
from satta.models import GameSnapshot, GameStatus

logger = logging.getLogger(__name__)

# How often the clock loop ticks (seconds); one second is one time unit
TICK_INTERVAL = float(os.getenv("SATTA_TICK_INTERVAL", "1.0"))

Listener = Callable[[GameSnapshot], Awaitable[None]]


class GameClock:
    """Drives ``GameSession.tick`` from a single asyncio background loop."""

    def __init__(self, session: GameSession, time_scale: float = 1.0) -> None:
        self._session = session
        self._task: asyncio.Task | None = None
        self._listener: Optional[Listener] = None
        # Time units per wall-clock second
        self.time_scale = time_scale

    def set_listener(self, listener: Optional[Listener]) -> None:
        """Register the coroutine that receives a snapshot after each tick."""
        self._listener = listener

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background clock loop."""
        if not self.running:
            self._task = asyncio.create_task(self._loop())
            logger.info("Game clock started")

    def stop(self) -> None:
        """Stop the background clock loop."""
        if self._task and not self._task.done():
            self._task.cancel()
            logger.info("Game clock stopped")

    async def _loop(self) -> None:
        """Main clock loop — measures real elapsed time between ticks."""
        last = time.monotonic()
        try:
            while True:
                await asyncio.sleep(TICK_INTERVAL)
                now = time.monotonic()
                elapsed = (now - last) * self.time_scale
                last = now

                if self._session.state.status != GameStatus.PLAYING:
                    continue

                try:
                    snapshot = await self._session.tick(elapsed)
                except Exception:
                    logger.exception("Clock tick failed")
                    continue

                if self._listener is not None:
                    try:
                        await self._listener(snapshot)
                    except Exception:
                        logger.debug("Snapshot listener failed", exc_info=True)
        except asyncio.CancelledError:
            pass
