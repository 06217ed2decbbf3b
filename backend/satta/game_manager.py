"""Game session — holds the current GameState and serialises all mutations.

The renderer and the clock driver both go through one GameSession. Every
operation runs under an asyncio lock, so a clock tick can never land in
the middle of a turn resolution.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional, Sequence

from satta import engine
from satta.engine import GameState, InvalidMove
from satta.models import GameSettings, GameSnapshot

logger = logging.getLogger(__name__)


class GameSession:
    """Single-device game: one table, in memory only."""

    def __init__(
        self,
        settings: Optional[GameSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or GameSettings()
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self.state: GameState = GameState(settings=self.settings)

    def snapshot(self) -> GameSnapshot:
        return engine.build_snapshot(self.state)

    async def _apply(
        self, label: str, transition: Callable[[GameState], GameState]
    ) -> GameSnapshot:
        """Run *transition* on the current state; rejected moves keep it."""
        async with self._lock:
            try:
                self.state = transition(self.state)
            except InvalidMove as exc:
                logger.info("Rejected %s: %s", label, exc)
            return self.snapshot()

    async def start_game(self, player_names: Sequence[str], player_count: int) -> GameSnapshot:
        """Deal a new game. Bad names raise pydantic ``ValidationError``."""
        async with self._lock:
            try:
                self.state = engine.start_game(
                    player_names, player_count, settings=self.settings, rng=self._rng
                )
            except ValueError:
                logger.info("Rejected game setup: names=%r count=%r", player_names, player_count)
                raise
            return self.snapshot()

    async def play_card(self, player_id: str) -> GameSnapshot:
        return await self._apply(
            f"play_card({player_id})", lambda s: engine.play_card(s, player_id)
        )

    async def shuffle_hand(self, player_id: str) -> GameSnapshot:
        return await self._apply(
            f"shuffle_hand({player_id})",
            lambda s: engine.shuffle_hand(s, player_id, self._rng),
        )

    async def auto_play(self) -> GameSnapshot:
        return await self._apply("auto_play", engine.auto_play)

    async def tick(self, elapsed: float) -> GameSnapshot:
        return await self._apply("tick", lambda s: engine.tick(s, elapsed))

    async def toggle_pause(self) -> GameSnapshot:
        return await self._apply("toggle_pause", engine.toggle_pause)

    async def resume(self) -> GameSnapshot:
        return await self._apply("resume", engine.resume)

    async def quit_or_reset(self) -> GameSnapshot:
        return await self._apply("reset", engine.reset_game)


# Singleton
session = GameSession(GameSettings.from_env())
