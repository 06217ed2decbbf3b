"""Tests for GameClock — the asyncio loop that ticks a session."""

import asyncio
import random
from unittest.mock import patch

from satta.game_manager import GameSession
from satta.models import GameSettings, GameStatus
from satta.timer import GameClock

PATCH_INTERVAL = "satta.timer.TICK_INTERVAL"


async def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


async def _started_session() -> GameSession:
    session = GameSession(GameSettings(), rng=random.Random(3))
    await session.start_game(["Ann", "Ben"], 2)
    return session


class TestGameClock:
    async def test_start_and_stop(self):
        clock = GameClock(await _started_session())
        assert not clock.running
        clock.start()
        assert clock.running
        clock.stop()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not clock.running

    async def test_ticks_advance_session(self):
        session = await _started_session()
        with patch(PATCH_INTERVAL, 0.01):
            clock = GameClock(session, time_scale=100)
            clock.start()
            try:
                assert await _wait_for(lambda: session.state.clock >= 12)
            finally:
                clock.stop()
        # more than one turn budget has passed, so someone was auto-played
        assert any(p.auto_play_count > 0 for p in session.state.players)

    async def test_listener_receives_snapshots(self):
        session = await _started_session()
        received = []

        async def listener(snapshot):
            received.append(snapshot)

        with patch(PATCH_INTERVAL, 0.01):
            clock = GameClock(session)
            clock.set_listener(listener)
            clock.start()
            try:
                assert await _wait_for(lambda: len(received) >= 2)
            finally:
                clock.stop()
        assert received[-1].status == GameStatus.PLAYING

    async def test_failing_listener_keeps_clock_running(self):
        session = await _started_session()
        calls = []

        async def listener(snapshot):
            calls.append(snapshot)
            raise RuntimeError("render failed")

        with patch(PATCH_INTERVAL, 0.01):
            clock = GameClock(session)
            clock.set_listener(listener)
            clock.start()
            try:
                assert await _wait_for(lambda: len(calls) >= 3)
                assert clock.running
            finally:
                clock.stop()

    async def test_idle_when_not_playing(self):
        session = GameSession(GameSettings())
        with patch(PATCH_INTERVAL, 0.01):
            clock = GameClock(session, time_scale=100)
            clock.start()
            await asyncio.sleep(0.05)
            clock.stop()
        assert session.state.status == GameStatus.SETUP
        assert session.state.clock == 0
