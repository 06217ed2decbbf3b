"""Pydantic models: game settings, setup validation and state snapshots."""

from __future__ import annotations

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GameStatus(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    KICKED = "kicked"
    WINNER = "winner"
    LOSER = "loser"


# --- Settings ---


class GameSettings(BaseModel):
    """Tunables for a single game. Times are in abstract time units."""

    model_config = ConfigDict(frozen=True)

    turn_time_limit: float = Field(default=10, gt=0)
    game_time_limit: float = Field(default=120, gt=0)
    max_auto_plays: int = Field(default=2, ge=1)  # timeouts before a kick
    shuffles_per_player: int = Field(default=1, ge=0)
    deal_duration: float = Field(default=0, ge=0)  # 0 = clocks start at once
    strict_invariants: bool = False  # raise instead of degrading

    @classmethod
    def from_env(cls) -> GameSettings:
        """Build settings from SATTA_* environment variables."""
        values: dict[str, object] = {}
        env_map = {
            "turn_time_limit": "SATTA_TURN_TIME_LIMIT",
            "game_time_limit": "SATTA_GAME_TIME_LIMIT",
            "max_auto_plays": "SATTA_MAX_AUTO_PLAYS",
            "shuffles_per_player": "SATTA_SHUFFLES_PER_PLAYER",
            "deal_duration": "SATTA_DEAL_DURATION",
        }
        for field_name, var in env_map.items():
            raw = os.getenv(var)
            if raw:
                values[field_name] = raw
        values["strict_invariants"] = os.getenv("SATTA_STRICT_INVARIANTS", "0") not in ("", "0", "false")
        return cls(**values)


# --- Request models ---


class StartGameRequest(BaseModel):
    """Setup-screen input. Names beyond ``player_count`` are ignored."""

    player_names: list[str] = Field(default_factory=list)
    player_count: int = Field(default=2, ge=2, le=4)

    @model_validator(mode="after")
    def _check_names(self) -> StartGameRequest:
        names = [n.strip() for n in self.player_names[: self.player_count]]
        if any(not n for n in names):
            raise ValueError("Please enter names for all players")
        if len(set(names)) != len(names):
            raise ValueError("Player names must be unique")
        # Seats without a supplied name get a default one
        for i in range(len(names), self.player_count):
            default = f"Player {i + 1}"
            while default in names:
                default += "'"
            names.append(default)
        self.player_names = names
        return self


# --- Snapshot models ---


class CardInfo(BaseModel):
    rank: str
    suit: str
    value: int
    id: str


class PlayerInfo(BaseModel):
    """Public view of a player: the hand is face down, only its size shows."""

    id: str
    name: str
    status: PlayerStatus
    hand_size: int
    shuffles_remaining: int
    auto_play_count: int
    avatar_color: str = ""
    is_current: bool = False


class Standing(BaseModel):
    position: int
    player_id: str
    name: str
    hand_size: int
    status: PlayerStatus


class GameSnapshot(BaseModel):
    """Everything the renderer needs for one frame."""

    status: GameStatus
    players: list[PlayerInfo] = Field(default_factory=list)
    current_player_id: Optional[str] = None
    table_pile: list[CardInfo] = Field(default_factory=list)
    top_card: Optional[CardInfo] = None
    turn_time_remaining: float = 0
    game_time_remaining: float = 0
    paused: bool = False
    dealing: bool = False
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None
    message: str = ""
    final_standings: list[Standing] = Field(default_factory=list)
