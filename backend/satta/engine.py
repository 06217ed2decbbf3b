"""Core game engine for Satte pe Satta.

Owns the rules: dealing, turn order, match/capture resolution, auto-play
on timeout, shuffle tokens, elimination and both win conditions.

``GameState`` is an immutable value. Every operation below is a pure
transition that takes a state and returns a new one; holding on to the
current value is the caller's job (see ``satta.game_manager``).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

from satta.cards import Card, Deck, check_match, shuffle
from satta.models import (
    CardInfo,
    GameSettings,
    GameSnapshot,
    GameStatus,
    PlayerInfo,
    PlayerStatus,
    Standing,
    StartGameRequest,
)

logger = logging.getLogger(__name__)

AVATAR_COLORS: list[str] = [
    "blue",
    "green",
    "yellow",
    "red",
    "purple",
    "pink",
    "indigo",
    "teal",
    "orange",
]


class InvalidMove(ValueError):
    """An action by a player who may not take it right now.

    Expected during normal play (stale UI events); callers reject the
    action and keep the previous state.
    """


class InvariantViolation(RuntimeError):
    """Engine bookkeeping reached a state the rules should never produce."""


@dataclass(frozen=True)
class Player:
    """A seat at the table. ``hand[0]`` is the front card."""

    player_id: str
    name: str
    hand: tuple[Card, ...] = ()
    status: PlayerStatus = PlayerStatus.ACTIVE
    shuffles_remaining: int = 1
    auto_play_count: int = 0
    avatar_color: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE

    @property
    def can_play(self) -> bool:
        """Active with at least one card, i.e. eligible for a turn."""
        return self.is_active and len(self.hand) > 0

    @property
    def front_card(self) -> Optional[Card]:
        return self.hand[0] if self.hand else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "hand_size": len(self.hand),
            "status": self.status.value,
            "shuffles_remaining": self.shuffles_remaining,
            "auto_play_count": self.auto_play_count,
            "avatar_color": self.avatar_color,
        }


@dataclass(frozen=True)
class GameState:
    settings: GameSettings = field(default_factory=GameSettings)
    players: tuple[Player, ...] = ()
    current_player_index: int = 0
    table_pile: tuple[Card, ...] = ()
    status: GameStatus = GameStatus.SETUP
    winner_id: Optional[str] = None
    # Logical time of this state; only tick() moves it forward
    clock: float = 0.0
    turn_start_time: float = 0.0
    game_start_time: float = 0.0
    paused: bool = False
    paused_at: Optional[float] = None
    deal_time_remaining: float = 0.0
    message: str = ""
    log: tuple[dict[str, Any], ...] = ()

    @property
    def winner(self) -> Optional[Player]:
        if self.winner_id is None:
            return None
        return _find_player(self, self.winner_id)

    @property
    def is_dealing(self) -> bool:
        return self.deal_time_remaining > 0

    @property
    def is_running(self) -> bool:
        """Clocks are counting down."""
        return self.status == GameStatus.PLAYING and not self.paused and not self.is_dealing


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _find_player_idx(state: GameState, player_id: str) -> Optional[int]:
    for i, p in enumerate(state.players):
        if p.player_id == player_id:
            return i
    return None


def _find_player(state: GameState, player_id: str) -> Optional[Player]:
    idx = _find_player_idx(state, player_id)
    return state.players[idx] if idx is not None else None


def _with_player(players: tuple[Player, ...], idx: int, **changes: Any) -> tuple[Player, ...]:
    updated = list(players)
    updated[idx] = replace(players[idx], **changes)
    return tuple(updated)


def _record(state: GameState, action: str, player: Optional[Player] = None, **extra: Any) -> tuple[dict[str, Any], ...]:
    entry: dict[str, Any] = {"action": action, "at": state.clock}
    if player is not None:
        entry["player_id"] = player.player_id
    entry.update(extra)
    return state.log + (entry,)


def _now(state: GameState) -> float:
    """Clock reading the timers use; frozen while paused."""
    if state.paused and state.paused_at is not None:
        return state.paused_at
    return state.clock


def _eligible_indices(players: Sequence[Player]) -> list[int]:
    return [i for i, p in enumerate(players) if p.can_play]


def _next_player_idx(players: Sequence[Player], idx: int) -> Optional[int]:
    """Next seat after *idx* that can play, wrapping. None if nobody can."""
    n = len(players)
    for offset in range(1, n):
        i = (idx + offset) % n
        if players[i].can_play:
            return i
    return None


def _validate_turn(state: GameState, player_id: str) -> int:
    """Return the acting player's seat or raise InvalidMove."""
    if state.status != GameStatus.PLAYING:
        raise InvalidMove("Game is not in progress")
    if state.paused:
        raise InvalidMove("Game is paused")
    if state.is_dealing:
        raise InvalidMove("Cards are still being dealt")
    idx = _find_player_idx(state, player_id)
    if idx is None:
        raise InvalidMove("Player not found")
    if idx != state.current_player_index:
        raise InvalidMove("Not your turn")
    p = state.players[idx]
    if not p.is_active:
        raise InvalidMove("Player cannot act")
    if not p.hand:
        raise InvalidMove("No cards left to play")
    return idx


# ------------------------------------------------------------------
# Game lifecycle
# ------------------------------------------------------------------


def generate_player_colors(count: int, rng: Optional[random.Random] = None) -> list[str]:
    """Pick *count* distinct avatar colours in random order."""
    return shuffle(AVATAR_COLORS, rng)[:count]


def start_game(
    player_names: Sequence[str],
    player_count: int,
    settings: Optional[GameSettings] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    """Validate the setup, shuffle, deal and pick a random first player.

    Raises pydantic ``ValidationError`` for bad names or player counts.
    """
    req = StartGameRequest(player_names=list(player_names), player_count=player_count)
    settings = settings or GameSettings()
    rng = rng or random.Random()

    hands = Deck(rng).deal_hands(req.player_count)
    colors = generate_player_colors(req.player_count, rng)

    players = tuple(
        Player(
            player_id=f"player-{i}",
            name=req.player_names[i],
            hand=tuple(hands[i]),
            shuffles_remaining=settings.shuffles_per_player,
            avatar_color=colors[i],
        )
        for i in range(req.player_count)
    )
    first = rng.randrange(req.player_count)

    state = GameState(
        settings=settings,
        players=players,
        current_player_index=first,
        status=GameStatus.PLAYING,
        deal_time_remaining=settings.deal_duration,
        message=f"{players[first].name}'s turn",
    )
    logger.info(
        "Game started: players=%s cards_each=%d first=%s",
        [p.name for p in players],
        len(hands[0]),
        players[first].name,
    )
    return replace(state, log=_record(state, "deal"))


def reset_game(state: GameState) -> GameState:
    """Quit / play again: discard the game and return to setup."""
    if state.status != GameStatus.SETUP:
        logger.info("Game reset (was %s)", state.status.value)
    return GameState(settings=state.settings)


# ------------------------------------------------------------------
# Game over
# ------------------------------------------------------------------


def _finish(state: GameState, winner_idx: Optional[int], message: str) -> GameState:
    """End the game. The winner (if any) wins; every other non-kicked
    player loses; kicked players stay kicked."""
    players = []
    for i, p in enumerate(state.players):
        if i == winner_idx:
            players.append(replace(p, status=PlayerStatus.WINNER))
        elif p.status == PlayerStatus.KICKED:
            players.append(p)
        else:
            players.append(replace(p, status=PlayerStatus.LOSER))

    winner_id = state.players[winner_idx].player_id if winner_idx is not None else None
    finished = replace(
        state,
        players=tuple(players),
        status=GameStatus.FINISHED,
        winner_id=winner_id,
        message=message,
    )
    logger.info("Game over: winner=%s (%s)", winner_id, message)
    return replace(finished, log=_record(finished, "game_over", winner_id=winner_id))


def _last_player_standing(state: GameState) -> GameState:
    idx = _eligible_indices(state.players)[0]
    return _finish(state, idx, f"{state.players[idx].name} wins!")


def _no_eligible_player(state: GameState) -> GameState:
    """Turn scan found nobody to hand the turn to."""
    msg = "No eligible player left to take the turn"
    if state.settings.strict_invariants:
        raise InvariantViolation(msg)
    logger.error("Invariant violation: %s; ending game without a winner", msg)
    return _finish(state, None, "Game over")


def _advance_turn(state: GameState) -> GameState:
    nxt = _next_player_idx(state.players, state.current_player_index)
    if nxt is None:
        return _no_eligible_player(state)
    return replace(
        state,
        current_player_index=nxt,
        turn_start_time=state.clock,
        message=f"{state.players[nxt].name}'s turn",
    )


def _expire_game_clock(state: GameState) -> GameState:
    """Game timer ran out: the active player holding the most cards wins.

    Ties go to the first such player in seating order.
    """
    candidates = [i for i, p in enumerate(state.players) if p.is_active]
    if not candidates:
        candidates = [
            i for i, p in enumerate(state.players) if p.status != PlayerStatus.KICKED
        ]
    winner_idx: Optional[int] = None
    for i in candidates:
        if winner_idx is None or len(state.players[i].hand) > len(state.players[winner_idx].hand):
            winner_idx = i
    state = replace(state, log=_record(state, "time_up"))
    return _finish(state, winner_idx, "Time's up! Game over!")


def final_standings(state: GameState) -> list[Standing]:
    """Players ordered by hand size, most cards first, ties in seating order."""
    ranked = sorted(state.players, key=lambda p: len(p.hand), reverse=True)
    return [
        Standing(
            position=pos,
            player_id=p.player_id,
            name=p.name,
            hand_size=len(p.hand),
            status=p.status,
        )
        for pos, p in enumerate(ranked, start=1)
    ]


# ------------------------------------------------------------------
# Turn resolution
# ------------------------------------------------------------------


def _resolve_front_card(state: GameState, idx: int, keep_turn_on_capture: bool) -> GameState:
    """Play the front card of seat *idx* and settle the consequences."""
    player = state.players[idx]
    card, rest = player.hand[0], player.hand[1:]

    if check_match(card, state.table_pile):
        # Capture: remaining hand, then the pile bottom-up, then the card
        players = _with_player(state.players, idx, hand=rest + state.table_pile + (card,))
        captured = len(state.table_pile) + 1
        state = replace(
            state,
            players=players,
            table_pile=(),
            message="Cards matched!",
            log=_record(state, "capture", player, card=repr(card), captured=captured),
        )
        logger.debug("%s captured %d cards with %r", player.name, captured, card)
        if keep_turn_on_capture:
            return replace(state, turn_start_time=state.clock)
        return _advance_turn(state)

    players = _with_player(state.players, idx, hand=rest)
    state = replace(
        state,
        players=players,
        table_pile=state.table_pile + (card,),
        log=_record(state, "hit", player, card=repr(card)),
    )
    logger.debug("%s played %r", player.name, card)

    if not rest:
        state = replace(
            state,
            players=_with_player(state.players, idx, status=PlayerStatus.INACTIVE),
            message=f"{player.name} is out of cards!",
            log=_record(state, "out_of_cards", player),
        )
        logger.info("%s is out of cards", player.name)
        if len(_eligible_indices(state.players)) == 1:
            return _last_player_standing(state)

    return _advance_turn(state)


def play_card(state: GameState, player_id: str) -> GameState:
    """Hit: the current player plays their front card.

    A capture keeps the turn with the same player; otherwise the turn
    passes to the next seat that can play.
    """
    idx = _validate_turn(state, player_id)
    return _resolve_front_card(state, idx, keep_turn_on_capture=True)


def auto_play(state: GameState) -> GameState:
    """Forced move for the current player after their turn timer expired.

    The player's auto-play count goes up; reaching the limit kicks them
    instead of playing. Either way the turn passes on.
    """
    if state.status != GameStatus.PLAYING:
        raise InvalidMove("Game is not in progress")
    if state.paused:
        raise InvalidMove("Game is paused")
    if state.is_dealing:
        raise InvalidMove("Cards are still being dealt")

    idx = state.current_player_index
    player = state.players[idx]
    count = player.auto_play_count + 1

    if count >= state.settings.max_auto_plays:
        state = replace(
            state,
            players=_with_player(state.players, idx, status=PlayerStatus.KICKED, auto_play_count=count),
            message=f"{player.name} kicked for inactivity!",
            log=_record(state, "kick", player),
        )
        logger.info("Kicked %s after %d timeouts", player.name, count)
        active = [i for i, p in enumerate(state.players) if p.is_active]
        if len(active) == 1:
            return _finish(state, active[0], f"{state.players[active[0]].name} wins!")
        return _advance_turn(state)

    state = replace(
        state,
        players=_with_player(state.players, idx, auto_play_count=count),
        message="Auto-played!",
        log=_record(state, "auto_play", player),
    )
    logger.info("Auto-play for %s (%d/%d)", player.name, count, state.settings.max_auto_plays)

    if not player.hand:
        state = replace(
            state,
            players=_with_player(state.players, idx, status=PlayerStatus.INACTIVE),
        )
        if len(_eligible_indices(state.players)) == 1:
            return _last_player_standing(state)
        return _advance_turn(state)

    return _resolve_front_card(state, idx, keep_turn_on_capture=False)


def shuffle_hand(
    state: GameState, player_id: str, rng: Optional[random.Random] = None
) -> GameState:
    """Spend one shuffle token to reorder the acting player's hand.

    Does not use up the turn or reset the turn timer.
    """
    idx = _validate_turn(state, player_id)
    player = state.players[idx]
    if player.shuffles_remaining <= 0:
        raise InvalidMove("No shuffles remaining")

    players = _with_player(
        state.players,
        idx,
        hand=tuple(shuffle(player.hand, rng)),
        shuffles_remaining=player.shuffles_remaining - 1,
    )
    return replace(
        state,
        players=players,
        message="Shuffled!",
        log=_record(state, "shuffle", player),
    )


# ------------------------------------------------------------------
# Clocks
# ------------------------------------------------------------------


def _start_clocks(state: GameState, at: float) -> GameState:
    return replace(
        state,
        clock=at,
        deal_time_remaining=0.0,
        turn_start_time=at,
        game_start_time=at,
    )


def tick(state: GameState, elapsed: float) -> GameState:
    """Advance the clocks by *elapsed* time units.

    Turn and game expiries inside the interval fire in chronological
    order; a turn expiry at the same instant as game expiry goes first.
    No-op unless the game is playing. While paused only the logical
    clock moves.
    """
    if elapsed < 0:
        raise ValueError("elapsed must not be negative")
    if state.status != GameStatus.PLAYING or elapsed == 0:
        return state
    if state.paused:
        return replace(state, clock=state.clock + elapsed)

    target = state.clock + elapsed

    if state.is_dealing:
        if elapsed < state.deal_time_remaining:
            return replace(
                state,
                clock=target,
                deal_time_remaining=state.deal_time_remaining - elapsed,
            )
        state = _start_clocks(state, state.clock + state.deal_time_remaining)
        logger.debug("Deal complete at %.2f; clocks started", state.clock)

    while state.status == GameStatus.PLAYING:
        turn_deadline = state.turn_start_time + state.settings.turn_time_limit
        game_deadline = state.game_start_time + state.settings.game_time_limit
        if turn_deadline <= target and turn_deadline <= game_deadline:
            state = auto_play(replace(state, clock=turn_deadline))
        elif game_deadline <= target:
            state = _expire_game_clock(replace(state, clock=game_deadline))
        else:
            break

    if state.status == GameStatus.PLAYING:
        state = replace(state, clock=target)
    return state


def pause(state: GameState) -> GameState:
    if state.status != GameStatus.PLAYING:
        raise InvalidMove("Game is not in progress")
    if state.paused:
        raise InvalidMove("Game is already paused")
    return replace(state, paused=True, paused_at=state.clock, message="Game paused")


def resume(state: GameState) -> GameState:
    """Unpause, shifting the timer references so no budget is lost."""
    if not state.paused:
        raise InvalidMove("Game is not paused")
    paused_for = state.clock - (state.paused_at if state.paused_at is not None else state.clock)
    current = state.players[state.current_player_index]
    return replace(
        state,
        paused=False,
        paused_at=None,
        turn_start_time=state.turn_start_time + paused_for,
        game_start_time=state.game_start_time + paused_for,
        message=f"{current.name}'s turn",
    )


def toggle_pause(state: GameState) -> GameState:
    return resume(state) if state.paused else pause(state)


# ------------------------------------------------------------------
# Accessors
# ------------------------------------------------------------------


def current_player(state: GameState) -> Optional[Player]:
    if state.status != GameStatus.PLAYING or not state.players:
        return None
    return state.players[state.current_player_index]


def top_card(state: GameState) -> Optional[Card]:
    return state.table_pile[-1] if state.table_pile else None


def hand_sizes(state: GameState) -> dict[str, int]:
    return {p.player_id: len(p.hand) for p in state.players}


def turn_time_remaining(state: GameState) -> float:
    if state.status != GameStatus.PLAYING:
        return 0.0
    if state.is_dealing:
        return state.settings.turn_time_limit
    return max(0.0, state.settings.turn_time_limit - (_now(state) - state.turn_start_time))


def game_time_remaining(state: GameState) -> float:
    if state.status == GameStatus.SETUP:
        return state.settings.game_time_limit
    if state.status == GameStatus.FINISHED:
        return max(0.0, state.settings.game_time_limit - (state.clock - state.game_start_time))
    if state.is_dealing:
        return state.settings.game_time_limit
    return max(0.0, state.settings.game_time_limit - (_now(state) - state.game_start_time))


def _card_info(card: Card) -> CardInfo:
    return CardInfo(**card.to_dict())


def build_snapshot(state: GameState) -> GameSnapshot:
    """Read-only view handed to the renderer."""
    cur = current_player(state)
    top = top_card(state)
    winner = state.winner
    finished = state.status == GameStatus.FINISHED
    return GameSnapshot(
        status=state.status,
        players=[
            PlayerInfo(
                id=p.player_id,
                name=p.name,
                status=p.status,
                hand_size=len(p.hand),
                shuffles_remaining=p.shuffles_remaining,
                auto_play_count=p.auto_play_count,
                avatar_color=p.avatar_color,
                is_current=cur is not None and p.player_id == cur.player_id,
            )
            for p in state.players
        ],
        current_player_id=cur.player_id if cur else None,
        table_pile=[_card_info(c) for c in state.table_pile],
        top_card=_card_info(top) if top else None,
        turn_time_remaining=turn_time_remaining(state),
        game_time_remaining=game_time_remaining(state),
        paused=state.paused,
        dealing=state.is_dealing,
        winner_id=winner.player_id if winner else None,
        winner_name=winner.name if winner else None,
        message=state.message,
        final_standings=final_standings(state) if finished else [],
    )
