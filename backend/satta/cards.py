"""Card values, deck construction, shuffling and dealing."""

from __future__ import annotations

import logging
import random
import uuid
from enum import Enum, IntEnum
from typing import Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DECK_SIZE = 52


class Suit(str, Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class Rank(IntEnum):
    """Rank with its numeric value (A=1 … K=13)."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13


RANK_SYMBOLS = {
    Rank.ACE: "A",
    Rank.TWO: "2",
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "10",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
}

SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}

# Single-letter suit codes accepted by Card.from_str
_SUIT_CODES = {
    "h": Suit.HEARTS,
    "d": Suit.DIAMONDS,
    "c": Suit.CLUBS,
    "s": Suit.SPADES,
    **{sym: suit for suit, sym in SUIT_SYMBOLS.items()},
}


def _new_card_id(rank: Rank, suit: Suit) -> str:
    return f"{RANK_SYMBOLS[rank]}-{suit.value}-{uuid.uuid4().hex[:8]}"


class Card:
    """Immutable playing card.

    ``card_id`` only gives each physical card a stable identity (the UI
    keys its animations on it); it plays no part in matching.
    """

    __slots__ = ("rank", "suit", "card_id")

    def __init__(self, rank: Rank, suit: Suit, card_id: Optional[str] = None) -> None:
        object.__setattr__(self, "rank", rank)
        object.__setattr__(self, "suit", suit)
        object.__setattr__(self, "card_id", card_id or _new_card_id(rank, suit))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Card is immutable")

    def __repr__(self) -> str:
        return f"{RANK_SYMBOLS[self.rank]}{SUIT_SYMBOLS[self.suit]}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return (
            self.rank == other.rank
            and self.suit == other.suit
            and self.card_id == other.card_id
        )

    def __hash__(self) -> int:
        return hash((self.rank, self.suit, self.card_id))

    @property
    def value(self) -> int:
        return int(self.rank)

    def to_dict(self) -> dict:
        return {
            "rank": RANK_SYMBOLS[self.rank],
            "suit": self.suit.value,
            "value": self.value,
            "id": self.card_id,
        }

    @classmethod
    def from_str(cls, s: str) -> Card:
        """Parse '5c', '10h', 'A♠', 'Kd' etc."""
        rank_part, suit_char = s[:-1].upper(), s[-1].lower()
        rank_map = {v: k for k, v in RANK_SYMBOLS.items()}
        if rank_part == "T":
            rank_part = "10"
        try:
            return cls(rank_map[rank_part], _SUIT_CODES[suit_char])
        except KeyError:
            raise ValueError(f"Cannot parse card {s!r}") from None


def card_value(card: Card) -> int:
    return int(card.rank)


def check_match(card: Card, pile: Sequence[Card]) -> bool:
    """True iff the pile is non-empty and its top card has the same value."""
    if not pile:
        return False
    return card_value(card) == card_value(pile[-1])


def create_deck() -> list[Card]:
    """All 52 cards in suit-then-rank order, each with a fresh id."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Return a Fisher–Yates shuffled copy of *items*.

    Every permutation is equally likely given a fair *rng*.
    """
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(deck: Sequence[Card], player_count: int) -> list[list[Card]]:
    """Split *deck* into ``player_count`` contiguous, equal blocks.

    Leftover cards (``len(deck) % player_count``) are not dealt.
    """
    if player_count < 1:
        raise ValueError("player_count must be positive")
    per_player = len(deck) // player_count
    leftover = len(deck) - per_player * player_count
    if leftover:
        logger.debug("Dropping %d undealt card(s) for %d players", leftover, player_count)
    return [
        list(deck[i * per_player:(i + 1) * per_player])
        for i in range(player_count)
    ]


class Deck:
    """A freshly built, shuffled 52-card deck."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._cards: list[Card] = create_deck()
        self.shuffle()

    def shuffle(self) -> None:
        self._cards = shuffle(self._cards, self._rng)

    def deal_hands(self, player_count: int) -> list[list[Card]]:
        """Deal the whole deck out; the deck is empty afterwards."""
        hands = deal(self._cards, player_count)
        self._cards = []
        return hands

    @property
    def remaining(self) -> int:
        return len(self._cards)
