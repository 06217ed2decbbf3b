"""Tests for Card, Deck, shuffling, dealing and match helpers."""

import random
from collections import Counter
from itertools import permutations

import pytest
from satta.cards import (
    Card,
    Deck,
    Rank,
    Suit,
    RANK_SYMBOLS,
    SUIT_SYMBOLS,
    card_value,
    check_match,
    create_deck,
    deal,
    shuffle,
)


# ── Card basics ──────────────────────────────────────────────────────

class TestCard:
    def test_creation(self):
        c = Card(Rank.ACE, Suit.SPADES)
        assert c.rank == Rank.ACE
        assert c.suit == Suit.SPADES
        assert c.card_id

    def test_repr(self):
        assert repr(Card(Rank.ACE, Suit.HEARTS)) == "A♥"
        assert repr(Card(Rank.TEN, Suit.CLUBS)) == "10♣"
        assert repr(Card(Rank.KING, Suit.DIAMONDS)) == "K♦"

    def test_ids_are_unique(self):
        a = Card(Rank.KING, Suit.SPADES)
        b = Card(Rank.KING, Suit.SPADES)
        assert a.card_id != b.card_id
        assert a != b

    def test_equality_with_same_id(self):
        a = Card(Rank.KING, Suit.SPADES, card_id="k1")
        b = Card(Rank.KING, Suit.SPADES, card_id="k1")
        assert a == b
        assert len({a, b}) == 1

    def test_immutable(self):
        c = Card(Rank.TWO, Suit.HEARTS)
        with pytest.raises(AttributeError):
            c.rank = Rank.THREE

    def test_eq_with_non_card(self):
        c = Card(Rank.ACE, Suit.SPADES)
        assert c.__eq__("A♠") is NotImplemented

    def test_to_dict(self):
        c = Card(Rank.JACK, Suit.HEARTS, card_id="j-h")
        assert c.to_dict() == {"rank": "J", "suit": "hearts", "value": 11, "id": "j-h"}

    def test_from_str(self):
        c = Card.from_str("5c")
        assert (c.rank, c.suit) == (Rank.FIVE, Suit.CLUBS)
        c = Card.from_str("10h")
        assert (c.rank, c.suit) == (Rank.TEN, Suit.HEARTS)
        c = Card.from_str("A♠")
        assert (c.rank, c.suit) == (Rank.ACE, Suit.SPADES)

    def test_from_str_case_insensitive(self):
        c = Card.from_str("kD")
        assert (c.rank, c.suit) == (Rank.KING, Suit.DIAMONDS)

    def test_from_str_rejects_garbage(self):
        with pytest.raises(ValueError, match="Cannot parse"):
            Card.from_str("1x")


# ── Values and matching ─────────────────────────────────────────────

class TestValues:
    def test_rank_values(self):
        assert Rank.ACE == 1
        assert Rank.KING == 13
        assert len(Rank) == 13
        assert len(RANK_SYMBOLS) == 13
        assert len(SUIT_SYMBOLS) == 4

    def test_card_value_ignores_suit(self):
        assert card_value(Card(Rank.QUEEN, Suit.HEARTS)) == 12
        assert card_value(Card(Rank.QUEEN, Suit.SPADES)) == 12
        assert Card(Rank.ACE, Suit.CLUBS).value == 1


class TestCheckMatch:
    def test_empty_pile_never_matches(self):
        for rank in Rank:
            assert not check_match(Card(rank, Suit.HEARTS), [])

    def test_matches_top_card_only(self):
        pile = [Card.from_str("7d"), Card.from_str("3s")]
        assert check_match(Card.from_str("3h"), pile)
        assert not check_match(Card.from_str("7h"), pile)

    def test_suit_irrelevant(self):
        assert check_match(Card.from_str("Kc"), [Card.from_str("Kc")])
        assert check_match(Card.from_str("Kc"), [Card.from_str("Kh")])


# ── Deck construction ───────────────────────────────────────────────

class TestCreateDeck:
    def test_52_unique_combinations(self):
        deck = create_deck()
        assert len(deck) == 52
        assert len({(c.rank, c.suit) for c in deck}) == 52

    def test_fresh_ids_every_time(self):
        ids_a = {c.card_id for c in create_deck()}
        ids_b = {c.card_id for c in create_deck()}
        assert len(ids_a) == 52
        assert ids_a.isdisjoint(ids_b)

    def test_deck_class_is_shuffled_and_dealt_out(self):
        deck = Deck(random.Random(7))
        assert deck.remaining == 52
        hands = deck.deal_hands(4)
        assert [len(h) for h in hands] == [13, 13, 13, 13]
        assert deck.remaining == 0

    def test_deck_class_seed_reproducible(self):
        a = Deck(random.Random(3)).deal_hands(2)
        b = Deck(random.Random(3)).deal_hands(2)
        assert [[repr(c) for c in h] for h in a] == [[repr(c) for c in h] for h in b]


# ── Shuffle ─────────────────────────────────────────────────────────

class TestShuffle:
    def test_returns_permutation_copy(self):
        items = list(range(20))
        out = shuffle(items, random.Random(1))
        assert sorted(out) == items
        assert items == list(range(20))  # input untouched

    def test_empty_and_single(self):
        assert shuffle([]) == []
        assert shuffle(["x"]) == ["x"]

    def test_uniform_over_small_space(self):
        """Chi-square check across all 24 orderings of 4 items."""
        rng = random.Random(2024)
        trials = 48_000
        counts = Counter(tuple(shuffle("abcd", rng)) for _ in range(trials))
        assert set(counts) == set(permutations("abcd"))

        expected = trials / 24
        chi2 = sum((n - expected) ** 2 / expected for n in counts.values())
        # Critical value for 23 degrees of freedom at p = 0.001
        assert chi2 < 49.73


# ── Dealing ─────────────────────────────────────────────────────────

class TestDeal:
    @pytest.mark.parametrize("players,per_player", [(2, 26), (3, 17), (4, 13)])
    def test_block_sizes(self, players, per_player):
        hands = deal(create_deck(), players)
        assert len(hands) == players
        assert all(len(h) == per_player for h in hands)

    def test_contiguous_blocks_in_seat_order(self):
        deck = create_deck()
        hands = deal(deck, 4)
        assert hands[0] == deck[0:13]
        assert hands[3] == deck[39:52]

    def test_remainder_dropped(self):
        deck = create_deck()
        hands = deal(deck, 3)
        dealt = [c for h in hands for c in h]
        assert len(dealt) == 51
        assert deck[-1] not in dealt

    def test_rejects_zero_players(self):
        with pytest.raises(ValueError):
            deal(create_deck(), 0)
