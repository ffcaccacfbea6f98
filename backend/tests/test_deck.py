import random

from deck import DECK_SIZE, RANKS, SUITS, build_deck, can_beat, deal, shuffle
from models import Card


def test_build_deck_has_one_card_per_suit_and_rank():
    deck = build_deck()
    assert len(deck) == DECK_SIZE == 36
    assert len({card.id for card in deck}) == 36
    assert {(card.suit, card.rank) for card in deck} == {(s, r) for s in SUITS for r in RANKS}
    assert {card.value for card in deck} == set(range(6, 15))


def test_card_ids_are_unique_across_decks():
    first = {card.id for card in build_deck()}
    second = {card.id for card in build_deck()}
    assert not first & second


def test_shuffle_returns_new_permutation_and_keeps_input():
    deck = build_deck()
    original = list(deck)
    shuffled = shuffle(deck, random.Random(3))
    assert deck == original
    assert shuffled is not deck
    assert sorted(c.id for c in shuffled) == sorted(c.id for c in deck)


def test_deal_takes_from_the_top_and_never_fails_when_short():
    deck = build_deck()[:5]
    top = deck[:2]
    assert deal(deck, 2) == top
    assert len(deck) == 3
    assert deal(deck, 0) == []
    assert len(deal(deck, 10)) == 3
    assert deck == []
    assert deal(deck, 4) == []


def test_can_beat_same_suit_needs_higher_value():
    seven = Card(suit="hearts", rank="7")
    six = Card(suit="hearts", rank="6")
    nine = Card(suit="hearts", rank="9")
    assert can_beat(seven, nine, "clubs")
    assert not can_beat(seven, six, "clubs")
    assert not can_beat(seven, seven, "clubs")


def test_can_beat_trump_rules_are_not_symmetric():
    ace_hearts = Card(suit="hearts", rank="A")
    six_clubs = Card(suit="clubs", rank="6")
    king_spades = Card(suit="spades", rank="K")

    assert can_beat(ace_hearts, six_clubs, "clubs")
    assert not can_beat(six_clubs, ace_hearts, "clubs")
    # two different non-trump suits never beat each other
    assert not can_beat(ace_hearts, king_spades, "clubs")
    assert not can_beat(king_spades, ace_hearts, "clubs")
