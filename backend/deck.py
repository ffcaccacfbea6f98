from __future__ import annotations

import random
import uuid
from typing import List, Optional, Sequence

from models import RANK_VALUES, Card

SUITS = ["hearts", "diamonds", "clubs", "spades"]
RANKS = list(RANK_VALUES)

DECK_SIZE = len(SUITS) * len(RANKS)


def make_card(suit: str, rank: str) -> Card:
    return Card(
        id=f"{rank}_{suit}_{uuid.uuid4().hex[:8]}",
        suit=suit,
        rank=rank,
        value=RANK_VALUES[rank],
    )


def build_deck() -> List[Card]:
    return [make_card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Fisher-Yates over a copy; ``deck`` itself is left untouched."""
    rng = rng or random
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(deck: List[Card], n: int) -> List[Card]:
    """Remove and return up to ``n`` cards from the top of ``deck``."""
    if n <= 0:
        return []
    dealt = deck[:n]
    del deck[:n]
    return dealt


def can_beat(attack: Card, defend: Card, trump_suit: Optional[str]) -> bool:
    if defend.suit == attack.suit:
        return defend.value > attack.value
    # different suits: only a trump covers a non-trump
    return defend.suit == trump_suit and attack.suit != trump_suit
