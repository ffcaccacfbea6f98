from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from models import Card, HiddenCard, PlayerView, RoomPlayerView


@dataclass(eq=False)
class Player:
    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    hand: List[Card] = field(default_factory=list)
    is_attacker: bool = False
    is_defender: bool = False
    connected: bool = True
    is_winner: bool = False
    is_loser: bool = False

    # ------------------------------------------------------------------
    # Hand
    # ------------------------------------------------------------------
    def add_cards(self, cards: Iterable[Card]):
        self.hand.extend(cards)

    def has_card(self, card_id: str) -> bool:
        return any(card.id == card_id for card in self.hand)

    def get_card(self, card_id: str) -> Optional[Card]:
        return next((card for card in self.hand if card.id == card_id), None)

    def remove_card(self, card_id: str) -> Optional[Card]:
        for idx, card in enumerate(self.hand):
            if card.id == card_id:
                return self.hand.pop(idx)
        return None

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------
    def set_attacker(self, value: bool):
        self.is_attacker = value
        if value:
            self.is_defender = False

    def set_defender(self, value: bool):
        self.is_defender = value
        if value:
            self.is_attacker = False

    def reset_for_game(self):
        self.hand = []
        self.is_attacker = False
        self.is_defender = False
        self.is_winner = False
        self.is_loser = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def to_view(self, hide_cards: bool = False) -> PlayerView:
        cards = [HiddenCard() for _ in self.hand] if hide_cards else list(self.hand)
        return PlayerView(
            id=self.id,
            name=self.name,
            cards=cards,
            cardsCount=len(self.hand),
            isAttacker=self.is_attacker,
            isDefender=self.is_defender,
            connected=self.connected,
            isWinner=self.is_winner,
            isLoser=self.is_loser,
        )

    def to_room_view(self) -> RoomPlayerView:
        return RoomPlayerView(
            id=self.id,
            name=self.name,
            cardsCount=len(self.hand),
            connected=self.connected,
        )
