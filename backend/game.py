from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from actions import Action, Attack, ConfirmAttack, ConfirmDefend, Defend, Pass, TakeCards
from deck import build_deck, can_beat, deal, shuffle
from errors import GameError, IllegalMove, InsufficientPlayers, NotFound, StateConflict, ValidationError
from models import FINISHED, PLAYING, WAITING, Card, GameSnapshot, GameStatus, TableView
from player import Player

logger = logging.getLogger(__name__)

HAND_SIZE = 6
MIN_PLAYERS = 2


@dataclass
class StepResult:
    ok: bool
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass
class Table:
    attack_cards: List[Card] = field(default_factory=list)
    defend_cards: List[Optional[Card]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.attack_cards

    def defended_count(self) -> int:
        return sum(1 for card in self.defend_cards if card is not None)

    def undefended_count(self) -> int:
        return len(self.attack_cards) - self.defended_count()

    def all_defended(self) -> bool:
        return bool(self.attack_cards) and self.undefended_count() == 0

    def ranks(self) -> Set[str]:
        return {card.rank for card in self.cards()}

    def index_of(self, attack_card_id: str) -> Optional[int]:
        for idx, card in enumerate(self.attack_cards):
            if card.id == attack_card_id:
                return idx
        return None

    def defense_at(self, idx: int) -> Optional[Card]:
        return self.defend_cards[idx] if idx < len(self.defend_cards) else None

    def cover(self, idx: int, card: Card):
        while len(self.defend_cards) <= idx:
            self.defend_cards.append(None)
        self.defend_cards[idx] = card

    def cards(self) -> List[Card]:
        return self.attack_cards + [card for card in self.defend_cards if card is not None]

    def clear(self) -> List[Card]:
        """Empty both rows at once and hand back everything that was on them."""
        cards = self.cards()
        self.attack_cards = []
        self.defend_cards = []
        return cards

    def to_view(self) -> TableView:
        return TableView(attackCards=list(self.attack_cards), defendCards=list(self.defend_cards))


class GameSession:
    def __init__(
        self,
        room_id: str,
        players: Sequence[Player],
        *,
        rng: Optional[random.Random] = None,
        game_id: Optional[str] = None,
    ):
        self.id = game_id or str(uuid.uuid4())
        self.room_id = room_id
        self.players: List[Player] = list(players)
        self.deck: List[Card] = []
        self.discard_pile: List[Card] = []
        self.trump_card: Optional[Card] = None
        self.trump_suit: Optional[str] = None
        self.current_player_index: int = -1
        self.table = Table()
        self.status: GameStatus = WAITING

        self.winner_id: Optional[str] = None
        self.loser_id: Optional[str] = None
        self.winners: List[str] = []
        self.losers: List[str] = []

        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, players: Optional[Sequence[Player]] = None):
        if self.status != WAITING:
            raise StateConflict("Game already started")
        seats = list(players) if players is not None else self.players
        if len(seats) < MIN_PLAYERS:
            raise InsufficientPlayers("Not enough players")
        self.players = seats

        for player in self.players:
            player.reset_for_game()
        self.deck = shuffle(build_deck(), self._rng)
        # bottom card is the trump; it is drawn last
        trump = self.deck.pop()
        self.trump_card = trump
        self.trump_suit = trump.suit
        self.discard_pile = []
        self.table = Table()

        for player in self.players:
            player.add_cards(self._draw(HAND_SIZE))

        self.status = PLAYING
        self._choose_first_attacker()
        logger.info(
            "Game %s started in room %s: %d players, trump %s, first attacker %s",
            self.id,
            self.room_id,
            len(self.players),
            trump.label(),
            self.players[self.current_player_index].name,
        )

    def _choose_first_attacker(self):
        best: Optional[tuple[int, int]] = None
        for idx, player in enumerate(self.players):
            trumps = [card.value for card in player.hand if card.suit == self.trump_suit]
            if trumps and (best is None or min(trumps) < best[0]):
                best = (min(trumps), idx)
        first = best[1] if best is not None else self._rng.randrange(len(self.players))
        self.current_player_index = first
        self._assign_roles(first)

    def _assign_roles(self, attacker_idx: int):
        for player in self.players:
            player.set_attacker(False)
            player.set_defender(False)
        self.players[attacker_idx].set_attacker(True)
        self.players[(attacker_idx + 1) % len(self.players)].set_defender(True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def current_player_id(self) -> Optional[str]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index].id
        return None

    def attacker(self) -> Optional[Player]:
        return next((p for p in self.players if p.is_attacker), None)

    def defender(self) -> Optional[Player]:
        return next((p for p in self.players if p.is_defender), None)

    def _defender_index(self) -> int:
        for idx, player in enumerate(self.players):
            if player.is_defender:
                return idx
        raise StateConflict("No defender assigned")

    def _require_playing(self):
        if self.status != PLAYING:
            raise StateConflict("Game is not in progress")

    def _require_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player is None:
            raise NotFound("Player is not in this game")
        return player

    def _draw(self, count: int) -> List[Card]:
        cards = deal(self.deck, count)
        if len(cards) < count and self.trump_card is not None:
            cards.append(self.trump_card)
            self.trump_card = None
        return cards

    def card_count(self) -> int:
        return (
            len(self.deck)
            + (1 if self.trump_card is not None else 0)
            + sum(len(p.hand) for p in self.players)
            + len(self.table.cards())
            + len(self.discard_pile)
        )

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------
    def attack(self, player_id: str, card_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_attacker:
            raise IllegalMove("Only the attacker can attack")
        card = player.get_card(card_id)
        if card is None:
            raise IllegalMove("Card not in hand")
        if not self.table.is_empty() and card.rank not in self.table.ranks():
            raise IllegalMove("Only ranks already on the table can be added")
        defender = self.defender()
        if defender is None:
            raise StateConflict("No defender assigned")
        if self.table.undefended_count() >= len(defender.hand):
            raise IllegalMove("Defender cannot answer more cards")

        player.remove_card(card_id)
        self.table.attack_cards.append(card)
        logger.debug("%s attacks with %s", player.name, card.label())

    def defend(self, player_id: str, attack_card_id: str, defend_card_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_defender:
            raise IllegalMove("Only the defender can defend")
        idx = self.table.index_of(attack_card_id)
        if idx is None:
            raise IllegalMove("Attack card is not on the table")
        if self.table.defense_at(idx) is not None:
            raise IllegalMove("Attack card is already beaten")
        card = player.get_card(defend_card_id)
        if card is None:
            raise IllegalMove("Card not in hand")
        attack_card = self.table.attack_cards[idx]
        if not can_beat(attack_card, card, self.trump_suit):
            raise IllegalMove(f"{card.label()} does not beat {attack_card.label()}")

        player.remove_card(defend_card_id)
        self.table.cover(idx, card)
        logger.debug("%s beats %s with %s", player.name, attack_card.label(), card.label())

    def take_cards(self, player_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_defender:
            raise IllegalMove("Only the defender can take cards")
        if self.table.is_empty():
            raise IllegalMove("Table is empty")

        cards = self.table.clear()
        player.add_cards(cards)
        logger.info("%s takes %d cards", player.name, len(cards))
        self._next_turn(took_cards=True)

    def confirm_attack(self, player_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_attacker:
            raise IllegalMove("Only the attacker can confirm the attack")
        if self.table.is_empty():
            raise IllegalMove("No attack cards on the table")
        self.current_player_index = self._defender_index()

    def confirm_defend(self, player_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_defender:
            raise IllegalMove("Only the defender can confirm the defense")
        if self.table.is_empty():
            raise IllegalMove("No attack cards on the table")
        if self.table.undefended_count() > 0:
            raise IllegalMove("Not every attack card is beaten")

        self._discard_table()
        logger.info("%s confirmed the defense", player.name)
        self._next_turn(took_cards=False)

    def pass_turn(self, player_id: str):
        self._require_playing()
        player = self._require_player(player_id)
        if not player.is_attacker:
            raise IllegalMove("Only the attacker can call bito")
        if not self.table.all_defended():
            raise IllegalMove("Not every attack card is beaten")

        self._discard_table()
        logger.info("%s called bito", player.name)
        self._next_turn(took_cards=False)

    def apply(self, action: Action) -> StepResult:
        """Run ``action`` and report the outcome instead of raising."""
        try:
            if isinstance(action, Attack):
                self.attack(action.player_id, action.card_id)
            elif isinstance(action, Defend):
                self.defend(action.player_id, action.attack_card_id, action.defend_card_id)
            elif isinstance(action, TakeCards):
                self.take_cards(action.player_id)
            elif isinstance(action, ConfirmAttack):
                self.confirm_attack(action.player_id)
            elif isinstance(action, ConfirmDefend):
                self.confirm_defend(action.player_id)
            elif isinstance(action, Pass):
                self.pass_turn(action.player_id)
            else:
                raise ValidationError(f"Unsupported action {type(action).__name__}")
        except GameError as exc:
            logger.info("Rejected %s in game %s: %s", type(action).__name__, self.id, exc)
            return StepResult(ok=False, error=str(exc), code=exc.code)
        return StepResult(ok=True)

    # ------------------------------------------------------------------
    # Turn flow
    # ------------------------------------------------------------------
    def _discard_table(self):
        self.discard_pile.extend(self.table.clear())

    def _next_turn(self, *, took_cards: bool):
        self._replenish()
        if self._check_game_end():
            return
        defender_idx = self._defender_index()
        if took_cards:
            attacker_idx = (defender_idx + 1) % len(self.players)
        else:
            attacker_idx = defender_idx
        self.current_player_index = attacker_idx
        self._assign_roles(attacker_idx)

    def _replenish(self):
        order: List[Player] = [p for p in (self.attacker(), self.defender()) if p is not None]
        total = len(self.players)
        start = max(self.current_player_index, 0)
        for offset in range(total):
            player = self.players[(start + offset) % total]
            if not (player.is_attacker or player.is_defender):
                order.append(player)

        for player in order:
            missing = HAND_SIZE - len(player.hand)
            if missing > 0:
                player.add_cards(self._draw(missing))
        logger.debug("Replenished hands, %d cards left in deck", len(self.deck))

    def _check_game_end(self) -> bool:
        if self.deck or self.trump_card is not None:
            return False
        finished = [p for p in self.players if not p.hand]
        if not finished:
            return False

        holders = [p for p in self.players if p.hand]
        for player in finished:
            player.is_winner = True
        for player in holders:
            player.is_loser = True
        self.winners = [p.id for p in finished]
        self.losers = [p.id for p in holders]
        self.winner_id = finished[0].id
        self.loser_id = holders[0].id if len(holders) == 1 else None
        self.status = FINISHED
        logger.info(
            "Game %s finished: winners=%s losers=%s",
            self.id,
            [p.name for p in finished],
            [p.name for p in holders],
        )
        return True

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def snapshot(self, viewer_id: Optional[str]) -> GameSnapshot:
        return GameSnapshot(
            id=self.id,
            roomId=self.room_id,
            players=[p.to_view(hide_cards=p.id != viewer_id) for p in self.players],
            currentPlayerId=self.current_player_id(),
            trumpCard=self.trump_card,
            trumpSuit=self.trump_suit,
            deck=len(self.deck),
            deckEmpty=not self.deck and self.trump_card is None,
            table=self.table.to_view(),
            status=self.status,
            winner=self.winner_id,
            loser=self.loser_id,
            winners=list(self.winners),
            losers=list(self.losers),
            discardPileCount=len(self.discard_pile),
        )


