from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

Suit = Literal["hearts", "diamonds", "clubs", "spades"]
Rank = Literal["6", "7", "8", "9", "10", "J", "Q", "K", "A"]
GameStatus = Literal["waiting", "playing", "finished"]

WAITING: GameStatus = "waiting"
PLAYING: GameStatus = "playing"
FINISHED: GameStatus = "finished"

RANK_VALUES: Dict[str, int] = {
    "6": 6,
    "7": 7,
    "8": 8,
    "9": 9,
    "10": 10,
    "J": 11,
    "Q": 12,
    "K": 13,
    "A": 14,
}


class Card(BaseModel):
    id: str
    suit: Suit
    rank: Rank
    value: int = Field(ge=6, le=14)  # 6..14 (11=J,12=Q,13=K,14=A)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, value):
        if isinstance(value, dict):
            rank = value.get("rank")
            if value.get("value") is None and rank in RANK_VALUES:
                value = {**value, "value": RANK_VALUES[rank]}
            if value.get("id") is None and rank in RANK_VALUES:
                value = {**value, "id": f"{rank}_{value.get('suit')}"}
        return value

    def label(self) -> str:
        return f"{self.rank} {self.suit}"


class HiddenCard(BaseModel):
    hidden: Literal[True] = True


# ---------- game snapshot ----------
class PlayerView(BaseModel):
    id: str
    name: str
    cards: List[Union[Card, HiddenCard]]
    cards_count: int = Field(alias="cardsCount")
    is_attacker: bool = Field(alias="isAttacker")
    is_defender: bool = Field(alias="isDefender")
    connected: bool
    is_winner: bool = Field(False, alias="isWinner")
    is_loser: bool = Field(False, alias="isLoser")

    model_config = ConfigDict(populate_by_name=True)


class TableView(BaseModel):
    attack_cards: List[Card] = Field(default_factory=list, alias="attackCards")
    defend_cards: List[Optional[Card]] = Field(default_factory=list, alias="defendCards")

    model_config = ConfigDict(populate_by_name=True)


class GameSnapshot(BaseModel):
    id: str
    room_id: str = Field(alias="roomId")
    players: List[PlayerView]
    current_player_id: Optional[str] = Field(None, alias="currentPlayerId")
    trump_card: Optional[Card] = Field(None, alias="trumpCard")
    trump_suit: Optional[Suit] = Field(None, alias="trumpSuit")
    deck: int
    deck_empty: bool = Field(alias="deckEmpty")
    table: TableView
    status: GameStatus
    winner: Optional[str] = None
    loser: Optional[str] = None
    winners: List[str] = Field(default_factory=list)
    losers: List[str] = Field(default_factory=list)
    discard_pile_count: int = Field(alias="discardPileCount")

    model_config = ConfigDict(populate_by_name=True)


# ---------- rooms ----------
class RoomPlayerView(BaseModel):
    id: str
    name: str
    cards_count: int = Field(alias="cardsCount")
    connected: bool

    model_config = ConfigDict(populate_by_name=True)


class RoomView(BaseModel):
    id: str
    name: str
    players: List[RoomPlayerView]
    max_players: int = Field(alias="maxPlayers")
    status: GameStatus
    created_at: int = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class JoinedPlayer(BaseModel):
    id: str
    name: str


class ChatMessage(BaseModel):
    id: str
    player_id: str = Field(alias="playerId")
    player_name: str = Field(alias="playerName")
    text: str
    timestamp: int

    model_config = ConfigDict(populate_by_name=True)


# ---------- inbound intents ----------
class _IntentData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")


class RoomRef(_IntentData):
    room_id: Optional[str] = Field(None, alias="roomId")


class JoinRoomData(_IntentData):
    room_id: str = Field(alias="roomId", min_length=1)
    player_name: str = Field(alias="playerName", min_length=1, max_length=64)


class RoomData(_IntentData):
    room_id: str = Field(alias="roomId", min_length=1)


class AttackData(RoomData):
    card_id: str = Field(alias="cardId", min_length=1)


class DefendData(RoomData):
    attack_card_id: str = Field(alias="attackCardId", min_length=1)
    defend_card_id: str = Field(alias="defendCardId", min_length=1)


class ChatData(RoomData):
    message: str = Field(min_length=1, max_length=500)


class JoinRoomIntent(BaseModel):
    type: Literal["join_room"]
    data: JoinRoomData


class LeaveRoomIntent(BaseModel):
    type: Literal["leave_room"]
    data: RoomRef = Field(default_factory=RoomRef)


class StartGameIntent(BaseModel):
    type: Literal["start_game"]
    data: RoomData


class AttackIntent(BaseModel):
    type: Literal["attack"]
    data: AttackData


class DefendIntent(BaseModel):
    type: Literal["defend"]
    data: DefendData


class TakeCardsIntent(BaseModel):
    type: Literal["take_cards"]
    data: RoomRef = Field(default_factory=RoomRef)


class PassIntent(BaseModel):
    type: Literal["pass"]
    data: RoomRef = Field(default_factory=RoomRef)


class ConfirmAttackIntent(BaseModel):
    type: Literal["confirm_attack"]
    data: RoomData


class ConfirmDefendIntent(BaseModel):
    type: Literal["confirm_defend"]
    data: RoomData


class ChatMessageIntent(BaseModel):
    type: Literal["chat_message"]
    data: ChatData


Intent = Annotated[
    Union[
        JoinRoomIntent,
        LeaveRoomIntent,
        StartGameIntent,
        AttackIntent,
        DefendIntent,
        TakeCardsIntent,
        PassIntent,
        ConfirmAttackIntent,
        ConfirmDefendIntent,
        ChatMessageIntent,
    ],
    Field(discriminator="type"),
]

INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)
