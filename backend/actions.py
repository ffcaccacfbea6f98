from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Attack:
    player_id: str
    card_id: str


@dataclass(frozen=True)
class Defend:
    player_id: str
    attack_card_id: str
    defend_card_id: str


@dataclass(frozen=True)
class TakeCards:
    player_id: str


@dataclass(frozen=True)
class ConfirmAttack:
    player_id: str


@dataclass(frozen=True)
class ConfirmDefend:
    player_id: str


@dataclass(frozen=True)
class Pass:
    player_id: str


Action = Union[Attack, Defend, TakeCards, ConfirmAttack, ConfirmDefend, Pass]
