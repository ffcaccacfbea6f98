from __future__ import annotations

import logging
import random
import time
import uuid
from typing import Dict, List, Optional, Tuple

from errors import IllegalMove, InsufficientPlayers, NotFound, RoomFull, RoomNotFound, StateConflict
from game import MIN_PLAYERS, GameSession
from models import FINISHED, PLAYING, WAITING, GameStatus, RoomView
from player import Player

logger = logging.getLogger(__name__)

MAX_PLAYERS = 6


def clamp_max_players(value: Optional[int]) -> int:
    if value is None:
        return MAX_PLAYERS
    return min(max(MIN_PLAYERS, value), MAX_PLAYERS)


class Room:
    def __init__(self, name: str, max_players: Optional[int] = MAX_PLAYERS, room_id: Optional[str] = None):
        self.id = room_id or str(uuid.uuid4())
        self.name = name
        self.max_players = clamp_max_players(max_players)
        self.players: List[Player] = []
        self.status: GameStatus = WAITING
        self.created_at = int(time.time() * 1000)

    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def can_join(self) -> bool:
        return self.status == WAITING and not self.is_full()

    def add_player(self, player: Player):
        if self.is_full():
            raise RoomFull("Room full")
        if self.get_player(player.id) is not None:
            raise StateConflict("Player already in room")
        self.players.append(player)

    def remove_player(self, player_id: str) -> Optional[Player]:
        player = self.get_player(player_id)
        if player is not None:
            self.players.remove(player)
        return player

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def connected_players(self) -> List[Player]:
        return [p for p in self.players if p.connected]

    def to_view(self) -> RoomView:
        return RoomView(
            id=self.id,
            name=self.name,
            players=[p.to_room_view() for p in self.players],
            maxPlayers=self.max_players,
            status=self.status,
            createdAt=self.created_at,
        )


class SessionRegistry:
    """In-memory table of rooms, their games and which room each player sits in."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rooms: Dict[str, Room] = {}
        self.games: Dict[str, GameSession] = {}
        self.player_rooms: Dict[str, str] = {}
        self._rng = rng

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------
    def all_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def create_room(self, name: str, max_players: Optional[int] = MAX_PLAYERS) -> Room:
        room = Room(name, max_players)
        self.rooms[room.id] = room
        logger.info("Room %s (%s) created for %d players", room.id, room.name, room.max_players)
        return room

    def remove_room(self, room_id: str) -> bool:
        self.games.pop(room_id, None)
        room = self.rooms.pop(room_id, None)
        for player_id in [pid for pid, rid in self.player_rooms.items() if rid == room_id]:
            del self.player_rooms[player_id]
        if room is not None:
            logger.info("Room %s removed", room_id)
        return room is not None

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------
    def require_joinable(self, room_id: str) -> Room:
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        if room.status != WAITING:
            raise StateConflict("Game already started")
        if room.is_full():
            raise RoomFull("Room full")
        return room

    def add_player_to_room(
        self, room_id: str, player_name: str, player_id: Optional[str] = None
    ) -> Tuple[Player, Room]:
        room = self.require_joinable(room_id)
        player = Player(name=player_name, id=player_id) if player_id else Player(name=player_name)
        room.add_player(player)
        self.player_rooms[player.id] = room.id
        logger.info("Player %s joined room %s", player.name, room.id)
        return player, room

    def remove_player_from_room(self, player_id: str) -> Optional[Tuple[Player, Room]]:
        room_id = self.player_rooms.pop(player_id, None)
        if room_id is None:
            return None
        room = self.get_room(room_id)
        if room is None:
            return None
        player = room.get_player(player_id)
        if player is None:
            return None

        game = self.games.get(room_id)
        if game is not None and game.status == PLAYING:
            # the seat and hand stay in the game, only the presence flag changes
            player.connected = False
            logger.info("Player %s disconnected from running game in room %s", player.name, room_id)
            if not room.connected_players():
                self.remove_room(room_id)
            return player, room

        room.remove_player(player_id)
        logger.info("Player %s left room %s", player.name, room_id)
        # seats of players who dropped out of a finished game do not keep the room alive
        if not room.connected_players():
            self.remove_room(room_id)
        return player, room

    def get_player_room(self, player_id: str) -> Optional[Room]:
        room_id = self.player_rooms.get(player_id)
        if room_id is None:
            return None
        return self.get_room(room_id)

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------
    def start_game(self, room_id: str, player_id: str) -> GameSession:
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        if room.status != WAITING:
            raise StateConflict("Game already started or finished")
        if len(room.players) < MIN_PLAYERS:
            raise InsufficientPlayers("Not enough players")
        if room.get_player(player_id) is None:
            raise IllegalMove("Only a player of this room can start the game")

        game = GameSession(room.id, room.players, rng=self._rng)
        game.start()
        room.status = PLAYING
        self.games[room.id] = game
        return game

    def get_game(self, room_id: str) -> Optional[GameSession]:
        return self.games.get(room_id)

    def get_game_by_player(self, player_id: str) -> Optional[GameSession]:
        room_id = self.player_rooms.get(player_id)
        if room_id is None:
            return None
        return self.games.get(room_id)

    def require_game(self, room_id: str) -> GameSession:
        game = self.games.get(room_id)
        if game is None:
            raise NotFound("Game not found")
        return game

    def sync_status(self, room_id: str):
        room = self.get_room(room_id)
        game = self.games.get(room_id)
        if room is not None and game is not None and game.status == FINISHED:
            room.status = FINISHED
