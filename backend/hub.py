from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from actions import Action, Attack, ConfirmAttack, ConfirmDefend, Defend, Pass, TakeCards
from errors import GameError, NotFound, RoomNotFound, StateConflict, ValidationError
from models import (
    INTENT_ADAPTER,
    AttackIntent,
    ChatMessage,
    ChatMessageIntent,
    ConfirmAttackIntent,
    ConfirmDefendIntent,
    DefendIntent,
    JoinedPlayer,
    JoinRoomIntent,
    LeaveRoomIntent,
    PassIntent,
    StartGameIntent,
    TakeCardsIntent,
)
from rooms import Room, SessionRegistry

logger = logging.getLogger(__name__)


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


@dataclass
class Client:
    ws: Connection
    player_id: Optional[str] = None


def _describe(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid message: {location}: {first.get('msg')}" if location else f"Invalid message: {first.get('msg')}"


class ConnectionHub:
    def __init__(self, registry: SessionRegistry):
        self.registry = registry
        self.clients: Dict[str, Client] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, room_id: str) -> asyncio.Lock:
        self._prune_locks()
        return self._locks.setdefault(room_id, asyncio.Lock())

    def _prune_locks(self):
        # rooms can also disappear through the REST api, which never touches the hub
        for room_id in [rid for rid, lock in self._locks.items() if not lock.locked()]:
            if room_id not in self.registry.rooms:
                del self._locks[room_id]

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    async def connect(self, ws: Connection) -> str:
        client_id = uuid.uuid4().hex
        self.clients[client_id] = Client(ws=ws)
        logger.info("Client %s connected", client_id)
        await self.send(client_id, "connect", {"clientId": client_id})
        return client_id

    async def disconnect(self, client_id: str):
        client = self.clients.pop(client_id, None)
        if client is None:
            return
        if client.player_id:
            await self._leave(client.player_id)
        logger.info("Client %s disconnected", client_id)

    async def _leave(self, player_id: str) -> bool:
        room = self.registry.get_player_room(player_id)
        if room is None:
            return False
        async with self._lock(room.id):
            result = self.registry.remove_player_from_room(player_id)
            if result:
                await self.broadcast_game_state(room.id)
        self._prune_locks()
        return result is not None

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    async def handle_message(self, client_id: str, raw: str | bytes):
        if client_id not in self.clients:
            return
        try:
            intent = INTENT_ADAPTER.validate_json(raw)
        except PydanticValidationError as exc:
            await self.send_error(client_id, _describe(exc))
            return
        try:
            await self.dispatch(client_id, intent)
        except GameError as exc:
            logger.info("Rejected %s from client %s: %s", intent.type, client_id, exc)
            await self.send_error(client_id, str(exc))

    async def dispatch(self, client_id: str, intent):
        client = self.clients[client_id]
        if isinstance(intent, JoinRoomIntent):
            await self._join_room(client_id, client, intent)
        elif isinstance(intent, LeaveRoomIntent):
            await self._leave_room(client_id, client)
        elif isinstance(intent, StartGameIntent):
            await self._start_game(client, intent)
        elif isinstance(intent, AttackIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            await self._play(client_id, room_id, Attack(client.player_id, intent.data.card_id))
        elif isinstance(intent, DefendIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            action = Defend(client.player_id, intent.data.attack_card_id, intent.data.defend_card_id)
            await self._play(client_id, room_id, action)
        elif isinstance(intent, TakeCardsIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            await self._play(client_id, room_id, TakeCards(client.player_id))
        elif isinstance(intent, PassIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            await self._play(client_id, room_id, Pass(client.player_id))
        elif isinstance(intent, ConfirmAttackIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            await self._play(client_id, room_id, ConfirmAttack(client.player_id))
        elif isinstance(intent, ConfirmDefendIntent):
            room_id = self._player_room_id(client, intent.data.room_id)
            await self._play(client_id, room_id, ConfirmDefend(client.player_id))
        elif isinstance(intent, ChatMessageIntent):
            await self._chat(client, intent)
        else:
            raise ValidationError(f"Unsupported message type {intent.type}")

    def _player_room_id(self, client: Client, requested: Optional[str]) -> str:
        if client.player_id is None:
            raise NotFound("Join a room first")
        room = self.registry.get_player_room(client.player_id)
        if room is None:
            raise RoomNotFound("Room not found")
        if requested is not None and requested != room.id:
            raise ValidationError("Room mismatch")
        return room.id

    async def _join_room(self, client_id: str, client: Client, intent: JoinRoomIntent):
        room_id = intent.data.room_id
        if client.player_id is not None:
            current = self.registry.get_player_room(client.player_id)
            if current is not None and current.id == room_id:
                raise StateConflict("Already in this room")
        if self.registry.get_room(room_id) is None:
            raise RoomNotFound(f"Room {room_id} not found")
        previous = client.player_id
        async with self._lock(room_id):
            # the seat is taken before the old room is left so a refused join changes nothing
            player, room = self.registry.add_player_to_room(room_id, intent.data.player_name)
            client.player_id = player.id
            room_view = room.to_view().model_dump(by_alias=True)
            await self.send(
                client_id,
                "join_room",
                {"room": room_view, "player": JoinedPlayer(id=player.id, name=player.name).model_dump()},
            )
            await self.broadcast_room(room.id, "join_room", {"room": room_view}, exclude=client_id)
        if previous is not None:
            await self._leave(previous)

    async def _leave_room(self, client_id: str, client: Client):
        if client.player_id is None:
            raise NotFound("Not in a room")
        player_id = client.player_id
        client.player_id = None
        if not await self._leave(player_id):
            raise RoomNotFound("Room not found")
        await self.send(client_id, "leave_room", {"success": True})

    async def _start_game(self, client: Client, intent: StartGameIntent):
        room_id = self._player_room_id(client, intent.data.room_id)
        async with self._lock(room_id):
            self.registry.start_game(room_id, client.player_id)
            await self.broadcast_game_state(room_id)

    async def _play(self, client_id: str, room_id: str, action: Action):
        async with self._lock(room_id):
            game = self.registry.require_game(room_id)
            result = game.apply(action)
            if not result.ok:
                await self.send_error(client_id, result.error or "Move rejected")
                return
            self.registry.sync_status(room_id)
            await self.broadcast_game_state(room_id)

    async def _chat(self, client: Client, intent: ChatMessageIntent):
        room_id = self._player_room_id(client, intent.data.room_id)
        room = self.registry.get_room(room_id)
        player = room.get_player(client.player_id) if room else None
        if player is None:
            raise NotFound("Player not found in room")
        message = ChatMessage(
            id=uuid.uuid4().hex,
            playerId=player.id,
            playerName=player.name,
            text=intent.data.message,
            timestamp=int(time.time() * 1000),
        )
        await self.broadcast_room(room_id, "chat_message", message.model_dump(by_alias=True))

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    async def send(self, client_id: str, message_type: str, data: Dict[str, Any]):
        client = self.clients.get(client_id)
        if client is None:
            return
        try:
            await client.ws.send_json({"type": message_type, "data": data})
        except RuntimeError:
            logger.debug("Dropped %s for closed client %s", message_type, client_id)

    async def send_error(self, client_id: str, message: str):
        await self.send(client_id, "error", {"message": message})

    def _room_clients(self, room: Room) -> List[tuple[str, str]]:
        connected = {p.id for p in room.players if p.connected}
        return [
            (client_id, client.player_id)
            for client_id, client in list(self.clients.items())
            if client.player_id in connected
        ]

    async def broadcast_room(
        self, room_id: str, message_type: str, data: Dict[str, Any], exclude: Optional[str] = None
    ):
        room = self.registry.get_room(room_id)
        if room is None:
            return
        for client_id, _ in self._room_clients(room):
            if client_id != exclude:
                await self.send(client_id, message_type, data)

    async def broadcast_game_state(self, room_id: str):
        """Push one snapshot per connected member, each with only their own hand visible."""
        room = self.registry.get_room(room_id)
        if room is None:
            return
        game = self.registry.get_game(room_id)
        room_view = room.to_view().model_dump(by_alias=True)
        for client_id, player_id in self._room_clients(room):
            payload = {
                "game": game.snapshot(player_id).model_dump(by_alias=True) if game else None,
                "room": room_view,
            }
            await self.send(client_id, "game_state", payload)
