from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.schemas import CreateRoomRequest
from app.settings import get_settings
from rooms import Room, SessionRegistry

router = APIRouter(prefix="/api/rooms")


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _get_room_or_404(registry: SessionRegistry, room_id: str) -> Room:
    room = registry.get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="room_not_found")
    return room


@router.get("")
async def list_rooms(registry: SessionRegistry = Depends(get_registry)):
    return [room.to_view().model_dump(by_alias=True) for room in registry.all_rooms()]


@router.get("/{room_id}")
async def get_room(room_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _get_room_or_404(registry, room_id).to_view().model_dump(by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_room(req: CreateRoomRequest, registry: SessionRegistry = Depends(get_registry)):
    max_players = req.max_players if req.max_players is not None else get_settings().default_max_players
    room = registry.create_room(req.name, max_players)
    return room.to_view().model_dump(by_alias=True)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(room_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.remove_room(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="room_not_found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
