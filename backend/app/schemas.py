from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateRoomRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    max_players: int | None = Field(default=None, alias="maxPlayers")

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")
