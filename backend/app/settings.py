from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEV_ORIGIN = "http://localhost:5173"


def _parse_origins(raw: str) -> List[str]:
    """
    Split ORIGIN from env on commas, dropping blanks.
    Example: "https://durak.example.com, https://www.durak.example.com"
    """
    return [x.strip() for x in raw.split(",") if x.strip()]


class Settings(BaseSettings):
    origin: str = Field(default="", alias="ORIGIN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    default_max_players: int = Field(default=6, ge=2, le=6, alias="DEFAULT_MAX_PLAYERS")
    port: int = Field(default=3001, alias="PORT")

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def allowed_origins(self) -> List[str]:
        return [DEV_ORIGIN] + _parse_origins(self.origin)

    def log_status(self) -> None:
        env_name = os.getenv("RENDER_SERVICE_NAME") or os.getenv("ENV", "unknown")
        logger.info(
            "Server settings: origins=%s, log_level=%s, default_max_players=%s, env=%s",
            self.allowed_origins,
            self.log_level,
            self.default_max_players,
            env_name,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
