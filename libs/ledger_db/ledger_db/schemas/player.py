"""Pydantic schemas for the player row."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PlayerBalance(BaseModel):
    id: str
    dao_coins: int
    dao_coins_spent: int

    model_config = ConfigDict(from_attributes=True)


class PlayerStats(PlayerBalance):
    realm: str | None = None
    stage: int | None = None
    qi: int = 0
    prestige: int = 0
    spirit_stones: int = 0
