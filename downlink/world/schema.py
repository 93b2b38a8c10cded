"""Persisted structural state.

Only identity and shape are saved; in-flight progress such as trace
amounts or task assignments is rebuilt fresh on load.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Location(BaseModel):
    x: float
    y: float


class CPUDocument(BaseModel):
    name: str
    speed: Decimal = Field(gt=0)


class ComputerDocument(BaseModel):
    name: str
    address: str
    location: Optional[Location] = None
    company: Optional[str] = None


class PlayerComputerDocument(BaseModel):
    name: str = "Home"
    address: str = "127.0.0.1"
    location: Optional[Location] = None
    units: List[CPUDocument] = Field(default_factory=list)

    @field_validator("units")
    @classmethod
    def _require_units(cls, value: List[CPUDocument]) -> List[CPUDocument]:
        if not value:
            raise ValueError("a player computer needs at least one CPU")
        return value


class ConnectionDocument(BaseModel):
    name: str
    hop_identities: List[str] = Field(default_factory=list)


class CompanyDocument(BaseModel):
    name: str
    public_server: ComputerDocument
    computers: List[ComputerDocument] = Field(default_factory=list)
    player_respect_modifier: float = 1.0
    mission_success_increase_exponent: float = 1.001


class SaveGame(BaseModel):
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    seed: int
    currency: str = "0"
    player: PlayerComputerDocument
    connection: Optional[ConnectionDocument] = None
    companies: List[CompanyDocument] = Field(default_factory=list)


__all__ = [
    "Location",
    "CPUDocument",
    "ComputerDocument",
    "PlayerComputerDocument",
    "ConnectionDocument",
    "CompanyDocument",
    "SaveGame",
]
