from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from downlink.world.schema import CompanyDocument

if TYPE_CHECKING:
    from downlink.entities.computers import Computer
    from downlink.entities.missions import Mission


@dataclass
class Company:
    name: str
    public_server: Optional["Computer"] = None
    computers: List["Computer"] = field(default_factory=list)
    # grows with finished missions, shrinks every time the player is caught
    player_respect_modifier: float = 1.0
    mission_success_increase_exponent: float = 1.001

    def set_public_server(self, public_server: "Computer") -> None:
        self.public_server = public_server
        public_server.set_company(self)

    def add_computer(self, computer: "Computer") -> None:
        computer.set_company(self)
        self.computers.append(computer)

    def finish_mission(self, mission: "Mission") -> None:
        self.player_respect_modifier *= self.mission_success_increase_exponent

    def detect_hacking(self) -> None:
        self.player_respect_modifier /= self.mission_success_increase_exponent * 2

    def to_document(self) -> CompanyDocument:
        if self.public_server is None:
            raise ValueError(f"{self.name} has no public server to save")
        return CompanyDocument(
            name=self.name,
            public_server=self.public_server.to_document(),
            computers=[computer.to_document() for computer in self.computers],
            player_respect_modifier=self.player_respect_modifier,
            mission_success_increase_exponent=self.mission_success_increase_exponent,
        )
