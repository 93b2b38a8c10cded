from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional

from downlink.entities.challenges import Encryption, Password
from downlink.entities.computers import MissionComputer
from downlink.events import EventEmitter

if TYPE_CHECKING:
    from downlink.entities.challenges import Challenge
    from downlink.entities.company import Company
    from downlink.world.state import World

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissionDifficulty:
    name: str
    modifier: Decimal
    server_type: str


DIFFICULTIES: Dict[str, MissionDifficulty] = {
    "EASY": MissionDifficulty("Easy", Decimal(1), "Server"),
    "MEDIUM": MissionDifficulty("Medium", Decimal(5), "Cluster"),
    "HARD": MissionDifficulty("Hard", Decimal(10), "Farm"),
}


class Mission(EventEmitter):
    """Break into a server of ``target`` on behalf of ``sponsor``.

    The target server is only generated by ``build``, so missions can sit in
    the available list cheaply. Fires ``complete`` once the server is accessed.
    """

    def __init__(self, target: "Company", sponsor: "Company", difficulty: Optional[MissionDifficulty] = None) -> None:
        super().__init__()
        self.name = f"Hack {target.name} for {sponsor.name}"
        self.target = target
        self.sponsor = sponsor
        self.difficulty = difficulty or DIFFICULTIES["EASY"]
        self.computer: Optional[MissionComputer] = None
        self.status = "Available"

    @property
    def challenges(self) -> List["Challenge"]:
        return self.computer.challenges if self.computer is not None else []

    def build(self, world: "World") -> "Mission":
        if self.computer is not None:
            return self

        computer = MissionComputer(self.target, self.difficulty.server_type, rng=world.rng)
        computer.set_location(world.random_location())
        computer.on("accessed", lambda _: self.signal_complete())

        if self.difficulty is DIFFICULTIES["HARD"]:
            password = Password.random_alphanumeric(world)
            encryption = Encryption.cubic(world.rng)
        elif self.difficulty is DIFFICULTIES["MEDIUM"]:
            password = Password.random_dictionary(world, 5)
            encryption = Encryption.quadratic(world.rng)
        else:
            password = Password.random_dictionary(world, 1)
            encryption = Encryption.linear(world.rng)

        computer.set_password(password).set_encryption(encryption)
        self.computer = computer
        self.target.add_computer(computer)
        world.register_computer(computer)
        self.status = "Underway"
        logger.info("mission.built", extra={"mission": self.name, "server": computer.name})
        return self

    @property
    def reward(self) -> Decimal:
        if self.computer is None:
            return Decimal(0)
        respect = Decimal(str(self.sponsor.player_respect_modifier))
        return self.difficulty.modifier * self.computer.difficulty_modifier * respect

    def signal_complete(self) -> None:
        if self.status == "Complete":
            return
        self.status = "Complete"
        self.sponsor.finish_mission(self)
        self.trigger("complete", self)

    def tick(self, trace_amount: int = 1) -> None:
        if self.computer is not None:
            self.computer.tick(trace_amount)

    def __repr__(self) -> str:
        return f"Mission({self.name!r}, {self.difficulty.name}, {self.status})"


__all__ = ["Mission", "MissionDifficulty", "DIFFICULTIES"]
