from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from downlink.entities.challenges import Challenge
from downlink.entities.computers import Computer, PlayerComputer
from downlink.entities.missions import Mission
from downlink.errors import DownlinkError
from downlink.events import EventEmitter
from downlink.network.connection import Connection
from downlink.time import TickClock
from downlink.world.state import World

logger = logging.getLogger(__name__)


@dataclass
class GameSession(EventEmitter):
    """Drives one player's game a tick at a time.

    Each tick runs the player's CPU pool first and then lets the active
    mission's server trace the player's connection. Events: ``challengeSolved``,
    ``missionComplete`` and ``playerDetected``.
    """

    world: World
    player_computer: PlayerComputer
    connection: Optional[Connection] = None
    currency: Decimal = Decimal(0)
    active_mission: Optional[Mission] = None
    ticks: int = 0
    detected: bool = False
    completed_missions: List[Mission] = field(default_factory=list)

    def __post_init__(self) -> None:
        EventEmitter.__init__(self)
        if self.connection is None:
            self.new_connection()

    @classmethod
    def new_game(cls, world: World) -> "GameSession":
        return cls(world=world, player_computer=world.new_player_computer())

    def new_connection(self) -> Connection:
        self.connection = self.world.new_connection(self.player_computer)
        return self.connection

    def add_computer_to_connection(self, computer: Computer) -> Connection:
        connection = self.connection if self.connection is not None else self.new_connection()
        return connection.add_hop(computer)

    def accept_mission(self, mission: Optional[Mission] = None) -> Mission:
        """Make ``mission`` (or the next one on the board) the active mission.

        Every challenge gets a task on the player's machine before anything
        else changes. If the machine cannot take them all, nothing is admitted,
        a board mission goes back to the front of the board and the error
        propagates.
        """
        from_board = mission is None
        mission = self.world.get_next_mission() if mission is None else mission.build(self.world)
        computer = mission.computer
        if computer is None:
            raise RuntimeError(f"{mission.name} has no target server")

        try:
            self.player_computer.add_tasks_for_challenges(mission.challenges)
        except DownlinkError:
            if from_board:
                self.world.available_missions.insert(0, mission)
            raise

        self.active_mission = mission
        self.detected = False
        mission.on("complete", self.finish_current_mission)
        computer.on("playerDetected", self._player_detected)
        for challenge in mission.challenges:
            challenge.on("solved", self.challenge_solved)
        logger.info("session.mission.accepted", extra={"mission": mission.name})
        return mission

    def connect_to_target(self) -> Connection:
        if self.active_mission is None or self.active_mission.computer is None:
            raise RuntimeError("no mission to connect to")
        if self.connection is None:
            raise RuntimeError("no connection to route through")
        return self.active_mission.computer.accept_connection(self.connection)

    def disconnect(self) -> None:
        if self.active_mission is not None and self.active_mission.computer is not None:
            self.active_mission.computer.disconnect_player()

    def challenge_solved(self, challenge: Challenge) -> None:
        self.trigger("challengeSolved", challenge)

    def finish_current_mission(self, mission: Mission) -> None:
        reward = mission.reward
        self.currency += reward
        self.completed_missions.append(mission)
        if mission is self.active_mission:
            self.disconnect()
            self.active_mission = None
        logger.info("session.mission.complete", extra={"mission": mission.name, "reward": str(reward)})
        self.trigger("missionComplete", mission)

    def _player_detected(self, connection: Connection) -> None:
        self.detected = True
        self.trigger("playerDetected", connection)

    def tick(self) -> None:
        self.ticks += 1
        self.player_computer.tick()
        if self.active_mission is not None:
            self.active_mission.tick(self.world.config.trace_speed)

    def run(self, clock: TickClock) -> Dict[str, object]:
        """Tick until the clock runs out, the mission completes or the player is caught."""
        for _ in clock:
            self.tick()
            if self.active_mission is None or self.detected:
                break
        return self.summary()

    def summary(self) -> Dict[str, object]:
        connection = self.connection
        return {
            "ticks": self.ticks,
            "currency": str(self.currency),
            "missions_completed": len(self.completed_missions),
            "detected": self.detected,
            "running_tasks": [task.name for task in self.player_computer.tasks],
            "hops": connection.connection_length if connection is not None else 0,
        }


__all__ = ["GameSession"]
