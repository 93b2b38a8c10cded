from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional

from downlink.engines.pool import CPU, CPUPool
from downlink.engines.rng import RNG
from downlink.entities.challenges import Challenge, Encryption, Password
from downlink.entities.tasks import Task, build_task
from downlink.errors import DownlinkError, InsufficientCapacityError
from downlink.events import EventEmitter
from downlink.world.ids import computer_identity
from downlink.world.schema import ComputerDocument, Location, PlayerComputerDocument

if TYPE_CHECKING:
    from downlink.entities.company import Company
    from downlink.network.connection import Connection
    from downlink.world.state import World

logger = logging.getLogger(__name__)

DEFAULT_MAX_CPUS = 4
HOME_ADDRESS = "127.0.0.1"


class Computer(EventEmitter):
    def __init__(
        self,
        name: str,
        company: Optional["Company"] = None,
        address: Optional[str] = None,
        *,
        rng: Optional[RNG] = None,
    ) -> None:
        super().__init__()
        if not address:
            if rng is None:
                raise ValueError(f"{name} needs an address or an RNG to pick one")
            address = rng.ip_address()
        self.name = name
        self.address = address
        self.company = company
        self.location: Optional[Location] = None
        self.connections = 0

    @property
    def identity(self) -> str:
        return computer_identity(self.name, self.address)

    def set_location(self, location: Optional[Location]) -> "Computer":
        self.location = location
        return self

    def set_company(self, company: "Company") -> "Computer":
        self.company = company
        return self

    def connect(self) -> "Computer":
        self.connections += 1
        self.trigger("connected", self)
        return self

    def disconnect(self) -> "Computer":
        self.connections = max(self.connections - 1, 0)
        self.trigger("disconnected", self)
        return self

    def tick(self) -> None:
        pass

    def to_document(self) -> ComputerDocument:
        return ComputerDocument(
            name=self.name,
            address=self.address,
            location=self.location,
            company=self.company.name if self.company is not None else None,
        )

    @classmethod
    def from_document(cls, document: ComputerDocument, company: Optional["Company"] = None) -> "Computer":
        computer = cls(document.name, company, document.address)
        computer.set_location(document.location)
        return computer

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.address})"


class PublicComputer(Computer):
    pass


class PlayerComputer(Computer):
    """The player's own machine; owns the CPU pool that runs cracking tasks."""

    def __init__(
        self,
        cpus: Iterable[CPU],
        world: "World",
        max_cpus: Optional[int] = None,
        *,
        name: str = "Home",
        address: str = HOME_ADDRESS,
    ) -> None:
        super().__init__(name, None, address)
        cpus = list(cpus)
        self.max_cpus = max_cpus if max_cpus else DEFAULT_MAX_CPUS
        if not cpus:
            raise ValueError("a player computer needs at least one CPU")
        if len(cpus) > self.max_cpus:
            raise ValueError(f"{len(cpus)} CPUs do not fit in {self.max_cpus} slots")
        self.world = world
        self.cpu_pool = CPUPool(cpus)
        self.cpu_pool.on("taskComplete", lambda task: self.trigger("taskComplete", task))
        self.mission_tasks: List[Task] = []

    @property
    def cpus(self) -> tuple:
        return self.cpu_pool.cpus

    @property
    def tasks(self) -> List[Task]:
        return self.cpu_pool.tasks

    def get_task_for_challenge(self, challenge: Challenge) -> Task:
        return build_task(challenge, self.world)

    def add_tasks_for_challenges(self, challenges: Iterable[Challenge]) -> List[Task]:
        """Admit one task per challenge, or none of them."""
        tasks = [self.get_task_for_challenge(challenge) for challenge in challenges]
        required = sum(task.minimum_required_cycles for task in tasks)
        if required > self.cpu_pool.free_cycles:
            raise InsufficientCapacityError(
                f"{self.name} needs {required} free cycles for {len(tasks)} tasks "
                f"but only has {self.cpu_pool.free_cycles}."
            )

        admitted: List[Task] = []
        try:
            for task in tasks:
                self.cpu_pool.add_task(task)
                admitted.append(task)
        except DownlinkError:
            for task in reversed(admitted):
                self.cpu_pool.withdraw_task(task)
            raise

        for task in admitted:
            self.mission_tasks.append(task)
            task.on("complete", self._forget_task)
        return admitted

    def _forget_task(self, task: Task) -> None:
        if task in self.mission_tasks:
            self.mission_tasks.remove(task)

    def tick(self) -> None:
        self.cpu_pool.tick()

    def to_document(self) -> PlayerComputerDocument:  # type: ignore[override]
        return PlayerComputerDocument(
            name=self.name,
            address=self.address,
            location=self.location,
            units=[cpu.to_document() for cpu in self.cpus],
        )

    @classmethod
    def from_player_document(
        cls,
        document: PlayerComputerDocument,
        world: "World",
        max_cpus: Optional[int] = None,
    ) -> "PlayerComputer":
        cpus = [CPU.from_document(unit) for unit in document.units]
        computer = cls(cpus, world, max_cpus, name=document.name, address=document.address)
        computer.set_location(document.location)
        return computer


class MissionComputer(Computer):
    """A target server guarded by a password and an encryption.

    Starting work on either challenge alerts the server and starts a trace
    back along the player's connection. Disconnecting stops the trace; coming
    back along an equal route resumes it where it stopped.
    """

    def __init__(self, company: "Company", server_type: str, *, rng: RNG) -> None:
        super().__init__(f"{company.name} {server_type}", company, rng=rng)
        self.encryption: Optional[Encryption] = None
        self.password: Optional[Password] = None
        self.accessible = False
        self.alerted = False
        self.tracing = False
        self.current_player_connection: Optional["Connection"] = None
        self.previous_player_connection: Optional["Connection"] = None

    @property
    def challenges(self) -> List[Challenge]:
        return [challenge for challenge in (self.password, self.encryption) if challenge is not None]

    @property
    def difficulty_modifier(self) -> Decimal:
        return Decimal(sum(challenge.difficulty for challenge in self.challenges) or 1)

    def set_password(self, password: Password) -> "MissionComputer":
        self.password = password
        self._watch(password)
        return self

    def set_encryption(self, encryption: Encryption) -> "MissionComputer":
        self.encryption = encryption
        self._watch(encryption)
        return self

    def _watch(self, challenge: Challenge) -> None:
        def solved(_: Challenge) -> None:
            self.update_access_status()
            challenge.off()

        challenge.on("solved", solved).on("start", lambda _: self.start_trace_back())

    def update_access_status(self) -> bool:
        self.accessible = self.accessible or bool(
            self.encryption is not None
            and self.encryption.solved
            and self.password is not None
            and self.password.solved
        )
        if self.accessible:
            self.stop_trace_back()
            self.trigger("accessed", self)
        return self.accessible

    def accept_connection(self, connection: "Connection") -> "Connection":
        """Attach the player's route; returns the connection actually traced.

        A route that is still attached is closed first.
        """
        if self.current_player_connection is not None:
            self.disconnect_player()
        previous = self.previous_player_connection
        if self.alerted and previous is not None and connection.equals(previous):
            self.current_player_connection = previous.reconnect()
            self.resume_trace_back()
        else:
            route = connection.clone()
            route.set_end_point(self)
            route.on("connectionTraced", self._player_traced)
            self.current_player_connection = route.connect()
            if self.alerted:
                self.resume_trace_back()
        return self.current_player_connection

    def disconnect_player(self) -> None:
        if self.current_player_connection is None:
            return
        self.current_player_connection.close()
        self.previous_player_connection = self.current_player_connection
        self.current_player_connection = None
        self.stop_trace_back()

    def start_trace_back(self) -> None:
        if self.accessible or self.tracing:
            return
        self.alerted = True
        self.tracing = True
        logger.info("mission_computer.trace.started", extra={"server": self.name})
        self.trigger("traceStarted", self)

    def resume_trace_back(self) -> None:
        if not self.accessible:
            self.tracing = True

    def stop_trace_back(self) -> None:
        self.tracing = False

    def _player_traced(self, connection: "Connection") -> None:
        self.tracing = False
        if self.company is not None:
            self.company.detect_hacking()
        logger.warning("mission_computer.player.detected", extra={"server": self.name})
        self.trigger("playerDetected", connection)

    def tick(self, trace_amount: int = 1) -> None:  # type: ignore[override]
        if self.tracing and self.current_player_connection is not None:
            self.current_player_connection.trace_step(trace_amount)


__all__ = ["Computer", "PublicComputer", "PlayerComputer", "MissionComputer", "DEFAULT_MAX_CPUS"]
