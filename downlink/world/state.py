from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from downlink.config import EngineConfig
from downlink.engines.pool import CPU
from downlink.engines.rng import RNG
from downlink.entities.challenges import Alphabet
from downlink.entities.company import Company
from downlink.entities.computers import Computer, PlayerComputer, PublicComputer
from downlink.entities.missions import Mission
from downlink.errors import UnknownHopError
from downlink.network.connection import Connection
from downlink.world import loaders
from downlink.world.schema import Location, SaveGame

logger = logging.getLogger(__name__)

MAP_WIDTH = 1000
MAP_HEIGHT = 500
MINIMUM_MISSIONS = 10


@dataclass
class World:
    """Container for everything game objects look up by reference.

    Holds the shared RNG, the dictionary, companies and every computer that
    can appear as a hop, keyed by identity.
    """

    config: EngineConfig
    rng: RNG
    dictionary: List[str]
    companies: List[Company] = field(default_factory=list)
    computers: Dict[str, Computer] = field(default_factory=dict)
    available_missions: List[Mission] = field(default_factory=list)
    connections_created: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.alphabet = Alphabet(self.rng)
        self.dictionary = list(self.dictionary)
        for company in self.companies:
            for computer in self._company_computers(company):
                self.register_computer(computer)

    @classmethod
    def from_files(cls, config: Optional[EngineConfig] = None, *, seed: Optional[int] = None) -> "World":
        config = config or EngineConfig()
        rng = RNG(config.seed if seed is None else seed)
        dictionary = loaders.load_dictionary(config.dictionary_path)
        world = cls(config=config, rng=rng, dictionary=dictionary)
        world.build_companies(loaders.load_company_names(config.companies_path))
        return world

    @staticmethod
    def _company_computers(company: Company) -> Iterable[Computer]:
        if company.public_server is not None:
            yield company.public_server
        yield from company.computers

    # -- lookups -----------------------------------------------------------

    def register_computer(self, computer: Computer) -> Computer:
        self.computers[computer.identity] = computer
        return computer

    def computer_by_identity(self, identity: str) -> Computer:
        try:
            return self.computers[identity]
        except KeyError:
            raise UnknownHopError(f"No computer with identity {identity}") from None

    @property
    def public_servers(self) -> List[Computer]:
        return [company.public_server for company in self.companies if company.public_server is not None]

    def company_named(self, name: str) -> Optional[Company]:
        return next((company for company in self.companies if company.name == name), None)

    def random_location(self) -> Location:
        return Location(x=self.rng.randint(0, MAP_WIDTH), y=self.rng.randint(0, MAP_HEIGHT))

    # -- construction ------------------------------------------------------

    def build_companies(self, names: Iterable[str]) -> List[Company]:
        self.companies = []
        for name in names:
            company = Company(name)
            company.set_public_server(self.new_public_server(company))
            self.companies.append(company)
        logger.debug("world.companies.built", extra={"count": len(self.companies)})
        return self.companies

    def new_public_server(self, company: Company) -> PublicComputer:
        server = PublicComputer(f"{company.name} Public Server", company, rng=self.rng)
        server.set_location(self.random_location())
        self.register_computer(server)
        return server

    def new_player_computer(self, cpus: Optional[List[CPU]] = None) -> PlayerComputer:
        if cpus is None:
            cpus = [CPU(self.config.cpu_name, self.config.cpu_speed)]
        player = PlayerComputer(cpus, self, self.config.max_cpus)
        player.set_location(self.random_location())
        return player

    def new_connection(self, player: Optional[PlayerComputer] = None, name: Optional[str] = None) -> Connection:
        self.connections_created += 1
        connection = Connection(
            name or f"Connection {self.connections_created}",
            distance=self.config.trace_distance,
            sensitivity=self.config.trace_sensitivity,
        )
        if player is not None:
            connection.set_starting_point(player)
        return connection

    # -- missions ----------------------------------------------------------

    def new_simple_mission(self) -> Mission:
        target, sponsor = self.rng.sample(self.companies, 2)
        return Mission(target, sponsor)

    def update_available_missions(self) -> List[Mission]:
        while len(self.available_missions) < MINIMUM_MISSIONS:
            self.available_missions.append(self.new_simple_mission())
        return self.available_missions

    def get_next_mission(self) -> Mission:
        self.update_available_missions()
        mission = self.available_missions.pop(0).build(self)
        self.update_available_missions()
        return mission

    # -- persistence -------------------------------------------------------

    def save_game(
        self,
        path: Path,
        *,
        player: PlayerComputer,
        connection: Optional[Connection] = None,
        currency: Decimal = Decimal(0),
    ) -> Path:
        save = SaveGame(
            seed=self.rng.seed,
            currency=str(currency),
            player=player.to_document(),
            connection=connection.to_document() if connection is not None else None,
            companies=[company.to_document() for company in self.companies],
        )
        written = loaders.write_save(save, path)
        logger.info("world.saved", extra={"path": str(written)})
        return written

    @classmethod
    def restore(
        cls,
        save: SaveGame,
        config: Optional[EngineConfig] = None,
    ) -> Tuple["World", PlayerComputer, Optional[Connection], Decimal]:
        config = config or EngineConfig()
        world = cls(config=config, rng=RNG(save.seed), dictionary=loaders.load_dictionary(config.dictionary_path))
        for document in save.companies:
            company = Company(
                document.name,
                player_respect_modifier=document.player_respect_modifier,
                mission_success_increase_exponent=document.mission_success_increase_exponent,
            )
            company.set_public_server(PublicComputer.from_document(document.public_server, company))
            for computer_document in document.computers:
                company.add_computer(Computer.from_document(computer_document, company))
            world.companies.append(company)
            for computer in cls._company_computers(company):
                world.register_computer(computer)

        player = PlayerComputer.from_player_document(save.player, world, config.max_cpus)
        connection = None
        if save.connection is not None:
            connection = Connection.from_document(
                save.connection,
                world.computer_by_identity,
                starting_point=player,
                distance=config.trace_distance,
                sensitivity=config.trace_sensitivity,
            )
        return world, player, connection, Decimal(save.currency)


__all__ = ["World", "MAP_WIDTH", "MAP_HEIGHT", "MINIMUM_MISSIONS"]
