from __future__ import annotations

from typing import List

import pytest

from downlink.config import EngineConfig, load_engine_config
from downlink.engines.rng import RNG
from downlink.entities.computers import Computer
from downlink.world.state import World


@pytest.fixture()
def config() -> EngineConfig:
    return load_engine_config({})


@pytest.fixture()
def rng() -> RNG:
    return RNG(42)


@pytest.fixture()
def world(config: EngineConfig) -> World:
    return World.from_files(config, seed=42)


@pytest.fixture()
def hops() -> List[Computer]:
    return [Computer(f"hop{index}", address=f"10.0.0.{index}") for index in range(5)]
