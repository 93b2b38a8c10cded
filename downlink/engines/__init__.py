"""Simulation engines (CPU pool, session driver, RNG)."""

from .cycles import ceil_div, floor_div
from .rng import RNG

__all__ = ["RNG", "ceil_div", "floor_div"]
