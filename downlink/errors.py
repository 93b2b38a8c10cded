from __future__ import annotations

from typing import Any


class DownlinkError(Exception):
    """Base class for invariant violations raised by the game core."""


class DuplicateTaskError(DownlinkError):
    pass


class InvalidTaskError(DownlinkError):
    pass


class InsufficientCapacityError(DownlinkError):
    pass


class OverloadAssignmentError(DownlinkError):
    def __init__(self, task: Any, cycles: Any) -> None:
        super().__init__(
            f"Trying to run a task ({task.name}) with fewer cycles {cycles} "
            f"than it requires {task.minimum_required_cycles}"
        )
        self.task = task
        self.cycles = cycles


class UnknownChallengeError(DownlinkError):
    pass


class InvalidHopTypeError(DownlinkError):
    pass


class HopNotFoundError(DownlinkError):
    pass


class UnknownHopError(DownlinkError):
    pass


__all__ = [
    "DownlinkError",
    "DuplicateTaskError",
    "InvalidTaskError",
    "InsufficientCapacityError",
    "OverloadAssignmentError",
    "UnknownChallengeError",
    "InvalidHopTypeError",
    "HopNotFoundError",
    "UnknownHopError",
]
