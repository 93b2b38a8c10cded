"""Trace-back along the chain of hops between the player and a target.

A ``Connection`` is an ordered list of intermediate hops plus optional start
and end points. Once tracing begins it is split into ``ConnectionStep``
pairs, traced from the target end back towards the player. Progress left
over after a step is traced flows straight into the next step, so a single
large tick can cross several short hops.
"""

from __future__ import annotations

import hashlib
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Protocol, runtime_checkable

from downlink.errors import HopNotFoundError, InvalidHopTypeError
from downlink.events import EventEmitter
from downlink.world.schema import ConnectionDocument

if TYPE_CHECKING:
    from downlink.world.schema import Location

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_DISTANCE = 10
DEFAULT_SENSITIVITY = 5
STEP_NOT_TRACED = -1


@runtime_checkable
class Hop(Protocol):
    location: Optional["Location"]

    @property
    def identity(self) -> str:
        ...

    def connect(self) -> Any:
        ...

    def disconnect(self) -> Any:
        ...


class StepState(str, Enum):
    PRISTINE = "pristine"
    TRACING = "tracing"
    TRACED = "traced"


class ConnectionStep(EventEmitter):
    """Fires ``stepTraced`` with itself when its distance is covered."""

    def __init__(self, start: Hop, end: Hop, distance: int = DEFAULT_CONNECTION_DISTANCE) -> None:
        super().__init__()
        self.start = start
        self.end = end
        self.distance = distance
        self.amount_traced = 0
        self.state = StepState.PRISTINE

    @property
    def traced(self) -> bool:
        return self.state is StepState.TRACED

    @property
    def percentage(self) -> float:
        return min(self.amount_traced / self.distance, 1.0) if self.distance else 1.0

    def trace_amount(self, amount: int) -> int:
        """Add ``amount`` of progress.

        Returns the overflow past ``distance`` once the step is traced,
        ``STEP_NOT_TRACED`` while it is not, and 0 if it was already traced.
        """
        if self.state is StepState.TRACED:
            return 0
        self.amount_traced += amount
        self.state = StepState.TRACING
        if self.amount_traced >= self.distance:
            self.state = StepState.TRACED
            self.trigger("stepTraced", self)
            return self.amount_traced - self.distance
        return STEP_NOT_TRACED

    def reset(self) -> None:
        self.amount_traced = 0
        self.state = StepState.PRISTINE

    def __repr__(self) -> str:
        return f"ConnectionStep({self.start.identity}->{self.end.identity}, {self.amount_traced}/{self.distance})"


class Connection(EventEmitter):
    """Events: ``stepTraced`` (step, steps traced so far), ``updateTracePercentage``
    (percentage) and ``connectionTraced`` (connection), the last being the
    moment the player has been detected.
    """

    def __init__(
        self,
        name: str = "Connection",
        *,
        distance: int = DEFAULT_CONNECTION_DISTANCE,
        sensitivity: int = DEFAULT_SENSITIVITY,
    ) -> None:
        super().__init__()
        if sensitivity <= 0:
            raise ValueError("sensitivity must be positive")
        self.name = name
        self.hash = ""
        self.starting_point: Optional[Hop] = None
        self.end_point: Optional[Hop] = None
        self.computers: List[Hop] = []
        self.connection_distance = distance
        self.sensitivity = sensitivity
        self.steps: List[ConnectionStep] = []
        self.steps_traced = 0
        self.trace_ticks = 0
        self.active = False
        self.traced = False
        self._initialised = False
        self.build_hash()

    # -- structure ---------------------------------------------------------

    @property
    def connection_length(self) -> int:
        return len(self.computers)

    def set_starting_point(self, hop: Hop) -> "Connection":
        self._check_hop(hop)
        self.starting_point = hop
        return self

    def set_end_point(self, hop: Hop) -> "Connection":
        self._check_hop(hop)
        self.end_point = hop
        return self

    def add_hop(self, hop: Hop) -> "Connection":
        """Append ``hop``; adding a hop that is already present removes it."""
        self._check_hop(hop)
        if hop in self.computers:
            return self.remove_hop(hop)
        self.computers.append(hop)
        self.build_hash()
        return self

    def remove_hop(self, hop: Hop) -> "Connection":
        if hop not in self.computers:
            raise HopNotFoundError(f"{getattr(hop, 'name', hop)!r} not found in {self.name}")
        self.computers.remove(hop)
        self.build_hash()
        return self

    def improve_connection_distance(self, amount: int) -> None:
        self.connection_distance += amount
        for step in self.steps:
            if not step.traced:
                step.distance += amount

    def build_hash(self) -> str:
        digest = hashlib.md5()
        for hop in self.computers:
            digest.update(hop.identity.encode("utf-8"))
        self.hash = digest.hexdigest()
        return self.hash

    def equals(self, other: Optional["Connection"]) -> bool:
        if not isinstance(other, Connection):
            return False
        return self.hash == other.hash

    def clone(self) -> "Connection":
        twin = Connection(self.name, distance=self.connection_distance, sensitivity=self.sensitivity)
        twin.starting_point = self.starting_point
        twin.end_point = self.end_point
        for hop in self.computers:
            twin.add_hop(hop)
        return twin

    @staticmethod
    def _check_hop(hop: object) -> None:
        if not isinstance(hop, Hop):
            raise InvalidHopTypeError(f"Incorrect object type added: {type(hop).__name__}")

    # -- tracing -----------------------------------------------------------

    def initialise(self) -> List[ConnectionStep]:
        """Build the step chain once; later calls return the same steps."""
        if self._initialised:
            return self.steps
        points: List[Hop] = []
        if self.starting_point is not None:
            points.append(self.starting_point)
        points.extend(self.computers)
        if self.end_point is not None:
            points.append(self.end_point)

        steps = [
            ConnectionStep(start, end, self.connection_distance)
            for start, end in zip(points, points[1:])
        ]
        steps.reverse()
        for step in steps:
            step.on("stepTraced", self._log_step)
        self.steps = steps
        self._initialised = True
        logger.debug("connection.initialised", extra={"connection": self.name, "steps": len(steps)})
        return self.steps

    @property
    def current_step(self) -> Optional[ConnectionStep]:
        if not self.steps:
            return None
        return self.steps[min(self.steps_traced, len(self.steps) - 1)]

    @property
    def trace_percentage(self) -> float:
        if not self.steps:
            return 100.0 if self.traced else 0.0
        current = self.current_step
        partial = current.percentage if current is not None and not current.traced else 0.0
        return min((self.steps_traced + partial) / len(self.steps), 1.0) * 100

    def trace_step(self, amount: int) -> None:
        self.initialise()
        if self.traced:
            return

        self.trace_ticks += 1
        if self.trace_ticks % self.sensitivity == 0:
            self.trigger("updateTracePercentage", self.trace_percentage)

        remainder = amount
        while remainder > 0 and self.steps_traced < len(self.steps):
            step = self.steps[self.steps_traced]
            result = step.trace_amount(remainder)
            if result >= 0:
                self.steps_traced += 1
                self.trigger("stepTraced", step, self.steps_traced)
                remainder = result
            else:
                remainder = 0

        if self.steps_traced == len(self.steps):
            self.traced = True
            logger.info("connection.traced", extra={"connection": self.name, "ticks": self.trace_ticks})
            self.trigger("connectionTraced", self)

    def _log_step(self, step: ConnectionStep) -> None:
        logger.debug("connection.step.traced", extra={"connection": self.name, "hop": step.end.identity})

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> "Connection":
        self.active = True
        for hop in self.computers:
            hop.connect()
        return self

    def connect(self) -> "Connection":
        self.steps_traced = 0
        self.trace_ticks = 0
        self.traced = False
        for step in self.steps:
            step.reset()
        return self.open()

    def reconnect(self) -> "Connection":
        return self.open()

    def close(self) -> "Connection":
        self.active = False
        for hop in reversed(self.computers):
            hop.disconnect()
        return self

    # -- persistence -------------------------------------------------------

    def to_document(self) -> ConnectionDocument:
        return ConnectionDocument(name=self.name, hop_identities=[hop.identity for hop in self.computers])

    @classmethod
    def from_document(
        cls,
        document: ConnectionDocument,
        lookup: Callable[[str], Hop],
        starting_point: Optional[Hop] = None,
        **kwargs: Any,
    ) -> "Connection":
        connection = cls(document.name, **kwargs)
        if starting_point is not None:
            connection.set_starting_point(starting_point)
        for identity in document.hop_identities:
            connection.add_hop(lookup(identity))
        return connection

    def __repr__(self) -> str:
        return f"Connection({self.name!r}, hops={len(self.computers)}, traced={self.steps_traced}/{len(self.steps)})"


__all__ = [
    "Hop",
    "StepState",
    "ConnectionStep",
    "Connection",
    "DEFAULT_CONNECTION_DISTANCE",
    "DEFAULT_SENSITIVITY",
    "STEP_NOT_TRACED",
]
