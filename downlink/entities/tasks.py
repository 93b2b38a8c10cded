"""Schedulable work bound to a single challenge.

A ``Task`` carries the contract the CPU pool relies on (cycle assignment,
give-back and completion). How the assigned cycles are spent each tick is
delegated to a worker chosen by ``build_task`` from the challenge kind.
"""

from __future__ import annotations

import logging
import math
import weakref
from fractions import Fraction
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Protocol, Sequence

from downlink.engines.cycles import Cycles, floor_div
from downlink.engines.rng import RNG
from downlink.entities.challenges import (
    ALPHANUMERIC_SYMBOLS,
    Alphabet,
    Challenge,
    ChallengeKind,
    Encryption,
    Password,
)
from downlink.errors import OverloadAssignmentError, UnknownChallengeError
from downlink.events import EventEmitter

if TYPE_CHECKING:
    from downlink.world.state import World

logger = logging.getLogger(__name__)

DEFAULT_MINIMUM_CYCLES = 10
DICTIONARY_CRACKER_MINIMUM_CYCLES = 5
SEQUENTIAL_CRACKER_MINIMUM_CYCLES = 20


class TaskWorker(Protocol):
    name: str
    minimum_required_cycles: Cycles

    def work(self, task: "Task") -> None:
        ...

    @property
    def percentage(self) -> float:
        ...


class Task(EventEmitter):
    """Fires ``complete`` (with itself) once its challenge is beaten."""

    def __init__(
        self,
        name: str,
        challenge: Challenge,
        minimum_required_cycles: Optional[Cycles] = None,
        worker: Optional[TaskWorker] = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.minimum_required_cycles: Cycles = (
            minimum_required_cycles if minimum_required_cycles else DEFAULT_MINIMUM_CYCLES
        )
        self.cycles_per_tick: Cycles = 0
        self.weight = 1
        self.ticks_taken = 0
        self.working = False
        self.completed = False
        self.worker = worker
        # the challenge's owner (usually a MissionComputer) keeps it alive
        self._challenge = weakref.ref(challenge)
        challenge.set_task(self)

    @property
    def challenge(self) -> Optional[Challenge]:
        return self._challenge()

    def set_cycles_per_tick(self, cycles_per_tick: Cycles) -> "Task":
        if cycles_per_tick < self.minimum_required_cycles:
            raise OverloadAssignmentError(self, cycles_per_tick)
        self.cycles_per_tick = cycles_per_tick
        return self

    def add_cycles(self, tick_increase: Cycles) -> None:
        self.cycles_per_tick += tick_increase

    def free_cycles(self, tick_reduction: Cycles) -> Cycles:
        """Give back up to ``tick_reduction`` cycles and return what was released.

        A task that cannot spare the full amount above its minimum hands back
        half of its current assignment instead, which can leave it below its
        own minimum.
        """
        if self.cycles_per_tick <= tick_reduction + self.minimum_required_cycles:
            if self.cycles_per_tick > 1:
                half = floor_div(self.cycles_per_tick, 2)
                self.cycles_per_tick -= half
                return half
            return 0
        self.cycles_per_tick -= tick_reduction
        return tick_reduction

    def signal_complete(self) -> None:
        if self.completed:
            return
        self.working = False
        self.completed = True
        logger.info("task.complete", extra={"task": self.name, "ticks": self.ticks_taken})
        self.trigger("complete", self)
        challenge = self.challenge
        if challenge is not None and not challenge.solved:
            challenge.solve()

    @property
    def percentage(self) -> float:
        if self.completed:
            return 1.0
        if self.worker is None:
            return 0.0
        return self.worker.percentage

    @property
    def reward_ratio(self) -> float:
        challenge = self.challenge
        if not self.ticks_taken or challenge is None:
            return 0.0
        return float(challenge.difficulty) / self.ticks_taken**2

    def tick(self) -> None:
        if self.completed:
            return
        self.ticks_taken += 1
        self.working = True
        if self.worker is not None:
            self.worker.work(self)

    def __repr__(self) -> str:
        return (
            f"Task({self.name!r}, cycles={self.cycles_per_tick}, "
            f"minimum={self.minimum_required_cycles}, completed={self.completed})"
        )


class DictionaryCracker:
    name = "Dictionary Cracker"
    minimum_required_cycles = DICTIONARY_CRACKER_MINIMUM_CYCLES

    def __init__(self, words: Sequence[str], rng: RNG) -> None:
        self.dictionary: List[str] = rng.shuffled(words)
        self.total_guesses = 0
        self.current_guess: Optional[str] = None

    @property
    def dictionary_entries_left(self) -> int:
        return len(self.dictionary) - self.total_guesses

    @property
    def percentage(self) -> float:
        if not self.dictionary:
            return 0.0
        return self.total_guesses / len(self.dictionary)

    def work(self, task: Task) -> None:
        password = task.challenge
        if not isinstance(password, Password) or password.solved:
            return
        guesses = 0
        while guesses < task.cycles_per_tick and self.total_guesses < len(self.dictionary):
            self.current_guess = self.dictionary[self.total_guesses]
            self.total_guesses += 1
            guesses += 1
            if password.attack(self.current_guess):
                task.signal_complete()
                return


class SequentialAttacker:
    """Brute-forces one character position at a time, one guess per cycle."""

    name = "Sequential Cracker"
    minimum_required_cycles = SEQUENTIAL_CRACKER_MINIMUM_CYCLES

    def __init__(self, symbols: str = ALPHANUMERIC_SYMBOLS) -> None:
        self.symbols = symbols
        self.position = 0
        self.symbol_index = 0
        self.found: List[str] = []
        self.total_guesses = 0
        self._length = 0

    @property
    def current_guess(self) -> str:
        pending = self.symbols[self.symbol_index] if self._length and self.position < self._length else ""
        return "".join(self.found) + pending

    @property
    def percentage(self) -> float:
        if not self._length:
            return 0.0
        return self.position / self._length

    def work(self, task: Task) -> None:
        password = task.challenge
        if not isinstance(password, Password) or password.solved:
            return
        self._length = password.length
        budget = task.cycles_per_tick
        while budget > 0 and self.position < password.length:
            letter = self.symbols[self.symbol_index]
            budget -= 1
            self.total_guesses += 1
            if password.attack_position(self.position, letter):
                self.found.append(letter)
                self.position += 1
                self.symbol_index = 0
            else:
                self.symbol_index = (self.symbol_index + 1) % len(self.symbols)
        if self.position >= password.length and password.attack("".join(self.found)):
            task.signal_complete()


class EncryptionCell:
    def __init__(self, letter: str) -> None:
        self.solved = False
        self.letter = letter

    def solve(self) -> None:
        self.solved = True
        self.letter = "0"

    def scramble(self, alphabet: Alphabet) -> None:
        if not self.solved:
            self.letter = alphabet.random_letter()


class EncryptionCracker:
    """Solves random grid cells as whole units of progress accumulate.

    Every tick adds ``cycles_per_tick / difficulty`` to a fractional counter;
    each whole unit solves one unsolved cell and the remainder carries over.
    """

    name = "Encryption Cracker"

    def __init__(self, encryption: Encryption, alphabet: Alphabet, rng: RNG) -> None:
        self.rows = encryption.rows
        self.cols = encryption.cols
        self.encryption_difficulty = encryption.difficulty
        self.minimum_required_cycles = encryption.difficulty
        self.alphabet = alphabet
        self.rng = rng
        self.current_tick_progress = Fraction(0)
        self.grid: List[List[EncryptionCell]] = [
            [EncryptionCell(alphabet.random_letter()) for _ in range(self.cols)]
            for _ in range(self.rows)
        ]
        self.cells: List[EncryptionCell] = [cell for row in self.grid for cell in row]
        self.unsolved_cells: List[EncryptionCell] = list(self.cells)

    @property
    def percentage(self) -> float:
        return (len(self.cells) - len(self.unsolved_cells)) / len(self.cells)

    @property
    def solved(self) -> bool:
        return not self.unsolved_cells

    def solve_cells(self, count: int) -> None:
        chosen = self.rng.sample(self.unsolved_cells, min(count, len(self.unsolved_cells)))
        for cell in chosen:
            cell.solve()
            self.unsolved_cells.remove(cell)

    def work(self, task: Task) -> None:
        encryption = task.challenge
        if encryption is not None:
            encryption.begin()

        for cell in self.unsolved_cells:
            cell.scramble(self.alphabet)

        self.current_tick_progress += Fraction(task.cycles_per_tick) / Fraction(self.encryption_difficulty)
        if self.current_tick_progress >= 1:
            full_cells = math.floor(self.current_tick_progress)
            self.current_tick_progress -= full_cells
            self.solve_cells(full_cells)

        if not self.unsolved_cells:
            task.signal_complete()


WorkerBuilder = Callable[[Challenge, "World"], TaskWorker]

TASK_WORKERS: Dict[ChallengeKind, WorkerBuilder] = {
    ChallengeKind.DICTIONARY_PASSWORD: lambda challenge, world: DictionaryCracker(world.dictionary, world.rng),
    ChallengeKind.ALPHANUMERIC_PASSWORD: lambda challenge, world: SequentialAttacker(),
    ChallengeKind.ENCRYPTION: lambda challenge, world: EncryptionCracker(challenge, world.alphabet, world.rng),  # type: ignore[arg-type]
}


def build_task(challenge: Challenge, world: "World") -> Task:
    builder = TASK_WORKERS.get(getattr(challenge, "kind", None))  # type: ignore[arg-type]
    if builder is None:
        raise UnknownChallengeError(f"No task found for challenge {type(challenge).__name__}")
    worker = builder(challenge, world)
    return Task(worker.name, challenge, worker.minimum_required_cycles, worker)


__all__ = [
    "Task",
    "TaskWorker",
    "DictionaryCracker",
    "SequentialAttacker",
    "EncryptionCracker",
    "EncryptionCell",
    "TASK_WORKERS",
    "build_task",
    "DEFAULT_MINIMUM_CYCLES",
    "DICTIONARY_CRACKER_MINIMUM_CYCLES",
    "SEQUENTIAL_CRACKER_MINIMUM_CYCLES",
]
