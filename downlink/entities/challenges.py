from __future__ import annotations

import math
import string
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from downlink.engines.rng import RNG
from downlink.events import EventEmitter

if TYPE_CHECKING:
    from downlink.entities.tasks import Task
    from downlink.world.state import World

# digits first, then upper/lower case pairs: 0-9, A, a, B, b, ...
ALPHANUMERIC_SYMBOLS = string.digits + "".join(
    upper + lower for upper, lower in zip(string.ascii_uppercase, string.ascii_lowercase)
)

DICTIONARY_DIFFICULTY_EASIEST = 1
DICTIONARY_DIFFICULTY_HARDEST = 10


class ChallengeKind(str, Enum):
    DICTIONARY_PASSWORD = "dictionary_password"
    ALPHANUMERIC_PASSWORD = "alphanumeric_password"
    ENCRYPTION = "encryption"


class Alphabet:
    """Hands out symbols from a reshuffled pool so neighbours rarely repeat."""

    def __init__(self, rng: RNG, symbols: str = ALPHANUMERIC_SYMBOLS) -> None:
        self.rng = rng
        self.symbols = symbols
        self._pool: List[str] = []

    def random_letter(self) -> str:
        if not self._pool:
            self._pool = self.rng.shuffled(self.symbols)
        return self._pool.pop()


class Challenge(EventEmitter):
    """Something a MissionComputer puts between the player and access.

    Fires ``start`` when work against it first begins and ``solved`` once it
    is solved.
    """

    kind: ChallengeKind

    def __init__(self, name: str, difficulty: int) -> None:
        super().__init__()
        self.name = name
        self.difficulty = difficulty
        self.solved = False
        self.started = False
        self.task: Optional["Task"] = None

    def set_task(self, task: "Task") -> "Challenge":
        self.task = task
        return self

    def begin(self) -> None:
        if not self.started:
            self.started = True
            self.trigger("start", self)

    def solve(self) -> None:
        self.signal_solved()

    def signal_solved(self) -> "Challenge":
        self.solved = True
        self.trigger("solved", self)
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, difficulty={self.difficulty})"


class Password(Challenge):
    def __init__(self, text: str, kind: ChallengeKind, difficulty: int) -> None:
        if kind not in (ChallengeKind.DICTIONARY_PASSWORD, ChallengeKind.ALPHANUMERIC_PASSWORD):
            raise ValueError(f"{kind} is not a password kind")
        label = "Dictionary" if kind is ChallengeKind.DICTIONARY_PASSWORD else "Alphanumeric"
        super().__init__(f"{label} Password", difficulty)
        self.kind = kind
        self.text = text

    @property
    def length(self) -> int:
        return len(self.text)

    def attack(self, guess: Optional[str]) -> bool:
        self.begin()
        return guess == self.text

    def attack_position(self, index: int, letter: str) -> bool:
        self.begin()
        return 0 <= index < len(self.text) and self.text[index] == letter

    @staticmethod
    def words_for_difficulty(words: Sequence[str], difficulty: int) -> List[str]:
        difficulty = min(max(difficulty, DICTIONARY_DIFFICULTY_EASIEST), DICTIONARY_DIFFICULTY_HARDEST)
        reduction = DICTIONARY_DIFFICULTY_HARDEST - difficulty
        return [
            word
            for index, word in enumerate(words)
            if index % DICTIONARY_DIFFICULTY_HARDEST >= reduction
        ]

    @classmethod
    def random_dictionary(cls, world: "World", difficulty: int) -> "Password":
        difficulty = min(max(difficulty, DICTIONARY_DIFFICULTY_EASIEST), DICTIONARY_DIFFICULTY_HARDEST)
        candidates = cls.words_for_difficulty(world.dictionary, difficulty)
        return cls(world.rng.choice(candidates), ChallengeKind.DICTIONARY_PASSWORD, difficulty)

    @classmethod
    def random_alphanumeric(cls, world: "World") -> "Password":
        length = world.rng.randint(5, 9)
        text = "".join(world.alphabet.random_letter() for _ in range(length))
        return cls(text, ChallengeKind.ALPHANUMERIC_PASSWORD, length)


@dataclass(frozen=True)
class EncryptionLevel:
    name: str
    min_size: int
    max_size: int


ENCRYPTION_LEVELS: Dict[str, EncryptionLevel] = {
    "EASY": EncryptionLevel("Linear", 7, 11),
    "MEDIUM": EncryptionLevel("Quadratic", 10, 15),
    "HARD": EncryptionLevel("Cubic", 15, 20),
}


class Encryption(Challenge):
    kind = ChallengeKind.ENCRYPTION

    def __init__(
        self,
        rows: int,
        cols: int,
        *,
        level_name: str = "Linear",
        difficulty: Optional[int] = None,
    ) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError("encryption grid needs at least one row and one column")
        if difficulty is None:
            difficulty = math.isqrt(rows * cols)
        super().__init__(f"{level_name} Encryption", difficulty)
        self.rows = rows
        self.cols = cols

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @classmethod
    def generate(cls, level: EncryptionLevel, rng: RNG) -> "Encryption":
        # upper bound is exclusive
        rows = rng.randrange(level.min_size, level.max_size)
        cols = rng.randrange(level.min_size, level.max_size)
        return cls(rows, cols, level_name=level.name)

    @classmethod
    def linear(cls, rng: RNG) -> "Encryption":
        return cls.generate(ENCRYPTION_LEVELS["EASY"], rng)

    @classmethod
    def quadratic(cls, rng: RNG) -> "Encryption":
        return cls.generate(ENCRYPTION_LEVELS["MEDIUM"], rng)

    @classmethod
    def cubic(cls, rng: RNG) -> "Encryption":
        return cls.generate(ENCRYPTION_LEVELS["HARD"], rng)


__all__ = [
    "ALPHANUMERIC_SYMBOLS",
    "Alphabet",
    "Challenge",
    "ChallengeKind",
    "Encryption",
    "EncryptionLevel",
    "ENCRYPTION_LEVELS",
    "Password",
]
