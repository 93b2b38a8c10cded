from __future__ import annotations

from dataclasses import dataclass
from typing import Generator, Iterator


@dataclass
class TickClock:
    """Deterministic tick counter, inclusive of ``limit``."""

    limit: int
    start: int = 1

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("start tick must not be negative")
        if self.limit < self.start:
            raise ValueError("limit must not precede the start tick")
        self.current: int = self.start

    def advance(self) -> int:
        self.current += 1
        return self.current

    @property
    def elapsed(self) -> int:
        return self.current - self.start

    @property
    def finished(self) -> bool:
        return self.current >= self.limit

    def iter(self) -> Generator[int, None, None]:
        """Yield each tick number from start to limit."""
        self.current = self.start
        while self.current <= self.limit:
            yield self.current
            if self.current == self.limit:
                break
            self.advance()

    def __iter__(self) -> Iterator[int]:
        return self.iter()
