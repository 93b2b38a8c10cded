from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Tuple

from downlink.engines.cycles import Cycles, ceil_div, floor_div
from downlink.entities.tasks import Task
from downlink.errors import (
    DuplicateTaskError,
    InsufficientCapacityError,
    InvalidTaskError,
    OverloadAssignmentError,
)
from downlink.events import EventEmitter
from downlink.world.schema import CPUDocument

logger = logging.getLogger(__name__)

DEFAULT_PROCESSOR_SPEED = 20
DEFAULT_PROCESSOR_NAME = "Garbo Processor"


@dataclass
class CPU:
    name: str = DEFAULT_PROCESSOR_NAME
    speed: Cycles = DEFAULT_PROCESSOR_SPEED
    ticks_run: int = 0

    def tick(self) -> None:
        self.ticks_run += 1

    def to_document(self) -> CPUDocument:
        return CPUDocument(name=self.name, speed=Decimal(self.speed))

    @classmethod
    def from_document(cls, document: CPUDocument) -> "CPU":
        speed: Cycles = document.speed
        if document.speed == document.speed.to_integral_value():
            speed = int(document.speed)
        return cls(name=document.name, speed=speed)


class CPUPool(EventEmitter):
    """Shares the summed speed of a fixed set of CPUs between running tasks.

    Every admitted task is guaranteed its minimum: ``load`` (the sum of the
    running tasks' minimums) never exceeds ``total_speed``. Beyond that, a
    newcomer gets a best-effort fair share reclaimed from the tasks already
    running, and a finished task's cycles are handed back out evenly.
    Fires ``taskComplete`` with the finished task.
    """

    def __init__(self, cpus: Iterable[CPU]) -> None:
        super().__init__()
        self._cpus: Tuple[CPU, ...] = tuple(cpus)
        self.total_speed: Cycles = 0
        for cpu in self._cpus:
            self.total_speed += cpu.speed
        self.load: Cycles = 0
        self.tasks: List[Task] = []
        self._ticking = False
        self._pending_releases: List[Task] = []

    @property
    def cpus(self) -> Tuple[CPU, ...]:
        return self._cpus

    @property
    def average_speed(self) -> float:
        if not self._cpus:
            return 0.0
        return float(self.total_speed) / len(self._cpus)

    @property
    def free_cycles(self) -> Cycles:
        return self.total_speed - self.load

    def get_cycles_for_task(self, task: Task) -> Cycles:
        """The larger of the task's minimum and an even 1/n share, n counting this task."""
        return max(task.minimum_required_cycles, floor_div(self.total_speed, len(self.tasks) + 1))

    def balance_task_load_for_new_task(self, task: Task) -> Tuple[Cycles, List[Tuple[Task, Cycles]]]:
        """Reclaim cycles from running tasks for ``task``.

        Returns the cycles to assign and what each running task gave up.
        """
        cycles_to_assign = self.get_cycles_for_task(task)
        if not self.tasks:
            return cycles_to_assign, []

        per_task = ceil_div(cycles_to_assign, len(self.tasks))
        releases: List[Tuple[Task, Cycles]] = []
        cycles_freed: Cycles = 0
        for running in self.tasks:
            released = running.free_cycles(per_task)
            releases.append((running, released))
            cycles_freed += released
        return cycles_freed, releases

    def add_task(self, task: Task) -> "CPUPool":
        if not isinstance(task, Task):
            raise InvalidTaskError("Tried to add a non task object to a processor")
        if task in self.tasks:
            raise DuplicateTaskError(f"{task.name} is already running in this pool")
        free_cycles = self.free_cycles
        if task.minimum_required_cycles > free_cycles:
            logger.warning(
                "pool.task.rejected",
                extra={"task": task.name, "required": str(task.minimum_required_cycles), "free": str(free_cycles)},
            )
            raise InsufficientCapacityError(
                f"CPU pool does not have the required cycles for {task.name}. "
                f"Need {task.minimum_required_cycles} but only have {free_cycles}."
            )

        cycles_to_assign, releases = self.balance_task_load_for_new_task(task)
        try:
            task.set_cycles_per_tick(cycles_to_assign)
        except OverloadAssignmentError:
            for running, released in releases:
                running.add_cycles(released)
            logger.warning(
                "pool.task.reclaim_short",
                extra={"task": task.name, "reclaimed": str(cycles_to_assign)},
            )
            raise

        task.on("complete", self._handle_task_complete)
        self.load += task.minimum_required_cycles
        self.tasks.append(task)
        logger.info(
            "pool.task.admitted",
            extra={"task": task.name, "cycles": str(cycles_to_assign), "load": str(self.load)},
        )
        return self

    def _handle_task_complete(self, task: Task) -> None:
        if self._ticking:
            self._pending_releases.append(task)
        else:
            self.complete_task(task)

    def complete_task(self, task: Task) -> None:
        """Remove ``task`` and spread its cycles over the tasks still running."""
        self._release(task)
        logger.info("pool.task.released", extra={"task": task.name, "load": str(self.load)})
        self.trigger("taskComplete", task)

    def withdraw_task(self, task: Task) -> None:
        """Take back a task that did not finish. No ``taskComplete`` is fired."""
        self._release(task)
        logger.info("pool.task.withdrawn", extra={"task": task.name, "load": str(self.load)})

    def _release(self, task: Task) -> None:
        if task not in self.tasks:
            raise InvalidTaskError(f"{task.name} is not running in this pool")
        freed_cycles = task.cycles_per_tick
        self.tasks.remove(task)
        task.remove_listener("complete", self._handle_task_complete)
        self.load -= task.minimum_required_cycles

        if self.tasks:
            freed_per_task = floor_div(freed_cycles, len(self.tasks))
            index = 0
            while index < len(self.tasks) and freed_cycles > 0:
                freed_cycles -= freed_per_task
                self.tasks[index].add_cycles(freed_per_task)
                index += 1

    def tick(self) -> None:
        self._ticking = True
        try:
            for task in list(self.tasks):
                task.tick()
        finally:
            self._ticking = False

        pending, self._pending_releases = self._pending_releases, []
        for task in pending:
            self.complete_task(task)

        for cpu in self._cpus:
            cpu.tick()


__all__ = ["CPU", "CPUPool", "DEFAULT_PROCESSOR_SPEED", "DEFAULT_PROCESSOR_NAME"]
