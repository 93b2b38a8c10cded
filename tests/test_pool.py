from decimal import Decimal
from typing import List, Optional

import pytest

from downlink.engines.pool import CPU, CPUPool
from downlink.engines.rng import RNG
from downlink.entities.challenges import Challenge
from downlink.entities.tasks import Task
from downlink.errors import (
    DuplicateTaskError,
    InsufficientCapacityError,
    InvalidTaskError,
    OverloadAssignmentError,
)
from downlink.world.schema import CPUDocument

_challenges: List[Challenge] = []


def _task(name: str, minimum: int, worker=None) -> Task:
    challenge = Challenge(name, 1)
    # tasks only hold their challenge weakly
    _challenges.append(challenge)
    return Task(name, challenge, minimum, worker)


class RecordingWorker:
    name = "recorder"
    minimum_required_cycles = 5
    percentage = 0.0

    def __init__(self, finish_on: Optional[int] = None) -> None:
        self.finish_on = finish_on
        self.seen: List[int] = []

    def work(self, task: Task) -> None:
        self.seen.append(task.cycles_per_tick)
        if self.finish_on == task.ticks_taken:
            task.signal_complete()


def test_totals_from_units():
    pool = CPUPool([CPU(speed=20), CPU("Fast", 40)])
    assert pool.total_speed == 60
    assert pool.average_speed == 30.0
    assert pool.free_cycles == 60
    assert pool.load == 0


def test_second_task_takes_an_even_share_from_the_first():
    pool = CPUPool([CPU(speed=20)])
    first = _task("first", 5)
    pool.add_task(first)
    assert first.cycles_per_tick == 20

    second = _task("second", 5)
    pool.add_task(second)
    assert second.cycles_per_tick == 10
    assert first.cycles_per_tick == 10
    assert pool.load == 10
    assert pool.free_cycles == 10


def test_task_over_capacity_is_rejected_without_side_effects():
    pool = CPUPool([CPU(speed=10)])
    greedy = _task("greedy", 15)
    with pytest.raises(InsufficientCapacityError):
        pool.add_task(greedy)
    assert pool.load == 0
    assert pool.tasks == []
    assert greedy.cycles_per_tick == 0


def test_duplicate_and_invalid_tasks_are_rejected():
    pool = CPUPool([CPU(speed=20)])
    task = _task("only", 5)
    pool.add_task(task)
    with pytest.raises(DuplicateTaskError):
        pool.add_task(task)
    with pytest.raises(InvalidTaskError):
        pool.add_task("not a task")  # type: ignore[arg-type]
    assert pool.tasks == [task]


def test_reclaim_can_push_a_running_task_below_its_minimum():
    pool = CPUPool([CPU(speed=20)])
    heavy = _task("heavy", 15)
    pool.add_task(heavy)
    light = _task("light", 5)
    pool.add_task(light)
    assert heavy.cycles_per_tick == 10
    assert light.cycles_per_tick == 10
    assert pool.load == 20


def test_three_tasks_share_then_redistribute_on_completion():
    pool = CPUPool([CPU(speed=30)])
    tasks = [_task(f"t{index}", 5) for index in range(3)]
    for task in tasks:
        pool.add_task(task)
    assert [task.cycles_per_tick for task in tasks] == [10, 10, 10]

    released = []
    pool.on("taskComplete", released.append)
    tasks[0].signal_complete()

    assert released == [tasks[0]]
    assert pool.tasks == tasks[1:]
    assert [task.cycles_per_tick for task in tasks[1:]] == [15, 15]
    assert pool.load == 10


def test_release_walks_tasks_in_order_with_floored_share():
    pool = CPUPool([CPU(speed=20)])
    tasks = [_task(f"t{index}", 1) for index in range(3)]
    for task in tasks:
        pool.add_task(task)
    before = [task.cycles_per_tick for task in tasks]
    freed = tasks[0].cycles_per_tick
    tasks[0].signal_complete()
    share = freed // 2
    assert [task.cycles_per_tick for task in tasks[1:]] == [before[1] + share, before[2] + share]


def test_short_reclaim_rolls_back_and_raises():
    pool = CPUPool([CPU(speed=20)])
    first = _task("first", 1)
    second = _task("second", 1)
    pool.add_task(first)
    pool.add_task(second)
    assert (first.cycles_per_tick, second.cycles_per_tick) == (10, 10)

    big = _task("big", 18)
    with pytest.raises(OverloadAssignmentError):
        pool.add_task(big)
    assert (first.cycles_per_tick, second.cycles_per_tick) == (10, 10)
    assert pool.tasks == [first, second]
    assert pool.load == 2


def test_completion_during_tick_is_redistributed_from_next_tick():
    pool = CPUPool([CPU(speed=20)])
    finishing = RecordingWorker(finish_on=1)
    lasting = RecordingWorker()
    done = _task("done", 5, finishing)
    still = _task("still", 5, lasting)
    pool.add_task(done)
    pool.add_task(still)

    pool.tick()
    assert pool.tasks == [still]
    assert still.cycles_per_tick == 20
    pool.tick()
    assert lasting.seen == [10, 20]
    assert pool.cpus[0].ticks_run == 2


def test_completing_a_foreign_task_is_an_error():
    pool = CPUPool([CPU(speed=20)])
    with pytest.raises(InvalidTaskError):
        pool.complete_task(_task("stranger", 5))


def test_load_never_exceeds_total_speed():
    rng = RNG(7)
    pool = CPUPool([CPU(speed=37), CPU(speed=23)])
    for step in range(300):
        if pool.tasks and rng.random() < 0.4:
            rng.choice(pool.tasks).signal_complete()
        else:
            task = _task(f"t{step}", rng.randint(1, 15))
            try:
                pool.add_task(task)
            except (InsufficientCapacityError, OverloadAssignmentError):
                assert task not in pool.tasks
        assert pool.load == sum(task.minimum_required_cycles for task in pool.tasks)
        assert pool.load <= pool.total_speed


def test_unit_speed_survives_a_save_round_trip():
    half = CPU("Half", Decimal("12.5"))
    document = CPUDocument.model_validate_json(half.to_document().model_dump_json())
    assert CPU.from_document(document).speed == Decimal("12.5")

    whole = CPU.from_document(CPU("Whole", 20).to_document())
    assert whole.speed == 20
    assert isinstance(whole.speed, int)
