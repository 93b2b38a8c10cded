from dataclasses import replace
from decimal import Decimal

import pytest

from downlink.engines.pool import CPU
from downlink.engines.scheduler import GameSession
from downlink.entities.challenges import Challenge, ChallengeKind, Encryption, Password
from downlink.entities.computers import PlayerComputer
from downlink.entities.missions import DIFFICULTIES, Mission
from downlink.entities.tasks import Task
from downlink.errors import InsufficientCapacityError, OverloadAssignmentError
from downlink.time import TickClock
from downlink.world.loaders import load_save
from downlink.world.state import World


def _session(config, *, hops=2, cpus=None, seed=42):
    world = World.from_files(config, seed=seed)
    session = GameSession(world=world, player_computer=world.new_player_computer(cpus))
    for server in world.public_servers[:hops]:
        session.add_computer_to_connection(server)
    return session


def test_new_game_starts_from_the_home_computer(world, config):
    session = GameSession.new_game(world)
    assert session.connection.starting_point is session.player_computer
    assert [cpu.speed for cpu in session.player_computer.cpus] == [config.cpu_speed]
    assert session.currency == Decimal(0)


def test_accepting_a_mission_schedules_a_task_per_challenge(config):
    session = _session(config)
    mission = session.accept_mission()
    assert mission.status == "Underway"
    assert len(mission.challenges) == 2
    player = session.player_computer
    assert len(player.tasks) == 2
    assert player.cpu_pool.load <= player.cpu_pool.total_speed
    assert player.world.computer_by_identity(mission.computer.identity) is mission.computer


def test_a_fast_machine_finishes_the_mission_before_the_trace(config):
    config = replace(config, trace_distance=1000)
    session = _session(config, cpus=[CPU("Turbo", 200)])
    solved = []
    session.on("challengeSolved", solved.append)
    mission = session.accept_mission()
    sponsor_respect = mission.sponsor.player_respect_modifier
    session.connect_to_target()

    summary = session.run(TickClock(50))

    assert summary["missions_completed"] == 1
    assert summary["detected"] is False
    assert summary["ticks"] < 50
    assert len(solved) == 2
    assert mission.status == "Complete"
    assert session.active_mission is None
    assert session.currency == mission.reward > 0
    assert mission.sponsor.player_respect_modifier > sponsor_respect
    assert not mission.computer.tracing


def test_slow_machine_is_detected_once_the_route_is_traced(config):
    config = replace(config, trace_distance=2)
    session = _session(config, hops=2)
    detected = []
    session.on("playerDetected", detected.append)
    mission = session.accept_mission()
    route = session.connect_to_target()

    summary = session.run(TickClock(50))

    # home, two hops and the target make three steps of two
    assert len(route.steps) == 3
    assert summary["ticks"] == 6
    assert summary["detected"] is True
    assert detected == [route]
    assert mission.target.player_respect_modifier < 1.0
    assert session.active_mission is mission


def test_returning_on_the_same_route_resumes_the_trace(config):
    session = _session(config, hops=2)
    mission = session.accept_mission()
    route = session.connect_to_target()
    for _ in range(3):
        session.tick()
    assert mission.computer.tracing
    assert route.current_step.amount_traced == 3

    session.disconnect()
    assert not mission.computer.tracing
    assert not route.active
    session.tick()
    assert route.current_step.amount_traced == 3

    again = session.connect_to_target()
    assert again is route
    assert mission.computer.tracing
    session.tick()
    assert route.current_step.amount_traced == 4


def test_a_different_route_starts_the_trace_over(config):
    session = _session(config, hops=2)
    mission = session.accept_mission()
    route = session.connect_to_target()
    for _ in range(3):
        session.tick()
    session.disconnect()

    session.add_computer_to_connection(session.world.public_servers[2])
    fresh = session.connect_to_target()
    assert fresh is not route
    assert mission.computer.tracing
    session.tick()
    assert fresh.steps_traced == 0
    assert fresh.current_step.amount_traced == 1
    assert len(fresh.steps) == 4


def test_mission_difficulty_picks_the_challenges(world):
    target, sponsor = world.companies[:2]
    hard = Mission(target, sponsor, DIFFICULTIES["HARD"]).build(world)
    kinds = [challenge.name for challenge in hard.challenges]
    assert kinds == ["Alphanumeric Password", "Cubic Encryption"]
    assert hard.computer.name.endswith("Farm")

    medium = Mission(target, sponsor, DIFFICULTIES["MEDIUM"]).build(world)
    assert medium.computer.password.difficulty == 5
    assert medium.computer.encryption.name == "Quadratic Encryption"
    assert medium.build(world) is medium


def test_world_keeps_a_full_mission_board(world):
    mission = world.get_next_mission()
    assert mission.computer is not None
    assert len(world.available_missions) == 10
    assert mission.target is not mission.sponsor


def test_player_computer_cpu_slots(world):
    with pytest.raises(ValueError):
        PlayerComputer([], world)
    with pytest.raises(ValueError):
        PlayerComputer([CPU() for _ in range(3)], world, max_cpus=2)


def test_save_and_restore_structure(config, tmp_path):
    session = _session(config, hops=3, cpus=[CPU("A", 20), CPU("B", 35)])
    session.accept_mission()
    world = session.world
    world.companies[0].detect_hacking()
    path = world.save_game(
        tmp_path / "save.json",
        player=session.player_computer,
        connection=session.connection,
        currency=Decimal("12.5"),
    )

    save = load_save(path)
    restored, player, connection, currency = World.restore(save, config)

    assert currency == Decimal("12.5")
    assert [(cpu.name, cpu.speed) for cpu in player.cpus] == [("A", 20), ("B", 35)]
    assert connection.starting_point is player
    assert [hop.identity for hop in connection.computers] == [hop.identity for hop in session.connection.computers]
    assert connection.equals(session.connection)
    assert [company.name for company in restored.companies] == [company.name for company in world.companies]
    assert restored.companies[0].player_respect_modifier == world.companies[0].player_respect_modifier
    assert restored.rng.seed == world.rng.seed


def test_mission_too_big_for_the_machine_leaves_nothing_behind(config):
    session = _session(config)
    target, sponsor = session.world.companies[:2]
    hard = Mission(target, sponsor, DIFFICULTIES["HARD"])

    with pytest.raises(InsufficientCapacityError):
        session.accept_mission(hard)

    player = session.player_computer
    assert session.active_mission is None
    assert player.tasks == []
    assert player.mission_tasks == []
    assert player.cpu_pool.load == 0
    assert hard.listener_count("complete") == 0


def test_short_reclaim_mid_admission_withdraws_earlier_tasks(config):
    session = _session(config)
    player = session.player_computer
    background = Challenge("Background", 1)
    running = Task("Background", background, 1)
    player.cpu_pool.add_task(running)
    released = []
    player.cpu_pool.on("taskComplete", released.append)

    password = Password("bridge", ChallengeKind.DICTIONARY_PASSWORD, 1)
    encryption = Encryption(12, 12)
    with pytest.raises(OverloadAssignmentError):
        player.add_tasks_for_challenges([password, encryption])

    assert player.tasks == [running]
    assert running.cycles_per_tick == 20
    assert player.cpu_pool.load == 1
    assert player.mission_tasks == []
    assert released == []


def test_board_mission_goes_back_when_it_cannot_be_accepted(config):
    session = _session(config)
    blocker = Challenge("Blocker", 1)
    session.player_computer.cpu_pool.add_task(Task("Blocker", blocker, 20))
    session.world.update_available_missions()

    with pytest.raises(InsufficientCapacityError):
        session.accept_mission()

    board = session.world.available_missions
    assert len(board) == 11
    assert board[0].computer is not None
    assert session.active_mission is None


def test_connecting_again_closes_the_attached_route(config):
    session = _session(config, hops=2)
    session.accept_mission()
    first = session.connect_to_target()
    second = session.connect_to_target()

    assert second is not first
    assert not first.active
    assert second.active
    assert all(hop.connections == 1 for hop in session.connection.computers)


def test_connecting_without_a_mission_is_an_error(config):
    session = _session(config)
    with pytest.raises(RuntimeError):
        session.connect_to_target()
