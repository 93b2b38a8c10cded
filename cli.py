from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from downlink.config import load_engine_config
from downlink.engines.pool import CPU
from downlink.engines.scheduler import GameSession
from downlink.errors import DownlinkError
from downlink.time import TickClock
from downlink.world.loaders import load_save
from downlink.world.state import World

logger = logging.getLogger(__name__)


def _positive(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'.") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {number}.")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Downlink hacking simulation core",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Override DOWNLINK_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run",
        help="Play one mission for a number of ticks",
    )
    run_parser.add_argument("--ticks", type=_positive, default=200, help="Maximum ticks to run (default: 200)")
    run_parser.add_argument("--seed", type=int, default=None, help="Seed for deterministic RNG")
    run_parser.add_argument(
        "--hops",
        type=int,
        default=3,
        help="Public servers to bounce through before the target (default: 3)",
    )
    run_parser.add_argument("--cpus", type=_positive, default=1, help="CPUs in the player's pool (default: 1)")
    run_parser.add_argument("--speed", type=_positive, default=None, help="Speed of each CPU")
    run_parser.add_argument("--save", type=Path, default=None, help="Write the structural state here afterwards")

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Describe a saved game",
    )
    inspect_parser.add_argument("path", type=Path, help="Save file written by 'run --save'")

    return parser


def _handle_run(args: argparse.Namespace) -> None:
    config = load_engine_config()
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.speed is not None:
        config = replace(config, cpu_speed=args.speed)

    world = World.from_files(config)
    cpus = [CPU(f"{config.cpu_name} #{index + 1}", config.cpu_speed) for index in range(args.cpus)]
    session = GameSession(world=world, player_computer=world.new_player_computer(cpus))

    for server in world.rng.sample(world.public_servers, min(args.hops, len(world.public_servers))):
        session.add_computer_to_connection(server)

    session.on("challengeSolved", lambda challenge: print(f"[tick {session.ticks}] solved {challenge.name}"))
    session.on("playerDetected", lambda _: print(f"[tick {session.ticks}] trace complete - you have been detected"))
    session.on("missionComplete", lambda mission: print(f"[tick {session.ticks}] {mission.name} complete"))

    mission = session.accept_mission()
    print(f"Mission: {mission.name} ({mission.difficulty.name})")
    for task in session.player_computer.tasks:
        print(f"  {task.name}: {task.cycles_per_tick} cycles/tick (minimum {task.minimum_required_cycles})")
    session.connect_to_target()

    summary = session.run(TickClock(args.ticks))
    for key, value in summary.items():
        print(f"{key}: {value}")

    if args.save is not None:
        world.save_game(args.save, player=session.player_computer, connection=session.connection, currency=session.currency)
        print(f"saved to {args.save}")


def _handle_inspect(args: argparse.Namespace) -> None:
    save = load_save(args.path)
    world, player, connection, currency = World.restore(save, load_engine_config())
    print(f"{player.name} ({player.address}) - currency {currency}")
    for cpu in player.cpus:
        print(f"  cpu {cpu.name}: speed {cpu.speed}")
    if connection is not None:
        print(f"connection {connection.name}: {connection.connection_length} hops")
        for hop in connection.computers:
            print(f"  -> {hop.name} ({hop.address})")
    print(f"companies: {len(world.companies)}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or load_engine_config().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")

    try:
        if args.command == "run":
            _handle_run(args)
        elif args.command == "inspect":
            _handle_inspect(args)
        else:
            parser.print_help()
    except (DownlinkError, FileNotFoundError):
        logger.exception("cli.failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
