"""Command line entry point."""

import argparse
import json
import sys
from typing import List, Optional

import structlog

from .config import WorldGenConfig, settings
from .core.world_generator import world_summary
from .simulation import Simulation
from .simulation.conflicts import outcome_for_status
from .utils.logging import configure_logging

logger = structlog.get_logger()


def _add_world_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--seed", type=int, help="Seed for reproducible generation")
    parser.add_argument("--width", type=float, default=1400, help="Canvas width")
    parser.add_argument("--height", type=float, default=1100, help="Canvas height")
    parser.add_argument("--kingdoms", type=int, default=5, help="Number of kingdoms")
    parser.add_argument("--points", type=int, default=2500, help="Number of cells")
    parser.add_argument("--cities", type=int, default=3, help="Cities per kingdom")


def _config_from_args(args: argparse.Namespace) -> WorldGenConfig:
    return WorldGenConfig(
        seed=args.seed,
        width=args.width,
        height=args.height,
        num_kingdoms=args.kingdoms,
        num_points=args.points,
        num_cities_per_kingdom=args.cities,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="py-realms", description="Generate kingdoms and simulate their wars")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a world and print its summary")
    _add_world_arguments(generate)
    generate.add_argument("--svg", action="store_true", help="Include kingdom outlines as SVG paths")

    skirmish = subparsers.add_parser("skirmish", help="Fight one border war on a generated world")
    _add_world_arguments(skirmish)
    skirmish.add_argument("--rounds", type=int, default=3, help="Battle rounds before resolution")
    return parser


def run_generate(args: argparse.Namespace) -> dict:
    simulation = Simulation.generate(_config_from_args(args))
    summary = world_summary(simulation.world)
    if args.svg:
        for entry, kingdom in zip(summary["kingdoms"], simulation.world.kingdoms):
            entry["svg_path"] = kingdom.svg_path
    return summary


def run_skirmish(args: argparse.Namespace) -> dict:
    """Attack across the first shared border, fight, resolve and apply."""
    simulation = Simulation.generate(_config_from_args(args))

    for kingdom in simulation.world.active_kingdoms:
        for neighbor_id in kingdom.geography.neighboring_kingdoms:
            pairs = simulation.border_cells(kingdom.id, neighbor_id)
            if pairs:
                attacker_id, target_cell_id = kingdom.id, pairs[0][1]
                break
        else:
            continue
        break
    else:
        logger.warning("No two kingdoms share a border")
        return {"seed": simulation.world.seed, "conflict": None}

    conflict = simulation.plan_conquest(target_cell_id, attacker_id)
    rounds = []
    for _ in range(args.rounds):
        result = simulation.resolve_battle_round(conflict.id)
        rounds.append(result._asdict())

    last_status = rounds[-1]["status"] if rounds else simulation.state.find_conflict(conflict.id).status
    outcome = outcome_for_status(last_status)
    simulation.force_resolve_conflict(conflict.id, outcome)
    report = simulation.apply_conflict_resolution(conflict.id)
    simulation.clear_conflict(conflict.id)

    return {
        "seed": simulation.world.seed,
        "attacker_id": conflict.attacker_id,
        "defender_id": conflict.defender_id,
        "contested_cell_ids": list(conflict.contested_cell_ids),
        "rounds": [{**r, "status": r["status"].value} for r in rounds],
        "outcome": outcome.value,
        "moved_cell_ids": report.moved_cell_ids,
        "captured_settlement_ids": report.captured_settlement_ids,
        "destroyed": report.destroyed,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "generate":
        output = run_generate(args)
    else:
        output = run_skirmish(args)

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
