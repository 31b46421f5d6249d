"""
Territory transfer after a resolved conflict.

Produces a new World with the moved cells re-owned, settlements
re-assigned, and outlines and geography recomputed for the kingdoms that
changed hands. The input World is never modified.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree

from ..core.boundaries import PolygonMerger, compute_kingdom_outline
from ..core.kingdoms import compute_geography, compute_neighbor_map
from ..core.models import RUIN_OWNER_ID, Cell, Kingdom, Point, Settlement, SettlementKind, World
from .state import CityCondition, ConflictOutcome, ConflictStatus, WorldState

logger = structlog.get_logger()

# Ruins are moved off the playable canvas
RUIN_POSITION = Point(x=-9999, y=-9999)


@dataclass
class TransferReport:
    """What a territory transfer changed."""

    outcome: Optional[ConflictOutcome] = None
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    moved_cell_ids: List[int] = field(default_factory=list)
    captured_settlement_ids: List[str] = field(default_factory=list)
    promoted_capital_id: Optional[str] = None
    destroyed: bool = False
    ruin_id: Optional[str] = None
    released_cell_ids: List[int] = field(default_factory=list)


def _captured_settlements(
    settlements: Sequence[Settlement], cells: Sequence[Cell], moved: set
) -> List[Settlement]:
    """Settlements whose nearest cell is one of the moved cells."""
    if not settlements or not moved:
        return []
    tree = cKDTree(np.array([(cell.center.x, cell.center.y) for cell in cells]))
    captured = []
    for settlement in settlements:
        _, idx = tree.query([settlement.position.x, settlement.position.y], k=1)
        if int(idx) in moved:
            captured.append(settlement)
    return captured


def _refresh_kingdom(
    kingdom: Kingdom, cells: Sequence[Cell], map_height: float, merger: Optional[PolygonMerger]
) -> Kingdom:
    return kingdom.model_copy(
        update={
            "cell_ids": [cell.id for cell in cells if cell.kingdom_id == kingdom.id],
            "outline": compute_kingdom_outline(kingdom.id, cells, merger),
            "geography": compute_geography(kingdom.id, cells, map_height, previous=kingdom.geography),
        }
    )


def transfer_territory(
    world: World,
    cell_ids: Sequence[int],
    loser_id: int,
    winner_id: int,
    merger: Optional[PolygonMerger] = None,
) -> Tuple[World, TransferReport]:
    """
    Move cells from one kingdom to another.

    Only cells currently owned by the loser move. A settlement of the loser
    is captured when its nearest cell is among the moved cells. Losing the
    capital promotes the first remaining city; with no city left the
    kingdom is destroyed, its capital turns into a ruin and the rest of its
    land becomes unowned.

    Args:
        world: Current world snapshot
        cell_ids: Cells to move
        loser_id: Kingdom giving up the cells
        winner_id: Kingdom receiving them
        merger: Polygon merge implementation for the new outlines

    Returns:
        Tuple of (new world, report); the world is returned unchanged when
        nothing moves
    """
    report = TransferReport(winner_id=winner_id, loser_id=loser_id)
    loser = world.get_kingdom(loser_id)
    winner = world.get_kingdom(winner_id)
    if loser is None or winner is None or loser.destroyed or winner.destroyed or loser_id == winner_id:
        logger.warning("Transfer between unknown or destroyed kingdoms", loser_id=loser_id, winner_id=winner_id)
        return world, report

    moved = []
    for cell_id in dict.fromkeys(cell_ids):
        cell = world.get_cell(cell_id)
        if cell is not None and cell.kingdom_id == loser_id:
            moved.append(cell.id)
    if not moved:
        logger.info("No cells to transfer", loser_id=loser_id, winner_id=winner_id)
        return world, report
    moved_set = set(moved)
    report.moved_cell_ids = moved

    cells = [
        cell.model_copy(update={"kingdom_id": winner_id}) if cell.id in moved_set else cell
        for cell in world.cells
    ]

    captured = _captured_settlements(loser.settlements, world.cells, moved_set)
    captured_ids = {settlement.id for settlement in captured}
    report.captured_settlement_ids = [settlement.id for settlement in captured]

    remaining_cities = [city for city in loser.cities if city.id not in captured_ids]
    new_winner_cities = list(winner.cities)
    loser_update: Dict[str, object] = {"cities": remaining_cities}

    for settlement in captured:
        if settlement.kind == SettlementKind.CAPITAL:
            continue
        new_winner_cities.append(settlement.model_copy(update={"kingdom_id": winner_id}))

    if loser.capital.id in captured_ids:
        if remaining_cities:
            promoted = remaining_cities[0].model_copy(update={"kind": SettlementKind.CAPITAL})
            loser_update["capital"] = promoted
            loser_update["cities"] = remaining_cities[1:]
            new_winner_cities.append(
                loser.capital.model_copy(update={"kind": SettlementKind.CITY, "kingdom_id": winner_id})
            )
            report.promoted_capital_id = promoted.id
            logger.info("Capital captured, new capital promoted", kingdom_id=loser_id,
                        captured=loser.capital.id, promoted=promoted.id)
        else:
            ruin = loser.capital.model_copy(
                update={
                    "kind": SettlementKind.RUIN,
                    "kingdom_id": RUIN_OWNER_ID,
                    "position": RUIN_POSITION,
                    "name": f"Ruins of {loser.capital.name}",
                    "description": f"What is left of the capital of {loser.name}",
                }
            )
            released = [cell.id for cell in cells if cell.kingdom_id == loser_id]
            for cell_id in released:
                cells[cell_id] = cells[cell_id].model_copy(update={"kingdom_id": None})
            loser_update.update({"capital": ruin, "cities": [], "destroyed": True})
            report.destroyed = True
            report.ruin_id = ruin.id
            report.released_cell_ids = released
            logger.warning("Kingdom destroyed", kingdom_id=loser_id, name=loser.name, released=len(released))

    new_loser = _refresh_kingdom(loser.model_copy(update=loser_update), cells, world.height, merger)
    if new_loser.destroyed:
        new_loser = new_loser.model_copy(update={"cell_ids": [], "outline": None})
    new_winner = _refresh_kingdom(
        winner.model_copy(update={"cities": new_winner_cities}), cells, world.height, merger
    )

    neighbor_map = compute_neighbor_map(cells)
    kingdoms = []
    for kingdom in world.kingdoms:
        if kingdom.id == loser_id:
            kingdom = new_loser
        elif kingdom.id == winner_id:
            kingdom = new_winner
        geography = kingdom.geography.model_copy(
            update={"neighboring_kingdoms": neighbor_map.get(kingdom.id, [])}
        )
        kingdoms.append(kingdom.model_copy(update={"geography": geography}))

    geography = world.geography.model_copy(
        update={"total_land_area": sum(kingdom.geography.area for kingdom in kingdoms)}
    )

    logger.info("Territory transferred", loser_id=loser_id, winner_id=winner_id,
                cells=len(moved), captured=len(captured))
    return world.model_copy(update={"cells": cells, "kingdoms": kingdoms, "geography": geography}), report


def apply_conflict_resolution(
    world: World,
    state: WorldState,
    conflict_id: str,
    merger: Optional[PolygonMerger] = None,
) -> Tuple[World, WorldState, Optional[TransferReport]]:
    """
    Carry out the pending outcome of a resolved conflict.

    An attacker victory moves the contested cells still held by the
    defender; a defender victory or a retreat moves nothing. The conflict
    record stays until it is cleared.

    Returns:
        Tuple of (world, state, report); the report is None when the
        conflict is unknown or not resolved yet
    """
    conflict = state.find_conflict(conflict_id)
    if conflict is None or conflict.status != ConflictStatus.RESOLVED or conflict.pending_resolution is None:
        logger.warning("No resolved conflict to apply", conflict_id=conflict_id)
        return world, state, None

    outcome = conflict.pending_resolution
    if outcome != ConflictOutcome.ATTACKER_VICTORY:
        logger.info("Conflict ended without territory change", conflict_id=conflict_id, outcome=outcome.value)
        return world, state, TransferReport(
            outcome=outcome, winner_id=conflict.defender_id, loser_id=conflict.attacker_id
        )

    new_world, report = transfer_territory(
        world, conflict.contested_cell_ids, conflict.defender_id, conflict.attacker_id, merger
    )
    report.outcome = outcome

    locations = dict(state.locations)
    for settlement_id in report.captured_settlement_ids:
        location = locations.get(settlement_id)
        if location is None or settlement_id == report.ruin_id:
            continue
        locations[settlement_id] = location.model_copy(update={"kingdom_id": conflict.attacker_id})

    kingdoms = dict(state.kingdoms)
    if report.destroyed:
        kingdoms.pop(conflict.defender_id, None)
        ruin = locations.get(report.ruin_id)
        if ruin is not None:
            locations[report.ruin_id] = ruin.model_copy(
                update={"kingdom_id": RUIN_OWNER_ID, "condition": CityCondition.RUINED, "population": 0}
            )

    new_state = state.model_copy(update={"kingdoms": kingdoms, "locations": locations})
    return new_world, new_state, report
