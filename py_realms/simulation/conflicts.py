"""
Conflict state machine.

States: PENDING -> {ATTACKER_WINNING | DEFENDER_WINNING | STALEMATE} -> RESOLVED,
after which the conflict is cleared. Every transition is a pure function
from one WorldState to the next. Unknown conflict or kingdom ids leave the
state untouched and return ``None`` results; stale references coming from
slower collaborators must never stop the simulation.
"""

import uuid
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Sequence, Tuple

import structlog

from ..config.world_config import ConflictOptions
from ..core.alea_prng import AleaPRNG
from ..core.models import World
from ..core.voronoi_graph import CellLocator
from .state import ActiveConflict, ConflictOutcome, ConflictStatus, WorldState

logger = structlog.get_logger()

DEFAULT_OPTIONS = ConflictOptions()


class BattleResult(NamedTuple):
    """Outcome of one battle round."""
    status: ConflictStatus
    attacker_losses: int
    defender_losses: int


def _dedupe(cell_ids: Sequence[int]) -> Tuple[int, ...]:
    """Unique ids in first-seen order."""
    return tuple(dict.fromkeys(int(cell_id) for cell_id in cell_ids))


def get_conflict(state: WorldState, kingdom_a: int, kingdom_b: int) -> Optional[ActiveConflict]:
    """Active conflict between two kingdoms, whichever one attacked."""
    for conflict in state.active_conflicts:
        if conflict.involves(kingdom_a, kingdom_b):
            return conflict
    return None


def start_conflict(
    state: WorldState,
    attacker_id: int,
    defender_id: int,
    contested_cell_ids: Sequence[int],
    now: Optional[datetime] = None,
) -> Tuple[WorldState, Optional[ActiveConflict]]:
    """
    Open a conflict, or widen the existing one between the same pair.

    Args:
        state: Current snapshot
        attacker_id: Attacking kingdom
        defender_id: Defending kingdom
        contested_cell_ids: Cells fought over
        now: Start time, defaults to the current UTC time

    Returns:
        Tuple of (new state, new or merged conflict); the conflict is None
        when either kingdom is unknown or a kingdom would attack itself
    """
    if attacker_id == defender_id:
        logger.debug("Kingdom cannot attack itself", kingdom_id=attacker_id)
        return state, None

    attacker = state.kingdoms.get(attacker_id)
    defender = state.kingdoms.get(defender_id)
    if attacker is None or defender is None:
        logger.warning("Conflict references unknown kingdom", attacker_id=attacker_id, defender_id=defender_id)
        return state, None

    existing = get_conflict(state, attacker_id, defender_id)
    if existing is not None:
        merged = existing.model_copy(
            update={"contested_cell_ids": _dedupe([*existing.contested_cell_ids, *contested_cell_ids])}
        )
        logger.info("Merged cells into existing conflict", conflict_id=existing.id,
                    cells=len(merged.contested_cell_ids))
        return state.replace_conflict(merged), merged

    conflict = ActiveConflict(
        id=f"conflict-{attacker_id}-{defender_id}-{uuid.uuid4().hex[:8]}",
        attacker_id=attacker_id,
        defender_id=defender_id,
        contested_cell_ids=_dedupe(contested_cell_ids),
        start_timestamp=now or datetime.now(timezone.utc),
        attacker_strength=attacker.military.strength,
        defender_strength=defender.military.strength,
    )
    logger.info("Conflict started", conflict_id=conflict.id, attacker_id=attacker_id,
                defender_id=defender_id, cells=len(conflict.contested_cell_ids))
    return state.model_copy(update={"active_conflicts": (*state.active_conflicts, conflict)}), conflict


def classify_battle(ratio: float, options: ConflictOptions = DEFAULT_OPTIONS) -> ConflictStatus:
    """Status for an effective strength ratio."""
    if ratio > options.attacker_winning_ratio:
        return ConflictStatus.ATTACKER_WINNING
    if ratio < options.defender_winning_ratio:
        return ConflictStatus.DEFENDER_WINNING
    return ConflictStatus.STALEMATE


def _draw_losses(status: ConflictStatus, prng: AleaPRNG, options: ConflictOptions) -> Tuple[int, int]:
    if status == ConflictStatus.ATTACKER_WINNING:
        return prng.randint(*options.winner_losses), prng.randint(*options.loser_losses)
    if status == ConflictStatus.DEFENDER_WINNING:
        return prng.randint(*options.loser_losses), prng.randint(*options.winner_losses)
    return prng.randint(*options.stalemate_losses), prng.randint(*options.stalemate_losses)


def resolve_battle_round(
    state: WorldState,
    conflict_id: str,
    prng: AleaPRNG,
    options: ConflictOptions = DEFAULT_OPTIONS,
    random_factor: Optional[float] = None,
) -> Tuple[WorldState, Optional[BattleResult]]:
    """
    Fight one stochastic round of a conflict.

    The effectiveness ratio is the live attacker strength over the live
    defender strength (at least 1), scaled by a random factor. Losses are
    applied to the conflict's running snapshot and to both kingdoms,
    clamped at zero.

    Args:
        state: Current snapshot
        conflict_id: Conflict to advance
        prng: Source of the random factor and losses
        options: Tuning constants
        random_factor: Fixed factor instead of a random draw

    Returns:
        Tuple of (new state, BattleResult); the result is None for unknown
        or already resolved conflicts
    """
    conflict = state.find_conflict(conflict_id)
    if conflict is None:
        logger.warning("Battle round for unknown conflict", conflict_id=conflict_id)
        return state, None
    if conflict.status == ConflictStatus.RESOLVED:
        logger.debug("Conflict already resolved", conflict_id=conflict_id)
        return state, None

    attacker = state.kingdoms.get(conflict.attacker_id)
    defender = state.kingdoms.get(conflict.defender_id)
    if attacker is None or defender is None:
        logger.warning("Battle round with missing kingdom", conflict_id=conflict_id)
        return state, None

    if random_factor is None:
        random_factor = prng.uniform(*options.random_factor_range)
    ratio = attacker.military.strength / max(defender.military.strength, 1)
    status = classify_battle(ratio * random_factor, options)

    attacker_losses, defender_losses = _draw_losses(status, prng, options)

    updated_conflict = conflict.model_copy(
        update={
            "status": status,
            "rounds": conflict.rounds + 1,
            "attacker_strength": max(0, conflict.attacker_strength - attacker_losses),
            "defender_strength": max(0, conflict.defender_strength - defender_losses),
        }
    )

    kingdoms = dict(state.kingdoms)
    for kingdom, losses in ((attacker, attacker_losses), (defender, defender_losses)):
        military = kingdom.military.model_copy(
            update={"strength": max(0, kingdom.military.strength - losses)}
        )
        kingdoms[kingdom.id] = kingdom.model_copy(update={"military": military})

    result = BattleResult(status, attacker_losses, defender_losses)
    logger.info("Battle round resolved", conflict_id=conflict_id, round=updated_conflict.rounds,
                status=status.value, attacker_losses=attacker_losses, defender_losses=defender_losses)

    new_state = state.replace_conflict(updated_conflict).model_copy(update={"kingdoms": kingdoms})
    return new_state, result


def force_resolve_conflict(state: WorldState, conflict_id: str, outcome: ConflictOutcome) -> WorldState:
    """Mark a conflict resolved with a pending outcome. Moves no territory."""
    conflict = state.find_conflict(conflict_id)
    if conflict is None:
        logger.warning("Forced resolution for unknown conflict", conflict_id=conflict_id)
        return state

    resolved = conflict.model_copy(
        update={"status": ConflictStatus.RESOLVED, "pending_resolution": ConflictOutcome(outcome)}
    )
    logger.info("Conflict resolved", conflict_id=conflict_id, outcome=resolved.pending_resolution.value)
    return state.replace_conflict(resolved)


def clear_conflict(state: WorldState, conflict_id: str) -> WorldState:
    """Remove a conflict record; a no-op if it is already gone."""
    if state.find_conflict(conflict_id) is None:
        return state
    conflicts = tuple(c for c in state.active_conflicts if c.id != conflict_id)
    logger.info("Conflict cleared", conflict_id=conflict_id)
    return state.model_copy(update={"active_conflicts": conflicts})


def outcome_for_status(status: ConflictStatus) -> ConflictOutcome:
    """Natural forced outcome for the status of the last round."""
    if status == ConflictStatus.ATTACKER_WINNING:
        return ConflictOutcome.ATTACKER_VICTORY
    if status == ConflictStatus.DEFENDER_WINNING:
        return ConflictOutcome.DEFENDER_VICTORY
    return ConflictOutcome.RETREAT


def plan_conquest(
    world: World,
    target_cell_id: int,
    attacker_id: int,
    prng: AleaPRNG,
    options: ConflictOptions = DEFAULT_OPTIONS,
) -> Tuple[Optional[int], List[int]]:
    """
    Pick the cells an attack on one cell would contest.

    The target cell is always contested; each land neighbor held by the
    same defender joins unless a skip draw (``contest_skip_probability``)
    leaves it out.

    Returns:
        Tuple of (defender id, contested cell ids); (None, []) when the
        target is unknown, unowned, or already the attacker's
    """
    target = world.get_cell(target_cell_id)
    if target is None or target.kingdom_id is None or target.kingdom_id == attacker_id:
        return None, []

    defender_id = target.kingdom_id
    contested = [target.id]
    for neighbor_id in target.neighbors:
        neighbor = world.cells[neighbor_id]
        if neighbor.kingdom_id != defender_id or neighbor.is_water:
            continue
        if prng.random() > options.contest_skip_probability:
            contested.append(neighbor_id)

    return defender_id, contested


def land_cell_locator(world: World) -> CellLocator:
    """Nearest-cell lookup restricted to land cells, which are the only attack targets."""
    land = [cell for cell in world.cells if not cell.is_water]
    return CellLocator([(cell.center.x, cell.center.y) for cell in land], [cell.id for cell in land])


def find_target_cell(
    world: World,
    x: float,
    y: float,
    options: ConflictOptions = DEFAULT_OPTIONS,
    locator: Optional[CellLocator] = None,
) -> Optional[int]:
    """
    Land cell nearest to a map coordinate, within the maximum target distance.

    Water cells are never targeted, so a click just offshore lands on the
    coast. Pass a prebuilt ``locator`` to avoid rebuilding the tree; land
    and water never change after generation.
    """
    if locator is None:
        locator = land_cell_locator(world)
    return locator.nearest(x, y, max_distance=options.max_target_distance)
