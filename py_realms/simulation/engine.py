"""
Simulation session service.

A Simulation owns the current World and WorldState snapshots of one
session and swaps them for new ones on every command. Readers that kept
a reference to an earlier snapshot are never affected.
"""

from typing import Any, List, Mapping, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from ..config.world_config import ConflictOptions, InitialStateOptions, WorldGenConfig
from ..core.alea_prng import AleaPRNG
from ..core.boundaries import PolygonMerger
from ..core.models import World
from ..core.world_generator import generate_world
from . import conflicts
from .events import EventLog, EventType
from .state import (
    ActiveConflict,
    ConflictOutcome,
    KingdomState,
    LocationState,
    WorldState,
    generate_initial_state,
    merge_kingdom_update,
    merge_location_update,
    next_date,
)
from .transfer import TransferReport, apply_conflict_resolution

logger = structlog.get_logger()


class Simulation:
    """
    Command surface over one world and its runtime state.

    Args:
        world: Generated world
        state: Runtime state, seeded from the world when omitted
        prng: Source of runtime randomness, derived from the world seed when omitted
        event_log: Event log to write to
        conflict_options: Conflict tuning constants
        merger: Polygon merge implementation for outlines after transfers
    """

    def __init__(
        self,
        world: World,
        state: Optional[WorldState] = None,
        prng: Optional[AleaPRNG] = None,
        event_log: Optional[EventLog] = None,
        conflict_options: Optional[ConflictOptions] = None,
        initial_options: Optional[InitialStateOptions] = None,
        merger: Optional[PolygonMerger] = None,
    ):
        self.prng = prng or AleaPRNG(f"{world.seed}:runtime")
        self.events = event_log or EventLog()
        self.conflict_options = conflict_options or ConflictOptions()
        self.merger = merger
        self.world = world
        self.state = state or generate_initial_state(world, self.prng, initial_options)
        # Transfers change owners only, so the land cells stay fixed
        self.land_locator = conflicts.land_cell_locator(world)

    @classmethod
    def generate(
        cls, config: Optional[WorldGenConfig] = None, event_log: Optional[EventLog] = None, **kwargs: Any
    ) -> "Simulation":
        """Generate a world and open a session on it."""
        return cls(generate_world(config), event_log=event_log, **kwargs)

    # Calendar and economy

    def advance_season(self) -> WorldState:
        self.state = self.state.model_copy(update={"date": next_date(self.state.date)})
        self.events.record(EventType.SEASON_ADVANCED, year=self.state.date.year,
                           season=self.state.date.season.value)
        logger.info("Season advanced", year=self.state.date.year, season=self.state.date.season.value)
        return self.state

    def tick(self) -> WorldState:
        """One economy step: every kingdom gains one gold."""
        kingdoms = {
            kingdom_id: kingdom.model_copy(
                update={"resources": kingdom.resources.model_copy(update={"gold": kingdom.resources.gold + 1})}
            )
            for kingdom_id, kingdom in self.state.kingdoms.items()
        }
        self.state = self.state.model_copy(update={"kingdoms": kingdoms})
        return self.state

    # Ledger updates

    def update_kingdom_state(self, kingdom_id: int, updates: Mapping[str, Any]) -> Optional[KingdomState]:
        """Merge a partial update; None and no change for an unknown kingdom or invalid values."""
        existing = self.state.kingdoms.get(kingdom_id)
        if existing is None:
            logger.warning("Update for unknown kingdom", kingdom_id=kingdom_id)
            return None
        try:
            updated = merge_kingdom_update(existing, updates)
        except (ValidationError, ValueError) as e:
            logger.warning("Rejected kingdom update", kingdom_id=kingdom_id, error=str(e))
            return None
        self.state = self.state.model_copy(update={"kingdoms": {**self.state.kingdoms, kingdom_id: updated}})
        self.events.record(EventType.KINGDOM_UPDATED, kingdom_id=kingdom_id, fields=sorted(updates))
        return updated

    def update_location_state(self, location_id: str, updates: Mapping[str, Any]) -> Optional[LocationState]:
        """Merge a partial update; None and no change for an unknown location or invalid values."""
        existing = self.state.locations.get(location_id)
        if existing is None:
            logger.warning("Update for unknown location", location_id=location_id)
            return None
        try:
            updated = merge_location_update(existing, updates)
        except (ValidationError, ValueError) as e:
            logger.warning("Rejected location update", location_id=location_id, error=str(e))
            return None
        self.state = self.state.model_copy(update={"locations": {**self.state.locations, location_id: updated}})
        self.events.record(EventType.LOCATION_UPDATED, location_id=location_id, fields=sorted(updates))
        return updated

    # Conflicts

    def get_conflict(self, kingdom_a: int, kingdom_b: int) -> Optional[ActiveConflict]:
        return conflicts.get_conflict(self.state, kingdom_a, kingdom_b)

    def start_conflict(
        self, attacker_id: int, defender_id: int, contested_cell_ids: Sequence[int]
    ) -> Optional[ActiveConflict]:
        existed = self.get_conflict(attacker_id, defender_id) is not None
        self.state, conflict = conflicts.start_conflict(self.state, attacker_id, defender_id, contested_cell_ids)
        if conflict is not None:
            self.events.record(
                EventType.CONFLICT_MERGED if existed else EventType.CONFLICT_STARTED,
                conflict_id=conflict.id, attacker_id=attacker_id, defender_id=defender_id,
                cells=len(conflict.contested_cell_ids),
            )
        return conflict

    def plan_conquest(self, target_cell_id: int, attacker_id: int) -> Optional[ActiveConflict]:
        """Attack one cell and the defender's land around it."""
        defender_id, contested = conflicts.plan_conquest(
            self.world, target_cell_id, attacker_id, self.prng, self.conflict_options
        )
        if defender_id is None:
            return None
        return self.start_conflict(attacker_id, defender_id, contested)

    def plan_conquest_at(self, x: float, y: float, attacker_id: int) -> Optional[ActiveConflict]:
        """Attack the land cell nearest to a map coordinate."""
        cell_id = conflicts.find_target_cell(self.world, x, y, self.conflict_options, self.land_locator)
        if cell_id is None:
            return None
        return self.plan_conquest(cell_id, attacker_id)

    def resolve_battle_round(
        self, conflict_id: str, random_factor: Optional[float] = None
    ) -> Optional[conflicts.BattleResult]:
        self.state, result = conflicts.resolve_battle_round(
            self.state, conflict_id, self.prng, self.conflict_options, random_factor
        )
        if result is not None:
            self.events.record(EventType.ROUND_RESOLVED, conflict_id=conflict_id, status=result.status.value,
                               attacker_losses=result.attacker_losses, defender_losses=result.defender_losses)
        return result

    def force_resolve_conflict(self, conflict_id: str, outcome: ConflictOutcome) -> Optional[ActiveConflict]:
        try:
            outcome = ConflictOutcome(outcome)
        except ValueError:
            logger.warning("Rejected unknown conflict outcome", conflict_id=conflict_id, outcome=outcome)
            return None
        self.state = conflicts.force_resolve_conflict(self.state, conflict_id, outcome)
        conflict = self.state.find_conflict(conflict_id)
        if conflict is not None:
            self.events.record(EventType.CONFLICT_RESOLVED, conflict_id=conflict_id,
                               outcome=conflict.pending_resolution.value)
        return conflict

    def apply_conflict_resolution(self, conflict_id: str) -> Optional[TransferReport]:
        self.world, self.state, report = apply_conflict_resolution(
            self.world, self.state, conflict_id, self.merger
        )
        if report is None:
            return None
        if report.moved_cell_ids:
            self.events.record(EventType.TERRITORY_TRANSFERRED, conflict_id=conflict_id,
                               winner_id=report.winner_id, loser_id=report.loser_id,
                               cells=len(report.moved_cell_ids),
                               captured=report.captured_settlement_ids)
        if report.destroyed:
            self.events.record(EventType.KINGDOM_DESTROYED, kingdom_id=report.loser_id, ruin_id=report.ruin_id)
        return report

    def clear_conflict(self, conflict_id: str) -> WorldState:
        existed = self.state.find_conflict(conflict_id) is not None
        self.state = conflicts.clear_conflict(self.state, conflict_id)
        if existed:
            self.events.record(EventType.CONFLICT_CLEARED, conflict_id=conflict_id)
        return self.state

    def border_cells(self, kingdom_a: int, kingdom_b: int) -> List[Tuple[int, int]]:
        """(cell of a, adjacent cell of b) pairs along a shared border."""
        pairs = []
        for cell in self.world.cells:
            if cell.kingdom_id != kingdom_a:
                continue
            for neighbor_id in cell.neighbors:
                if self.world.cells[neighbor_id].kingdom_id == kingdom_b:
                    pairs.append((cell.id, neighbor_id))
        return pairs
