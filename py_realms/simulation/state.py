"""
Runtime ledger of kingdoms, locations and conflicts.

Every record here is frozen. Updates produce new records and a new
``WorldState``; a reader holding an older snapshot never sees it change.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.world_config import InitialStateOptions
from ..core.alea_prng import AleaPRNG
from ..core.models import SettlementKind, World

logger = structlog.get_logger()


class Season(str, Enum):
    SPRING = "SPRING"
    SUMMER = "SUMMER"
    AUTUMN = "AUTUMN"
    WINTER = "WINTER"


SEASON_ORDER = [Season.SPRING, Season.SUMMER, Season.AUTUMN, Season.WINTER]


class CityCondition(str, Enum):
    INTACT = "INTACT"
    DAMAGED = "DAMAGED"
    BESIEGED = "BESIEGED"
    RUINED = "RUINED"


class ConflictStatus(str, Enum):
    PENDING = "PENDING"
    ATTACKER_WINNING = "ATTACKER_WINNING"
    DEFENDER_WINNING = "DEFENDER_WINNING"
    STALEMATE = "STALEMATE"
    RESOLVED = "RESOLVED"


class ConflictOutcome(str, Enum):
    ATTACKER_VICTORY = "ATTACKER_VICTORY"
    DEFENDER_VICTORY = "DEFENDER_VICTORY"
    RETREAT = "RETREAT"


class Ruler(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    personality: str = "Balanced"


class Resources(BaseModel):
    model_config = ConfigDict(frozen=True)

    gold: int = 0
    mana: int = 0
    food: int = 0


class Military(BaseModel):
    model_config = ConfigDict(frozen=True)

    strength: int = Field(default=0, description="Total army strength, never negative")
    readiness: int = Field(default=100, description="Readiness percentage")

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, value: int) -> int:
        return max(0, value)


class Diplomacy(BaseModel):
    model_config = ConfigDict(frozen=True)

    enemies: Tuple[int, ...] = ()
    allies: Tuple[int, ...] = ()


class KingdomState(BaseModel):
    """Mutable-by-replacement runtime state of one kingdom."""

    model_config = ConfigDict(frozen=True)

    id: int
    ruler: Ruler
    resources: Resources
    military: Military
    diplomacy: Diplomacy = Field(default_factory=Diplomacy)


class LocationState(BaseModel):
    """Runtime state of one settlement."""

    model_config = ConfigDict(frozen=True)

    id: str
    kingdom_id: int
    condition: CityCondition = CityCondition.INTACT
    population: int = 0
    defense: int = 0
    modifiers: Tuple[str, ...] = ()


class ActiveConflict(BaseModel):
    """A war between two kingdoms over a set of contested cells."""

    model_config = ConfigDict(frozen=True)

    id: str
    attacker_id: int
    defender_id: int
    contested_cell_ids: Tuple[int, ...]
    start_timestamp: datetime
    status: ConflictStatus = ConflictStatus.PENDING
    attacker_strength: int = Field(description="Running attacker strength, snapshotted at start")
    defender_strength: int = Field(description="Running defender strength, snapshotted at start")
    rounds: int = 0
    pending_resolution: Optional[ConflictOutcome] = None

    def involves(self, kingdom_a: int, kingdom_b: int) -> bool:
        """Whether this conflict is between the two kingdoms, in either role."""
        return {self.attacker_id, self.defender_id} == {kingdom_a, kingdom_b}


class WorldDate(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    season: Season = Season.SPRING
    day: int = 1


class WorldState(BaseModel):
    """Complete runtime snapshot of a session."""

    model_config = ConfigDict(frozen=True)

    date: WorldDate
    kingdoms: Dict[int, KingdomState] = Field(default_factory=dict)
    locations: Dict[str, LocationState] = Field(default_factory=dict)
    active_conflicts: Tuple[ActiveConflict, ...] = ()
    global_flags: Tuple[str, ...] = ()

    def find_conflict(self, conflict_id: str) -> Optional[ActiveConflict]:
        for conflict in self.active_conflicts:
            if conflict.id == conflict_id:
                return conflict
        return None

    def replace_conflict(self, conflict: ActiveConflict) -> "WorldState":
        """New snapshot with the conflict of the same id replaced."""
        conflicts = tuple(conflict if c.id == conflict.id else c for c in self.active_conflicts)
        return self.model_copy(update={"active_conflicts": conflicts})


# Sub-records of KingdomState that partial updates merge into
KINGDOM_SUB_RECORDS = ("ruler", "resources", "military", "diplomacy")


def merge_kingdom_update(existing: KingdomState, updates: Mapping[str, Any]) -> KingdomState:
    """
    Apply a partial update to a kingdom.

    Each sub-record named in ``updates`` is merged field by field with the
    existing one and then replaced as a whole, through validation, so the
    result is never half-applied and military strength stays non-negative.
    """
    data = existing.model_dump()
    for key, value in updates.items():
        if key == "id":
            continue
        if key in KINGDOM_SUB_RECORDS and isinstance(value, Mapping):
            data[key] = {**data[key], **value}
        elif key in KINGDOM_SUB_RECORDS and isinstance(value, BaseModel):
            data[key] = value.model_dump()
        elif key in data:
            data[key] = value
    return KingdomState.model_validate(data)


def merge_location_update(existing: LocationState, updates: Mapping[str, Any]) -> LocationState:
    """Apply a partial update to a location."""
    data = existing.model_dump()
    for key, value in updates.items():
        if key != "id" and key in data:
            data[key] = value
    return LocationState.model_validate(data)


def next_date(date: WorldDate) -> WorldDate:
    """The date one season later."""
    index = SEASON_ORDER.index(date.season) + 1
    year = date.year
    if index >= len(SEASON_ORDER):
        index = 0
        year += 1
    return date.model_copy(update={"season": SEASON_ORDER[index], "year": year})


def generate_initial_state(
    world: World, prng: AleaPRNG, options: Optional[InitialStateOptions] = None
) -> WorldState:
    """
    Seed the runtime ledger from a generated world.

    Args:
        world: Generated world
        prng: Source of initial military strength
        options: Starting values

    Returns:
        Initial WorldState
    """
    options = options or InitialStateOptions()
    kingdoms: Dict[int, KingdomState] = {}
    locations: Dict[str, LocationState] = {}

    for kingdom in world.active_kingdoms:
        low, high = options.strength_range
        kingdoms[kingdom.id] = KingdomState(
            id=kingdom.id,
            ruler=Ruler(name=f"King of {kingdom.name}"),
            resources=Resources(gold=options.gold, mana=options.mana, food=options.food),
            military=Military(strength=prng.randint(low, high), readiness=options.readiness),
        )

        for settlement in kingdom.settlements:
            is_capital = settlement.kind == SettlementKind.CAPITAL
            locations[settlement.id] = LocationState(
                id=settlement.id,
                kingdom_id=kingdom.id,
                population=options.capital_population if is_capital else options.city_population,
                defense=options.capital_defense if is_capital else options.city_defense,
            )

    logger.info("Initial state created", kingdoms=len(kingdoms), locations=len(locations))
    return WorldState(
        date=WorldDate(year=options.year),
        kingdoms=kingdoms,
        locations=locations,
    )
