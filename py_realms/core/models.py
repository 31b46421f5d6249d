"""
World snapshot data structures.

Cells, settlements and kingdoms are produced once by the generator. After
generation they are treated as values: territory changes build new
objects with ``model_copy`` and never edit a published snapshot.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry.base import BaseGeometry

from .biomes import BiomeType, ClimateZone

# Owner id carried by settlements that no longer belong to any kingdom
RUIN_OWNER_ID = -1


class Point(BaseModel):
    """2D coordinate."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class BoundingBox(BaseModel):
    """Axis-aligned bounds."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    width: float
    height: float


class Cell(BaseModel):
    """Atomic polygonal region of the tessellation."""

    id: int = Field(description="Stable cell index")
    center: Point = Field(description="Site of the cell")
    polygon: List[Tuple[float, float]] = Field(
        default_factory=list, description="Ordered vertex loop, empty if degenerate"
    )
    elevation: float = Field(default=0.0, description="Elevation in [0, 1]")
    is_water: bool = Field(default=True, description="Water cell flag")
    biome: BiomeType = Field(default=BiomeType.OCEAN, description="Biome tag")
    kingdom_id: Optional[int] = Field(default=None, description="Owning kingdom id")
    neighbors: List[int] = Field(default_factory=list, description="Adjacent cell ids")
    border: bool = Field(default=False, description="Cell touches the canvas edge")


class SettlementKind(str, Enum):
    """Settlement (point of interest) kinds."""

    CAPITAL = "capital"
    CITY = "city"
    FORTRESS = "fortress"
    RUIN = "ruin"
    DUNGEON = "dungeon"


class Settlement(BaseModel):
    """Data structure for a settlement on the world map."""

    id: str = Field(description="Unique settlement identifier")
    name: str = Field(description="Settlement name")
    kind: SettlementKind = Field(description="Settlement kind")
    position: Point = Field(description="Map position")
    kingdom_id: int = Field(description="Owning kingdom id, RUIN_OWNER_ID for ruins")
    cell_id: int = Field(description="Cell the settlement was placed on")
    climate: ClimateZone = Field(description="Climate zone of the position")
    biome: BiomeType = Field(description="Biome of the settlement cell")
    description: Optional[str] = Field(default=None, description="Flavor text")


class KingdomGeography(BaseModel):
    """Aggregate geography of a kingdom's territory."""

    centroid: Point
    bounds: BoundingBox
    area: int = Field(description="Number of owned cells")
    neighboring_kingdoms: List[int] = Field(default_factory=list)
    has_coastline: bool = False
    dominant_biome: BiomeType = BiomeType.PLAIN
    climate_zone: ClimateZone = ClimateZone.CENTRAL


class Kingdom(BaseModel):
    """Data structure for a political kingdom."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: int = Field(description="Unique kingdom identifier")
    name: str = Field(description="Kingdom name")
    color: str = Field(description="Fill color in hex format")
    border_color: str = Field(description="Border color in hex format")
    capital: Settlement = Field(description="Capital, or the ruin marker once destroyed")
    cities: List[Settlement] = Field(default_factory=list)
    geography: KingdomGeography
    cell_ids: List[int] = Field(default_factory=list, description="Owned cells")
    outline: Optional[BaseGeometry] = Field(
        default=None, description="Union of owned cell polygons"
    )
    destroyed: bool = Field(default=False, description="Lost every settlement")

    @property
    def settlements(self) -> List[Settlement]:
        """Capital followed by cities."""
        return [self.capital, *self.cities]

    @property
    def svg_path(self) -> str:
        """Outline as an SVG path string."""
        from .boundaries import outline_to_svg_path

        return outline_to_svg_path(self.outline)


class DistantLand(BaseModel):
    """Decorative landmass beyond the playable continent."""

    id: str
    position: Point
    ring: List[Tuple[float, float]] = Field(default_factory=list)


class WorldGeography(BaseModel):
    """Continent-wide aggregates."""

    total_land_area: int
    continent_bounds: BoundingBox
    continent_centroid: Point


class World(BaseModel):
    """Immutable result of world generation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    seed: int
    width: float
    height: float
    cells: List[Cell]
    kingdoms: List[Kingdom]
    geography: WorldGeography
    coastline: Optional[BaseGeometry] = None
    biome_outlines: Dict[BiomeType, BaseGeometry] = Field(default_factory=dict)
    distant_lands: List[DistantLand] = Field(default_factory=list)

    def get_kingdom(self, kingdom_id: int) -> Optional[Kingdom]:
        """Kingdom by id, or None."""
        for kingdom in self.kingdoms:
            if kingdom.id == kingdom_id:
                return kingdom
        return None

    def get_cell(self, cell_id: int) -> Optional[Cell]:
        """Cell by id, or None when out of range."""
        if 0 <= cell_id < len(self.cells):
            return self.cells[cell_id]
        return None

    @property
    def active_kingdoms(self) -> List[Kingdom]:
        """Kingdoms still in play."""
        return [k for k in self.kingdoms if not k.destroyed]
