"""
Biome classification from elevation and latitude.

This module implements:
- The closed set of biome and climate-zone variants
- Elevation bands cross-referenced with a latitude-derived climate band
- The cell classifier that evaluates the terrain field at every cell center
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from .terrain import TerrainField

if TYPE_CHECKING:
    from .models import Cell

logger = structlog.get_logger()


class BiomeType(str, Enum):
    """Biome tags carried by every cell."""

    OCEAN = "OCEAN"
    SHALLOW = "SHALLOW"
    BEACH = "BEACH"
    PLAIN = "PLAIN"
    FOREST = "FOREST"
    HILLS = "HILLS"
    MOUNTAIN = "MOUNTAIN"
    SNOW = "SNOW"


class ClimateZone(str, Enum):
    """Coarse latitude band, north at the top of the canvas."""

    NORTH = "NORTH"
    CENTRAL = "CENTRAL"
    SOUTH = "SOUTH"


BIOME_NAMES = {
    BiomeType.OCEAN: "Ocean",
    BiomeType.SHALLOW: "Shallow Water",
    BiomeType.BEACH: "Beach",
    BiomeType.PLAIN: "Plains",
    BiomeType.FOREST: "Forest",
    BiomeType.HILLS: "Hills",
    BiomeType.MOUNTAIN: "Mountains",
    BiomeType.SNOW: "Snowfields",
}

WATER_BIOMES = frozenset({BiomeType.OCEAN, BiomeType.SHALLOW})


@dataclass
class BiomeOptions:
    """Elevation and latitude thresholds."""

    water_threshold: float = 0.25  # below: water
    deep_water_threshold: float = 0.20  # below: deep ocean
    beach_threshold: float = 0.30
    hills_threshold: float = 0.58
    mountain_threshold: float = 0.72
    polar_latitude: float = 0.25  # normalized y, 0 is the northern edge
    tropical_latitude: float = 0.75
    snow_threshold: float = 0.45
    taiga_threshold: float = 0.38
    arid_hills_threshold: float = 0.48
    forest_threshold: float = 0.50
    mixed_threshold: float = 0.40
    north_zone_limit: float = 0.35
    south_zone_limit: float = 0.70


def climate_zone(y: float, height: float, options: Optional[BiomeOptions] = None) -> ClimateZone:
    """Climate zone for a y coordinate on a canvas of the given height."""
    options = options or BiomeOptions()
    if y < height * options.north_zone_limit:
        return ClimateZone.NORTH
    if y > height * options.south_zone_limit:
        return ClimateZone.SOUTH
    return ClimateZone.CENTRAL


def classify_biome(
    elevation: float,
    normalized_y: float,
    detail: float = 0.0,
    options: Optional[BiomeOptions] = None,
) -> BiomeType:
    """
    Pick a biome for one point.

    Args:
        elevation: Elevation in [0, 1]
        normalized_y: y / canvas height, 0 at the northern edge
        detail: Secondary noise in [-1, 1], decides mixed forest/plain bands
        options: Thresholds

    Returns:
        BiomeType
    """
    o = options or BiomeOptions()

    if elevation < o.water_threshold:
        if elevation < o.deep_water_threshold:
            return BiomeType.OCEAN
        return BiomeType.SHALLOW

    if elevation < o.beach_threshold:
        return BiomeType.BEACH
    if elevation > o.mountain_threshold:
        return BiomeType.MOUNTAIN
    if elevation > o.hills_threshold:
        return BiomeType.HILLS

    if normalized_y < o.polar_latitude:
        # Far north: snowfields, taiga, tundra plains
        if elevation > o.snow_threshold:
            return BiomeType.SNOW
        if elevation > o.taiga_threshold:
            return BiomeType.FOREST
        return BiomeType.PLAIN

    if normalized_y > o.tropical_latitude:
        # Far south: arid hills over savanna
        if elevation > o.arid_hills_threshold:
            return BiomeType.HILLS
        return BiomeType.PLAIN

    if elevation > o.forest_threshold:
        return BiomeType.FOREST
    if elevation > o.mixed_threshold:
        return BiomeType.FOREST if detail > 0 else BiomeType.PLAIN
    return BiomeType.PLAIN


class BiomeClassifier:
    """Applies the terrain field to every cell."""

    def __init__(self, terrain: TerrainField, options: Optional[BiomeOptions] = None):
        """
        Initialize biome classifier.

        Args:
            terrain: Elevation field of the world being generated
            options: Biome classification thresholds
        """
        self.terrain = terrain
        self.options = options or BiomeOptions()

    def classify_cell(self, cell: Cell) -> None:
        """Set elevation, water flag and biome of one cell in place."""
        x, y = cell.center.x, cell.center.y
        elevation = self.terrain.elevation(x, y)
        biome = classify_biome(
            elevation,
            y / self.terrain.height,
            self.terrain.detail(x, y),
            self.options,
        )
        cell.elevation = elevation
        cell.is_water = elevation < self.options.water_threshold
        cell.biome = biome

    def classify_cells(self, cells: List[Cell]) -> None:
        """Classify every cell. No cell depends on another."""
        logger.info("Classifying cells", cells=len(cells))
        for cell in cells:
            self.classify_cell(cell)
        land = sum(1 for cell in cells if not cell.is_water)
        logger.info("Cell classification complete", land_cells=land, water_cells=len(cells) - land)

    @staticmethod
    def get_biome_statistics(cells: List[Cell]) -> Dict[str, int]:
        """Count cells per biome name."""
        stats: Dict[str, int] = {}
        for cell in cells:
            name = BIOME_NAMES[cell.biome]
            stats[name] = stats.get(name, 0) + 1
        return stats
