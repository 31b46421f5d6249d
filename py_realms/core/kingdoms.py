"""
Kingdom assembly from a partitioned cell graph.

Builds the Kingdom records (names, colors, capital and cities, aggregate
geography and boundary outline) once ownership has been flood-filled.
The geography helpers are reused after territory transfers.
"""

import math
from collections import Counter
from typing import Dict, List, Optional, Sequence, Set

import structlog

from .alea_prng import AleaPRNG
from .biomes import BiomeType, ClimateZone, climate_zone
from .boundaries import PolygonMerger, compute_kingdom_outline
from .models import BoundingBox, Cell, Kingdom, KingdomGeography, Point, Settlement, SettlementKind
from .name_banks import CITY_NAMES, KINGDOM_COLORS, KINGDOM_NAMES

logger = structlog.get_logger()

# Biomes where no city is founded
CITY_EXCLUDED_BIOMES = frozenset(
    {BiomeType.MOUNTAIN, BiomeType.BEACH, BiomeType.OCEAN, BiomeType.SHALLOW}
)


def compute_bounds(cells: Sequence[Cell]) -> BoundingBox:
    """Bounding box of cell centers, rounded to whole units."""
    if not cells:
        return BoundingBox(min_x=0, min_y=0, max_x=0, max_y=0, width=0, height=0)
    min_x = min(cell.center.x for cell in cells)
    min_y = min(cell.center.y for cell in cells)
    max_x = max(cell.center.x for cell in cells)
    max_y = max(cell.center.y for cell in cells)
    return BoundingBox(
        min_x=round(min_x),
        min_y=round(min_y),
        max_x=round(max_x),
        max_y=round(max_y),
        width=round(max_x - min_x),
        height=round(max_y - min_y),
    )


def compute_neighbor_map(cells: Sequence[Cell]) -> Dict[int, List[int]]:
    """Neighboring kingdom ids for every kingdom that owns cells."""
    neighbors: Dict[int, Set[int]] = {}
    for cell in cells:
        if cell.kingdom_id is None:
            continue
        found = neighbors.setdefault(cell.kingdom_id, set())
        for neighbor_id in cell.neighbors:
            other = cells[neighbor_id].kingdom_id
            if other is not None and other != cell.kingdom_id:
                found.add(other)
    return {kingdom_id: sorted(ids) for kingdom_id, ids in neighbors.items()}


def compute_geography(
    kingdom_id: int, cells: Sequence[Cell], map_height: float, previous: Optional[KingdomGeography] = None
) -> KingdomGeography:
    """
    Aggregate geography of a kingdom's current territory.

    Args:
        kingdom_id: Kingdom to describe
        cells: All cells of the world
        map_height: Canvas height, for the climate zone
        previous: Geography to fall back on when the kingdom owns nothing

    Returns:
        KingdomGeography
    """
    owned = [cell for cell in cells if cell.kingdom_id == kingdom_id and len(cell.polygon) >= 3]

    if not owned:
        if previous is not None:
            return previous.model_copy(update={"area": 0, "neighboring_kingdoms": [], "has_coastline": False})
        return KingdomGeography(centroid=Point(x=0, y=0), bounds=compute_bounds([]), area=0)

    centroid_x = sum(cell.center.x for cell in owned) / len(owned)
    centroid_y = sum(cell.center.y for cell in owned) / len(owned)

    neighbor_ids: Set[int] = set()
    has_coast = False
    for cell in owned:
        for neighbor_id in cell.neighbors:
            neighbor = cells[neighbor_id]
            if neighbor.kingdom_id is not None and neighbor.kingdom_id != kingdom_id:
                neighbor_ids.add(neighbor.kingdom_id)
            if neighbor.is_water:
                has_coast = True

    # Ties go to the biome seen first
    dominant_biome = Counter(cell.biome for cell in owned).most_common(1)[0][0]

    return KingdomGeography(
        centroid=Point(x=round(centroid_x), y=round(centroid_y)),
        bounds=compute_bounds(owned),
        area=len(owned),
        neighboring_kingdoms=sorted(neighbor_ids),
        has_coastline=has_coast,
        dominant_biome=dominant_biome,
        climate_zone=climate_zone(centroid_y, map_height),
    )


class KingdomBuilder:
    """Turns capitals and flood-filled ownership into Kingdom records."""

    def __init__(
        self,
        cells: List[Cell],
        map_height: float,
        prng: AleaPRNG,
        cities_per_kingdom: int = 3,
        merger: Optional[PolygonMerger] = None,
    ):
        self.cells = cells
        self.map_height = map_height
        self.prng = prng
        self.cities_per_kingdom = cities_per_kingdom
        self.merger = merger
        self._city_name_idx = 0

    def build(self, capitals: Sequence[int]) -> List[Kingdom]:
        """Build one kingdom per capital; kingdoms with no usable cells are dropped."""
        logger.info("Building kingdoms", count=len(capitals))
        kingdoms: List[Kingdom] = []

        for kingdom_id, capital_idx in enumerate(capitals):
            geography = compute_geography(kingdom_id, self.cells, self.map_height)
            if geography.area == 0:
                logger.warning("Kingdom has no territory, dropped", kingdom_id=kingdom_id)
                for cell in self.cells:
                    if cell.kingdom_id == kingdom_id:
                        cell.kingdom_id = None
                continue

            name = self._pick_name(geography.climate_zone, kingdoms)
            capital_cell = self.cells[capital_idx]
            capital = self._make_settlement(
                f"capital-{kingdom_id}", name, SettlementKind.CAPITAL, capital_cell, kingdom_id,
                description=f"The grand capital of {name}",
            )
            cities = self._place_cities(kingdom_id, capital_cell)
            fill, border = self.prng.choice(KINGDOM_COLORS[geography.climate_zone])
            cell_ids = [cell.id for cell in self.cells if cell.kingdom_id == kingdom_id]

            kingdoms.append(
                Kingdom(
                    id=kingdom_id,
                    name=name,
                    color=fill,
                    border_color=border,
                    capital=capital,
                    cities=cities,
                    geography=geography,
                    cell_ids=cell_ids,
                    outline=compute_kingdom_outline(kingdom_id, self.cells, self.merger),
                )
            )
            logger.debug("Kingdom built", kingdom_id=kingdom_id, name=name, cells=len(cell_ids))

        return kingdoms

    def _pick_name(self, zone: ClimateZone, existing: Sequence[Kingdom]) -> str:
        name = self.prng.choice(KINGDOM_NAMES[zone])
        if any(kingdom.name == name for kingdom in existing):
            name = f"{name} II"
        return name

    def _make_settlement(
        self,
        settlement_id: str,
        name: str,
        kind: SettlementKind,
        cell: Cell,
        kingdom_id: int,
        description: Optional[str] = None,
    ) -> Settlement:
        return Settlement(
            id=settlement_id,
            name=name,
            kind=kind,
            position=Point(x=round(cell.center.x), y=round(cell.center.y)),
            kingdom_id=kingdom_id,
            cell_id=cell.id,
            climate=climate_zone(cell.center.y, self.map_height),
            biome=cell.biome,
            description=description,
        )

    def _place_cities(self, kingdom_id: int, capital_cell: Cell) -> List[Settlement]:
        """Spread cities over the kingdom, farthest candidates first."""
        candidates = [
            cell
            for cell in self.cells
            if cell.kingdom_id == kingdom_id
            and len(cell.polygon) >= 3
            and cell.id != capital_cell.id
            and cell.biome not in CITY_EXCLUDED_BIOMES
        ]
        candidates.sort(
            key=lambda cell: math.hypot(
                cell.center.x - capital_cell.center.x, cell.center.y - capital_cell.center.y
            ),
            reverse=True,
        )

        cities: List[Settlement] = []
        used: Set[int] = set()
        if not candidates:
            return cities

        step = max(1, len(candidates) // (self.cities_per_kingdom + 1))
        for i in range(self.cities_per_kingdom):
            city_cell = candidates[min(i * step, len(candidates) - 1)]
            if city_cell.id in used:
                continue
            used.add(city_cell.id)
            name = CITY_NAMES[self._city_name_idx % len(CITY_NAMES)]
            self._city_name_idx += 1
            cities.append(
                self._make_settlement(f"city-{kingdom_id}-{i}", name, SettlementKind.CITY, city_cell, kingdom_id)
            )
        return cities
