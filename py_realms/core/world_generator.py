"""
World generation pipeline.

Process (strictly sequential, each step consumes the previous output):
1. TerrainField.from_prng()     - Continent mask and noise offsets
2. generate_voronoi_graph()     - Sampled, relaxed tessellation
3. BiomeClassifier              - Elevation, water flag and biome per cell
4. TerritoryPartitioner         - Capitals and flood-filled ownership
5. KingdomBuilder               - Kingdom records with outlines
6. Coastline, biome outlines, distant lands and world geography
"""

import time
from typing import Any, Dict, Optional

import structlog

from ..config.world_config import WorldGenConfig
from .alea_prng import AleaPRNG
from .biomes import BiomeClassifier, BiomeOptions
from .boundaries import PolygonMerger, compute_biome_outlines, compute_coastline
from .distant_lands import generate_distant_lands
from .kingdoms import KingdomBuilder, compute_bounds
from .models import Point, World, WorldGeography
from .territory import TerritoryPartitioner
from .terrain import TerrainField
from .voronoi_graph import GridConfig, generate_voronoi_graph

logger = structlog.get_logger()


def resolve_seed(seed: Optional[int]) -> int:
    """Use the given seed, or derive one from the clock."""
    if seed is not None:
        return seed
    return int(time.time() * 1000) % 1_000_000


def generate_world(
    config: Optional[WorldGenConfig] = None,
    biome_options: Optional[BiomeOptions] = None,
    merger: Optional[PolygonMerger] = None,
) -> World:
    """
    Generate a complete world.

    Identical seed and configuration always give an identical world.

    Args:
        config: Generation configuration, defaults when omitted
        biome_options: Biome thresholds
        merger: Polygon merge implementation for outlines

    Returns:
        World snapshot
    """
    config = config or WorldGenConfig()
    seed = resolve_seed(config.seed)
    prng = AleaPRNG(seed)
    started = time.perf_counter()

    logger.info(
        "Generating world",
        seed=seed,
        width=config.width,
        height=config.height,
        kingdoms=config.num_kingdoms,
        points=config.num_points,
    )

    # Stage 1: Terrain field
    terrain = TerrainField.from_prng(config.width, config.height, prng)

    # Stage 2: Tessellation
    graph = generate_voronoi_graph(
        GridConfig(config.width, config.height, config.num_points, config.relaxation_passes),
        prng,
    )
    cells = graph.to_cells()

    # Stage 3: Classification
    BiomeClassifier(terrain, biome_options).classify_cells(cells)

    # Stage 4: Partition
    partitioner = TerritoryPartitioner(cells, prng, capital_attempts=config.capital_attempts)
    capitals = partitioner.partition(config.num_kingdoms)

    # Stage 5: Kingdoms
    builder = KingdomBuilder(
        cells, config.height, prng, cities_per_kingdom=config.num_cities_per_kingdom, merger=merger
    )
    kingdoms = builder.build(capitals)

    # Stage 6: World-level outputs
    land_cells = [cell for cell in cells if not cell.is_water]
    continent_bounds = compute_bounds(land_cells)
    if land_cells:
        centroid = Point(
            x=sum(cell.center.x for cell in land_cells) / len(land_cells),
            y=sum(cell.center.y for cell in land_cells) / len(land_cells),
        )
    else:
        centroid = Point(x=config.width / 2, y=config.height / 2)

    distant_lands = []
    if config.distant_lands:
        distant_lands = generate_distant_lands(
            centroid, continent_bounds.width, continent_bounds.height, prng, terrain
        )

    world = World(
        seed=seed,
        width=config.width,
        height=config.height,
        cells=cells,
        kingdoms=kingdoms,
        geography=WorldGeography(
            total_land_area=sum(kingdom.geography.area for kingdom in kingdoms),
            continent_bounds=continent_bounds,
            continent_centroid=Point(x=round(centroid.x), y=round(centroid.y)),
        ),
        coastline=compute_coastline(cells, merger),
        biome_outlines=compute_biome_outlines(cells, merger=merger),
        distant_lands=distant_lands,
    )

    logger.info(
        "World generation complete",
        seed=seed,
        cells=len(cells),
        land_cells=len(land_cells),
        kingdoms=len(kingdoms),
        seconds=round(time.perf_counter() - started, 3),
    )
    return world


def world_summary(world: World) -> Dict[str, Any]:
    """
    JSON-ready summary of a world without geometry.

    This is the compact view handed to narrative collaborators.
    """
    return {
        "seed": world.seed,
        "width": world.width,
        "height": world.height,
        "geography": world.geography.model_dump(mode="json"),
        "kingdoms": [
            {
                "id": kingdom.id,
                "name": kingdom.name,
                "color": kingdom.color,
                "destroyed": kingdom.destroyed,
                "capital": kingdom.capital.model_dump(mode="json"),
                "cities": [city.model_dump(mode="json") for city in kingdom.cities],
                "geography": kingdom.geography.model_dump(mode="json"),
            }
            for kingdom in world.kingdoms
        ],
    }
