"""Shared fixtures: small generated worlds and a hand-partitioned world."""

import math

import pytest

from py_realms.config import WorldGenConfig
from py_realms.core.alea_prng import AleaPRNG
from py_realms.core.biomes import BiomeType
from py_realms.core.kingdoms import KingdomBuilder, compute_bounds
from py_realms.core.models import Point, World, WorldGeography
from py_realms.core.voronoi_graph import GridConfig, generate_voronoi_graph
from py_realms.core.world_generator import generate_world
from py_realms.simulation.state import generate_initial_state


def build_striped_world(num_kingdoms=3, width=300, height=200, num_points=300, seed=11):
    """
    World with land split into vertical stripes, one kingdom per stripe.

    Canvas-edge cells are water, everything else is PLAIN, so every pair of
    adjacent stripes shares a long border.
    """
    prng = AleaPRNG(seed)
    cells = generate_voronoi_graph(GridConfig(width, height, num_points), prng).to_cells()
    stripe = width / num_kingdoms

    for cell in cells:
        cell.is_water = cell.border
        cell.elevation = 0.1 if cell.is_water else 0.45
        cell.biome = BiomeType.OCEAN if cell.is_water else BiomeType.PLAIN
        if not cell.is_water:
            cell.kingdom_id = min(int(cell.center.x / stripe), num_kingdoms - 1)

    capitals = []
    for kingdom_id in range(num_kingdoms):
        target_x, target_y = stripe * (kingdom_id + 0.5), height / 2
        owned = [cell for cell in cells if cell.kingdom_id == kingdom_id]
        capital = min(owned, key=lambda c: math.hypot(c.center.x - target_x, c.center.y - target_y))
        capitals.append(capital.id)

    kingdoms = KingdomBuilder(cells, height, prng, cities_per_kingdom=2).build(capitals)
    land = [cell for cell in cells if not cell.is_water]
    return World(
        seed=seed,
        width=width,
        height=height,
        cells=cells,
        kingdoms=kingdoms,
        geography=WorldGeography(
            total_land_area=sum(k.geography.area for k in kingdoms),
            continent_bounds=compute_bounds(land),
            continent_centroid=Point(x=width / 2, y=height / 2),
        ),
    )


@pytest.fixture
def striped_world():
    return build_striped_world()


@pytest.fixture
def striped_state(striped_world):
    return generate_initial_state(striped_world, AleaPRNG("state"))


@pytest.fixture(scope="session")
def small_config():
    return WorldGenConfig(seed=7, width=500, height=400, num_kingdoms=3, num_points=600)


@pytest.fixture(scope="session")
def small_world(small_config):
    """Generated once per session; tests must not modify it."""
    return generate_world(small_config)


def _nearest(cells, x, y):
    return min(cells, key=lambda c: math.hypot(c.center.x - x, c.center.y - y))


@pytest.fixture
def offshore_click(striped_world):
    """
    A point in the water just off kingdom 1's coast, with the land cell it should hit.

    The point lies 70% of the way from a coastal site to a neighboring water
    site, so the nearest site overall is water while the nearest land site is
    the kingdom's coastal cell.
    """
    cells = striped_world.cells
    land = [cell for cell in cells if not cell.is_water]
    for cell in cells:
        if cell.kingdom_id != 1:
            continue
        for neighbor_id in cell.neighbors:
            water = cells[neighbor_id]
            if not water.is_water:
                continue
            x = cell.center.x + 0.7 * (water.center.x - cell.center.x)
            y = cell.center.y + 0.7 * (water.center.y - cell.center.y)
            target = _nearest(land, x, y)
            distance = math.hypot(target.center.x - x, target.center.y - y)
            if _nearest(cells, x, y).is_water and target.kingdom_id == 1 and distance <= 40:
                return x, y, target.id
    pytest.fail("striped world has no coast on kingdom 1")
