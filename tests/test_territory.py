"""Tests for capital placement, flood fill and kingdom assembly."""

import math

import pytest

from py_realms.core.alea_prng import AleaPRNG
from py_realms.core.biomes import BiomeType
from py_realms.core.kingdoms import KingdomBuilder, compute_geography, compute_neighbor_map
from py_realms.core.models import SettlementKind
from py_realms.core.territory import TerritoryPartitioner, is_capital_site
from py_realms.core.voronoi_graph import GridConfig, generate_voronoi_graph


def make_cells(seed="territory", land_rule=None):
    """Cells of a 200x200 canvas; land where land_rule(cell) holds, edges are water."""
    cells = generate_voronoi_graph(GridConfig(200, 200, 200), AleaPRNG(seed)).to_cells()
    for cell in cells:
        land = not cell.border and (land_rule is None or land_rule(cell))
        cell.is_water = not land
        cell.elevation = 0.45 if land else 0.1
        cell.biome = BiomeType.PLAIN if land else BiomeType.OCEAN
    return cells


class TestCapitalSites:

    def test_excluded_biomes(self):
        """Test that mountains and snow are not capital sites."""
        cells = make_cells()
        cell = next(c for c in cells if not c.is_water)
        assert is_capital_site(cell)
        cell.biome = BiomeType.MOUNTAIN
        assert not is_capital_site(cell)
        cell.biome = BiomeType.BEACH
        assert not is_capital_site(cell)


class TestTerritoryPartitioner:
    """Test partitioning of land into kingdoms."""

    def test_capitals_are_distinct_land(self):
        """Test that capitals are distinct land cells."""
        cells = make_cells()
        capitals = TerritoryPartitioner(cells, AleaPRNG(1)).select_capitals(4)

        assert len(capitals) == 4
        assert len(set(capitals)) == 4
        for kingdom_id, idx in enumerate(capitals):
            assert is_capital_site(cells[idx])
            assert cells[idx].kingdom_id == kingdom_id

    def test_capitals_spread_out(self):
        """Test that capitals are spread apart."""
        cells = make_cells()
        capitals = TerritoryPartitioner(cells, AleaPRNG(2)).select_capitals(3)
        distances = [
            math.hypot(cells[a].center.x - cells[b].center.x, cells[a].center.y - cells[b].center.y)
            for i, a in enumerate(capitals) for b in capitals[i + 1:]
        ]
        assert min(distances) > 30

    def test_fallback_when_sampling_finds_nothing(self):
        """Only excluded biomes except one cell: the fallback picks it by index."""
        cells = make_cells()
        land = [c for c in cells if not c.is_water]
        for cell in land:
            cell.biome = BiomeType.MOUNTAIN
        land[5].biome = BiomeType.PLAIN

        partitioner = TerritoryPartitioner(cells, AleaPRNG(3), capital_attempts=1)
        capitals = partitioner.select_capitals(2)

        assert land[5].id in capitals
        assert len(capitals) == 2

    def test_no_land(self):
        """Test partition of a world without land."""
        cells = make_cells(land_rule=lambda cell: False)
        assert TerritoryPartitioner(cells, AleaPRNG(4)).partition(3) == []
        assert all(cell.kingdom_id is None for cell in cells)

    def test_flood_fill_claims_connected_land(self):
        """Test that flood fill claims connected land."""
        cells = make_cells()
        TerritoryPartitioner(cells, AleaPRNG(5)).partition(3)

        land = [cell for cell in cells if not cell.is_water]
        assert all(cell.kingdom_id is None for cell in cells if cell.is_water)
        assert {cell.kingdom_id for cell in land} <= {0, 1, 2, None}
        assert sum(1 for cell in land if cell.kingdom_id is not None) > 0.9 * len(land)

    def test_unreachable_island_stays_unowned(self):
        """Land cut off by water is never claimed."""
        cells = make_cells(land_rule=lambda cell: cell.center.x < 80 or cell.center.x > 120)
        partitioner = TerritoryPartitioner(cells, AleaPRNG(6))
        # Single capital, so the far side of the channel cannot be reached
        capitals = partitioner.partition(1)
        side = cells[capitals[0]].center.x < 80

        for cell in cells:
            if not cell.is_water and (cell.center.x < 80) != side:
                assert cell.kingdom_id is None

    def test_deterministic(self):
        """Test that same seed produces same partition."""
        first = make_cells()
        second = make_cells()
        TerritoryPartitioner(first, AleaPRNG(7)).partition(3)
        TerritoryPartitioner(second, AleaPRNG(7)).partition(3)

        assert [c.kingdom_id for c in first] == [c.kingdom_id for c in second]


class TestKingdomBuilder:
    """Test kingdom records built from a partition."""

    @pytest.fixture
    def kingdoms(self):
        cells = make_cells()
        prng = AleaPRNG(8)
        capitals = TerritoryPartitioner(cells, prng).partition(3)
        return cells, capitals, KingdomBuilder(cells, 200, prng, cities_per_kingdom=2).build(capitals)

    def test_one_kingdom_per_capital(self, kingdoms):
        """Test one kingdom per capital."""
        cells, capitals, built = kingdoms

        assert [k.id for k in built] == [0, 1, 2]
        for kingdom, capital_idx in zip(built, capitals):
            assert kingdom.capital.cell_id == capital_idx
            assert kingdom.capital.kind == SettlementKind.CAPITAL
            assert kingdom.capital.id == f"capital-{kingdom.id}"

    def test_partition_invariant(self, kingdoms):
        """Test that no cell belongs to two kingdoms."""
        cells, _, built = kingdoms
        owned = [cell_id for kingdom in built for cell_id in kingdom.cell_ids]

        assert len(owned) == len(set(owned))
        assert set(owned) == {cell.id for cell in cells if cell.kingdom_id is not None}

    def test_cities(self, kingdoms):
        """Test city placement."""
        cells, _, built = kingdoms
        for kingdom in built:
            assert 1 <= len(kingdom.cities) <= 2
            for city in kingdom.cities:
                assert city.kind == SettlementKind.CITY
                assert city.id.startswith(f"city-{kingdom.id}-")
                assert city.cell_id != kingdom.capital.cell_id
                assert cells[city.cell_id].kingdom_id == kingdom.id
                assert city.position.x == round(city.position.x)

    def test_names_unique(self, kingdoms):
        """Test that kingdom names are unique."""
        _, _, built = kingdoms
        names = [kingdom.name for kingdom in built]
        assert len(set(names)) == len(names)

    def test_geography(self, kingdoms):
        """Test kingdom geography."""
        cells, _, built = kingdoms
        neighbor_map = compute_neighbor_map(cells)
        for kingdom in built:
            assert kingdom.geography.area == len(kingdom.cell_ids)
            assert kingdom.geography.neighboring_kingdoms == neighbor_map.get(kingdom.id, [])
            assert kingdom.geography.dominant_biome == BiomeType.PLAIN
            assert kingdom.color.startswith("#")

    def test_geography_of_empty_kingdom_keeps_previous(self, kingdoms):
        """Test that an emptied kingdom keeps its previous centroid."""
        cells, _, built = kingdoms
        previous = built[0].geography
        geography = compute_geography(99, cells, 200, previous=previous)

        assert geography.area == 0
        assert geography.centroid == previous.centroid
        assert geography.neighboring_kingdoms == []
