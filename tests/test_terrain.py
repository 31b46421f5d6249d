"""Tests for the continent mask and elevation field."""

import math

import numpy as np
import pytest

from py_realms.core.alea_prng import AleaPRNG
from py_realms.core.terrain import (
    ContinentShape, Peninsula, TerrainField, generate_continent_shape, normalize_angle,
)


class TestContinentShape:

    def test_parameter_ranges(self):
        """Test continent shape parameter ranges."""
        for seed in range(20):
            shape = generate_continent_shape(1000, 800, AleaPRNG(seed))

            assert abs(shape.center_x - 500) <= 1000 * 0.075
            assert abs(shape.center_y - 400) <= 800 * 0.075
            assert 0.5 <= shape.scale_x <= 1.5
            assert 0.5 <= shape.scale_y <= 1.5
            assert 0 <= shape.rotation < 2 * math.pi
            assert 1 <= len(shape.peninsulas) <= 4
            for peninsula in shape.peninsulas:
                assert 0.15 <= peninsula.length < 0.40
                assert 0.10 <= peninsula.width < 0.25

    def test_normalize_angle(self):
        """Test angle normalization."""
        assert normalize_angle(3 * math.pi) == pytest.approx(math.pi)
        assert normalize_angle(-3 * math.pi / 2) == pytest.approx(math.pi / 2)
        assert normalize_angle(0.5) == 0.5


class TestTerrainField:
    """Test elevation sampling."""

    @pytest.fixture
    def terrain(self):
        return TerrainField.from_prng(400, 300, AleaPRNG("terrain"))

    def test_elevation_range(self, terrain):
        """Test that elevation stays in [0, 1]."""
        for x in np.linspace(0, 400, 21):
            for y in np.linspace(0, 300, 16):
                assert 0.0 <= terrain.elevation(x, y) <= 1.0

    def test_canvas_edges_are_sea_level(self, terrain):
        """Test that the canvas border is at sea level."""
        assert terrain.elevation(0, 150) == 0.0
        assert terrain.elevation(400, 150) == 0.0
        assert terrain.elevation(200, 0) == 0.0
        assert terrain.elevation(200, 300) == 0.0

    def test_same_seed_same_field(self):
        """Test that same seed produces same elevation field."""
        a = TerrainField.from_prng(400, 300, AleaPRNG(1))
        b = TerrainField.from_prng(400, 300, AleaPRNG(1))
        samples = [(x, y) for x in range(25, 400, 50) for y in range(25, 300, 50)]
        assert [a.elevation(x, y) for x, y in samples] == [b.elevation(x, y) for x, y in samples]

    def test_base_distance_zero_at_center(self, terrain):
        """Test base distance at the continent center."""
        shape = terrain.shape
        assert terrain.base_distance(shape.center_x, shape.center_y) == 0.0

    def test_peninsula_shortens_distance(self):
        """Points along a lobe are closer to the continent than points off it."""
        round_shape = ContinentShape(center_x=200, center_y=150, scale_x=1, scale_y=1, rotation=0)
        lobed_shape = ContinentShape(
            center_x=200, center_y=150, scale_x=1, scale_y=1, rotation=0,
            peninsulas=[Peninsula(angle=0.0, length=0.4, width=0.2)],
        )
        plain = TerrainField(400, 300, round_shape, 0.0, 0.0)
        lobed = TerrainField(400, 300, lobed_shape, 0.0, 0.0)

        assert lobed.base_distance(300, 150) < plain.base_distance(300, 150)
        # Opposite side is outside the lobe
        assert lobed.base_distance(100, 150) == pytest.approx(plain.base_distance(100, 150))

    def test_far_from_center_is_flat(self):
        """Test that elevation vanishes far from the continent."""
        shape = ContinentShape(center_x=500, center_y=500, scale_x=0.6, scale_y=0.6, rotation=0)
        terrain = TerrainField(1000, 1000, shape, 10.0, 20.0)
        # base distance > 1.2 gives zero falloff
        assert terrain.elevation(950, 500) == 0.0

    def test_detail_range(self, terrain):
        """Test detail noise range."""
        for x in range(0, 400, 40):
            assert -1.0 <= terrain.detail(x, 100) <= 1.0
