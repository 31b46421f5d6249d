"""
Decorative landmasses beyond the playable continent.

Purely cosmetic: these rings are never part of the cell graph. They are
drawn from the same generator so a seed always yields the same horizon.
"""

import math
from typing import List, Tuple

import structlog

from .alea_prng import AleaPRNG
from .models import DistantLand, Point
from .terrain import TerrainField, normalize_angle

logger = structlog.get_logger()

# Ring resolution and radial noise per landmass size
LANDMASS_STEPS = {"major": 24, "island": 16, "tiny": 10}
LANDMASS_VARIATION = {"major": 0.3, "island": 0.25, "tiny": 0.2}


def generate_landmass_ring(
    cx: float,
    cy: float,
    base_radius: float,
    prng: AleaPRNG,
    terrain: TerrainField,
    kind: str,
) -> List[Tuple[float, float]]:
    """Closed ring of an elongated, noise-perturbed blob."""
    steps = LANDMASS_STEPS[kind]
    if kind == "major":
        elongation = 0.6 + prng.random() * 0.8
    else:
        elongation = 0.8 + prng.random() * 0.4
    elong_angle = prng.random() * math.pi

    ring = []
    for i in range(steps + 1):
        theta = (i / steps) * math.pi * 2
        cos = math.cos(theta - elong_angle)
        sin = math.sin(theta - elong_angle)
        stretched = base_radius * math.sqrt(1 / (cos * cos / (elongation * elongation) + sin * sin))

        noise_val = terrain.noise(cx / 200 + math.cos(theta) * 2, cy / 200 + math.sin(theta) * 2)
        r = stretched * (1 + noise_val * LANDMASS_VARIATION[kind])
        ring.append((cx + math.cos(theta) * r, cy + math.sin(theta) * r))
    return ring


def generate_distant_lands(
    continent_center: Point,
    continent_width: float,
    continent_height: float,
    prng: AleaPRNG,
    terrain: TerrainField,
) -> List[DistantLand]:
    """
    Major lands, their satellite islands, and scattered islets.

    Args:
        continent_center: Land centroid of the continent
        continent_width: Width of the continent bounds
        continent_height: Height of the continent bounds
        prng: Generator shared with the rest of the pipeline
        terrain: Source of the coastline noise

    Returns:
        List of DistantLand
    """
    lands: List[DistantLand] = []
    continent_radius = max(continent_width, continent_height) / 2
    min_distance = continent_radius + 400
    max_distance = continent_radius + 1000

    num_major = 3 + int(prng.random() * 3)
    used_angles: List[float] = []

    for i in range(num_major):
        attempts = 0
        while True:
            angle = prng.random() * math.pi * 2
            attempts += 1
            crowded = any(abs(normalize_angle(a - angle)) < math.pi / 4 for a in used_angles)
            if attempts >= 20 or not crowded:
                break
        used_angles.append(angle)

        distance = min_distance + prng.random() * (max_distance - min_distance)
        cx = continent_center.x + math.cos(angle) * distance
        cy = continent_center.y + math.sin(angle) * distance
        base_size = 150 * (0.5 + prng.random() * 1.5)

        lands.append(
            DistantLand(
                id=f"distant-major-{i}",
                position=Point(x=cx, y=cy),
                ring=generate_landmass_ring(cx, cy, base_size, prng, terrain, "major"),
            )
        )

        if prng.random() > 0.4:
            num_satellites = 1 + int(prng.random() * 3)
            for j in range(num_satellites):
                sat_angle = angle + (prng.random() - 0.5) * math.pi / 2
                sat_dist = distance + (prng.random() - 0.3) * 200
                sx = continent_center.x + math.cos(sat_angle) * sat_dist
                sy = continent_center.y + math.sin(sat_angle) * sat_dist
                sat_size = 30 + prng.random() * 60
                lands.append(
                    DistantLand(
                        id=f"distant-island-{i}-{j}",
                        position=Point(x=sx, y=sy),
                        ring=generate_landmass_ring(sx, sy, sat_size, prng, terrain, "island"),
                    )
                )

    num_scattered = 5 + int(prng.random() * 8)
    for i in range(num_scattered):
        angle = prng.random() * math.pi * 2
        distance = min_distance * 0.9 + prng.random() * (max_distance * 1.2 - min_distance * 0.9)
        ix = continent_center.x + math.cos(angle) * distance
        iy = continent_center.y + math.sin(angle) * distance
        size = 15 + prng.random() * 40
        lands.append(
            DistantLand(
                id=f"distant-scatter-{i}",
                position=Point(x=ix, y=iy),
                ring=generate_landmass_ring(ix, iy, size, prng, terrain, "tiny"),
            )
        )

    logger.info("Distant lands generated", count=len(lands))
    return lands
