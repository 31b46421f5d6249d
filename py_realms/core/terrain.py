"""
Continent mask and elevation field.

Elevation is a product of three-octave simplex noise and a radial falloff
around a randomly shaped continent (anisotropic scale, rotation and a few
peninsula lobes), faded to zero near the canvas border so that every map
is an island continent surrounded by ocean.
"""

import math
from dataclasses import dataclass, field
from typing import List

import structlog
from noise import snoise2

from .alea_prng import AleaPRNG

logger = structlog.get_logger()

# Noise offsets are drawn in [0, NOISE_OFFSET_RANGE) so different seeds sample
# unrelated regions of the same noise field.
NOISE_OFFSET_RANGE = 1000.0


@dataclass(frozen=True)
class Peninsula:
    """One lobe extending the continent along a direction."""

    angle: float
    length: float
    width: float


@dataclass(frozen=True)
class ContinentShape:
    """Random parameters of the continent mask."""

    center_x: float
    center_y: float
    scale_x: float
    scale_y: float
    rotation: float
    peninsulas: List[Peninsula] = field(default_factory=list)


def generate_continent_shape(width: float, height: float, prng: AleaPRNG) -> ContinentShape:
    """
    Draw the continent mask parameters.

    Args:
        width: Canvas width
        height: Canvas height
        prng: Generator shared with the rest of the pipeline

    Returns:
        ContinentShape
    """
    offset_x = (prng.random() - 0.5) * width * 0.15
    offset_y = (prng.random() - 0.5) * height * 0.15

    aspect_type = prng.random()
    if aspect_type < 0.3:
        # Wide
        scale_x = 1.1 + prng.random() * 0.4
        scale_y = 0.6 + prng.random() * 0.3
    elif aspect_type < 0.6:
        # Tall
        scale_x = 0.6 + prng.random() * 0.3
        scale_y = 1.1 + prng.random() * 0.4
    else:
        base = 0.85 + prng.random() * 0.3
        scale_x = base + (prng.random() - 0.5) * 0.2
        scale_y = base + (prng.random() - 0.5) * 0.2

    rotation = prng.random() * math.pi * 2

    num_peninsulas = 1 + int(prng.random() * 4)
    peninsulas = []
    for _ in range(num_peninsulas):
        peninsulas.append(
            Peninsula(
                angle=prng.random() * math.pi * 2,
                length=0.15 + prng.random() * 0.25,
                width=0.1 + prng.random() * 0.15,
            )
        )

    shape = ContinentShape(
        center_x=width / 2 + offset_x,
        center_y=height / 2 + offset_y,
        scale_x=scale_x,
        scale_y=scale_y,
        rotation=rotation,
        peninsulas=peninsulas,
    )
    logger.debug(
        "Continent shape drawn",
        scale_x=round(scale_x, 3),
        scale_y=round(scale_y, 3),
        peninsulas=num_peninsulas,
    )
    return shape


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [-pi, pi]."""
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle < -math.pi:
        angle += 2 * math.pi
    return angle


class TerrainField:
    """
    Scalar elevation in [0, 1] for any point of the canvas.

    The field is a pure function of the point and the parameters drawn at
    construction, so cells can be evaluated in any order.
    """

    def __init__(
        self,
        width: float,
        height: float,
        shape: ContinentShape,
        offset_x: float,
        offset_y: float,
        edge_margin: float = 50.0,
    ):
        self.width = width
        self.height = height
        self.shape = shape
        self.offset_x = offset_x
        self.offset_y = offset_y
        self.edge_margin = edge_margin

    @classmethod
    def from_prng(cls, width: float, height: float, prng: AleaPRNG) -> "TerrainField":
        """Draw noise offsets and a continent shape from the generator."""
        offset_x = prng.random() * NOISE_OFFSET_RANGE
        offset_y = prng.random() * NOISE_OFFSET_RANGE
        shape = generate_continent_shape(width, height, prng)
        return cls(width, height, shape, offset_x, offset_y)

    def noise(self, x: float, y: float) -> float:
        """Simplex noise in roughly [-1, 1] at noise-space coordinates."""
        return snoise2(x + self.offset_x, y + self.offset_y)

    def base_distance(self, x: float, y: float) -> float:
        """Normalized distance from the continent center, shortened along peninsulas."""
        shape = self.shape
        dx = x - shape.center_x
        dy = y - shape.center_y

        cos = math.cos(-shape.rotation)
        sin = math.sin(-shape.rotation)
        rdx = dx * cos - dy * sin
        rdy = dx * sin + dy * cos

        sdx = rdx / (shape.scale_x * self.width * 0.35)
        sdy = rdy / (shape.scale_y * self.height * 0.35)
        base_dist = math.sqrt(sdx * sdx + sdy * sdy)

        point_angle = math.atan2(dy, dx)
        for peninsula in shape.peninsulas:
            angle_diff = abs(normalize_angle(point_angle - peninsula.angle))
            spread = peninsula.width * math.pi
            if angle_diff < spread:
                influence = 1 - angle_diff / spread
                extension = peninsula.length * influence
                base_dist *= 1 - extension * 0.8

        return base_dist

    def elevation(self, x: float, y: float) -> float:
        """Elevation in [0, 1] at a canvas point."""
        base_dist = self.base_distance(x, y)

        nx = (x / self.width - 0.5) * 2
        ny = (y / self.height - 0.5) * 2
        n1 = self.noise(nx * 2, ny * 2)
        n2 = self.noise(nx * 4, ny * 4) * 0.5
        n3 = self.noise(nx * 8, ny * 8) * 0.25
        n = (n1 + n2 + n3) / 1.75

        elevation = (n + 1) / 2
        falloff = 1 - math.pow(min(base_dist, 1.2), 1.8)
        elevation *= max(0.0, falloff)

        margin = self.edge_margin
        edge_falloff = min(
            x / margin,
            y / margin,
            (self.width - x) / margin,
            (self.height - y) / margin,
            1.0,
        )
        elevation *= max(0.0, min(1.0, edge_falloff))

        return min(1.0, max(0.0, elevation))

    def detail(self, x: float, y: float) -> float:
        """High-frequency noise used to break ties between neighboring biomes."""
        nx = (x / self.width - 0.5) * 2
        ny = (y / self.height - 0.5) * 2
        return self.noise(nx * 16 + 57.0, ny * 16 - 31.0)
