"""Voronoi tessellation of the canvas into cells."""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import Voronoi, cKDTree

from .alea_prng import AleaPRNG
from .models import Cell, Point

logger = structlog.get_logger()


class GridConfig(NamedTuple):
    """Configuration for tessellation."""
    width: float
    height: float
    num_points: int
    relaxation_passes: int = 2


@dataclass
class VoronoiGraph:
    """Bounded Voronoi partition of the canvas.

    Every site owns exactly one convex polygon clipped to the canvas box.
    Adjacency comes straight from the ridges shared by two sites, so it is
    symmetric by construction.
    """
    width: float
    height: float
    points: np.ndarray                          # sites, shape (n, 2)
    cell_polygons: List[List[Tuple[float, float]]]  # ordered vertex loop per site
    cell_neighbors: List[List[int]]             # sorted neighbor ids per site
    cell_border_flags: np.ndarray               # 1 if the cell touches the canvas edge

    def to_cells(self) -> List[Cell]:
        """Cell records with geometry and neighbors; terrain and owner unset."""
        cells = []
        for i in range(len(self.points)):
            cells.append(
                Cell(
                    id=i,
                    center=Point(x=float(self.points[i][0]), y=float(self.points[i][1])),
                    polygon=self.cell_polygons[i],
                    neighbors=self.cell_neighbors[i],
                    border=bool(self.cell_border_flags[i]),
                )
            )
        return cells


def sample_points(width: float, height: float, num_points: int, prng: AleaPRNG) -> np.ndarray:
    """
    Sample uniform random sites on the canvas.

    Args:
        width: Canvas width
        height: Canvas height
        num_points: Number of sites
        prng: Generator shared with the rest of the pipeline

    Returns:
        Array of [x, y] point coordinates
    """
    points = np.empty((num_points, 2), dtype=np.float64)
    for i in range(num_points):
        points[i, 0] = prng.random() * width
        points[i, 1] = prng.random() * height
    return points


def get_mirrored_points(points: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Reflect sites across the four canvas edges.

    The Voronoi diagram of the sites plus their reflections has every
    original cell bounded and clipped exactly to the canvas box. The
    original sites come first, so indices below ``len(points)`` are real.
    """
    x = points[:, 0]
    y = points[:, 1]
    left = np.column_stack([-x, y])
    right = np.column_stack([2 * width - x, y])
    top = np.column_stack([x, -y])
    bottom = np.column_stack([x, 2 * height - y])
    return np.vstack([points, left, right, top, bottom])


def compute_polygon_centroid(vertices: np.ndarray) -> np.ndarray:
    """Compute the centroid of a polygon.

    Args:
        vertices: Array of [x, y] vertex coordinates

    Returns:
        [x, y] centroid coordinates
    """
    if len(vertices) < 3:
        return np.mean(vertices, axis=0)

    # Shoelace formula
    n = len(vertices)
    area = 0.0
    cx = 0.0
    cy = 0.0

    for i in range(n):
        j = (i + 1) % n
        a = vertices[i][0] * vertices[j][1] - vertices[j][0] * vertices[i][1]
        area += a
        cx += (vertices[i][0] + vertices[j][0]) * a
        cy += (vertices[i][1] + vertices[j][1]) * a

    if abs(area) < 1e-10:
        return np.mean(vertices, axis=0)

    area *= 0.5
    cx /= (6.0 * area)
    cy /= (6.0 * area)

    return np.array([cx, cy])


def build_cell_polygon(vor: Voronoi, site_idx: int, width: float, height: float) -> List[Tuple[float, float]]:
    """
    Ordered polygon of one site, clipped to the canvas.

    Returns an empty list for degenerate regions (unbounded or fewer than
    three distinct vertices).
    """
    region_idx = vor.point_region[site_idx]
    if region_idx == -1:
        return []
    region = vor.regions[region_idx]
    if not region or -1 in region or len(region) < 3:
        return []

    vertices = vor.vertices[region]
    vertices = np.column_stack([
        np.clip(vertices[:, 0], 0, width),
        np.clip(vertices[:, 1], 0, height),
    ])

    # Cells are convex, so sorting by angle around the site gives the loop
    site = vor.points[site_idx]
    angles = np.arctan2(vertices[:, 1] - site[1], vertices[:, 0] - site[0])
    vertices = vertices[np.argsort(angles, kind="stable")]

    polygon: List[Tuple[float, float]] = []
    for vx, vy in vertices:
        vertex = (float(vx), float(vy))
        if polygon and abs(polygon[-1][0] - vertex[0]) < 1e-9 and abs(polygon[-1][1] - vertex[1]) < 1e-9:
            continue
        polygon.append(vertex)
    if len(polygon) > 1 and abs(polygon[0][0] - polygon[-1][0]) < 1e-9 and abs(polygon[0][1] - polygon[-1][1]) < 1e-9:
        polygon.pop()

    if len(polygon) < 3:
        return []
    return polygon


def build_cell_connectivity(vor: Voronoi, n_sites: int) -> Tuple[List[List[int]], np.ndarray]:
    """
    Build cell adjacency from the ridges of the mirrored diagram.

    Args:
        vor: scipy Voronoi diagram of sites plus reflections
        n_sites: Number of real sites (reflections excluded)

    Returns:
        Tuple of (cell_neighbors, border_flags)
    """
    logger.info("Building cell connectivity", sites=n_sites)
    cell_neighbors = [set() for _ in range(n_sites)]
    border_flags = np.zeros(n_sites, dtype=np.uint8)

    for p1, p2 in vor.ridge_points:
        if p1 < n_sites and p2 < n_sites:
            cell_neighbors[p1].add(int(p2))
            cell_neighbors[p2].add(int(p1))
        # A ridge shared with a reflection lies on the canvas edge
        elif p1 < n_sites:
            border_flags[p1] = 1
        elif p2 < n_sites:
            border_flags[p2] = 1

    return [sorted(neighbors) for neighbors in cell_neighbors], border_flags


def relax_points(points: np.ndarray, width: float, height: float, n_iterations: int = 2) -> np.ndarray:
    """Apply Lloyd's relaxation to improve point distribution.

    Moves each point to the centroid of its Voronoi cell, avoiding
    needle-thin cells.

    Args:
        points: Sites to relax
        width: Map width
        height: Map height
        n_iterations: Number of relaxation iterations

    Returns:
        Relaxed point coordinates
    """
    logger.info("Starting Lloyd's relaxation", iterations=n_iterations)

    points = points.copy()
    n_points = len(points)

    for iteration in range(n_iterations):
        vor = Voronoi(get_mirrored_points(points, width, height))

        for i in range(n_points):
            polygon = build_cell_polygon(vor, i, width, height)
            if not polygon:
                continue

            centroid = compute_polygon_centroid(np.array(polygon))

            points[i][0] = np.clip(centroid[0], 0, width)
            points[i][1] = np.clip(centroid[1], 0, height)

        logger.debug("Relaxation iteration complete", iteration=iteration + 1)

    return points


def generate_voronoi_graph(config: GridConfig, prng: AleaPRNG) -> VoronoiGraph:
    """
    Generate the tessellation of the canvas.

    Samples sites, relaxes them, computes the final bounded Voronoi
    diagram and derives polygons and adjacency.

    Args:
        config: Grid configuration
        prng: Generator shared with the rest of the pipeline

    Returns:
        Complete Voronoi graph
    """
    logger.info("Generating Voronoi graph",
                width=config.width, height=config.height,
                num_points=config.num_points)

    points = sample_points(config.width, config.height, config.num_points, prng)
    if config.relaxation_passes > 0:
        points = relax_points(points, config.width, config.height, config.relaxation_passes)

    vor = Voronoi(get_mirrored_points(points, config.width, config.height))
    logger.info("Voronoi diagram calculated",
                vertices=len(vor.vertices), ridges=len(vor.ridge_points))

    cell_neighbors, border_flags = build_cell_connectivity(vor, len(points))
    cell_polygons = [
        build_cell_polygon(vor, i, config.width, config.height) for i in range(len(points))
    ]

    degenerate = sum(1 for polygon in cell_polygons if not polygon)
    if degenerate:
        logger.warning("Degenerate cells in tessellation", count=degenerate)

    return VoronoiGraph(
        width=config.width,
        height=config.height,
        points=points,
        cell_polygons=cell_polygons,
        cell_neighbors=cell_neighbors,
        cell_border_flags=border_flags,
    )


class CellLocator:
    """
    Nearest-cell lookup over a fixed set of cell sites.

    The KD-tree is built once; sites may be a subset of the graph, in which
    case ``cell_ids`` maps tree rows back to cell ids.
    """

    def __init__(self, points, cell_ids: Optional[List[int]] = None):
        self.points = np.asarray(points, dtype=float).reshape(-1, 2)
        if cell_ids is None:
            self.cell_ids = np.arange(len(self.points))
        else:
            self.cell_ids = np.asarray(cell_ids, dtype=int)
        self.tree = cKDTree(self.points) if len(self.points) else None

    def __len__(self) -> int:
        return len(self.points)

    def nearest(self, x: float, y: float, max_distance: Optional[float] = None) -> Optional[int]:
        """Cell id closest to a coordinate, or None if there is none within ``max_distance``."""
        if self.tree is None:
            return None
        distance, idx = self.tree.query([x, y], k=1)
        if max_distance is not None and distance > max_distance:
            return None
        return int(self.cell_ids[idx])


def find_nearest_cell(
    x: float, y: float, points: np.ndarray, max_distance: Optional[float] = None
) -> Optional[int]:
    """
    Find the cell whose site is closest to a coordinate.

    Args:
        x, y: Coordinates to find
        points: Cell sites, shape (n, 2)
        max_distance: Reject matches farther than this

    Returns:
        Cell index, or None if there are no cells or the match is too far
    """
    return CellLocator(points).nearest(x, y, max_distance)
