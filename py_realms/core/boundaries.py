"""
Boundary resolution: merging cell polygons into territory outlines.

The merge is a pluggable capability. ``ShapelyPolygonMerger`` is the
default; any object with a ``merge(polygons)`` method returning a shapely
geometry can replace it. Whatever the implementation, degenerate inputs
and failed union steps are skipped so the caller always gets an outline.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import structlog
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from .biomes import BiomeType
from .models import Cell

logger = structlog.get_logger()

Ring = Sequence[Tuple[float, float]]


class PolygonMerger(Protocol):
    """Merges a set of polygons into one (multi)polygon outline."""

    def merge(self, polygons: Sequence[Ring]) -> BaseGeometry:
        ...


def to_polygon(ring: Ring) -> Optional[Polygon]:
    """Shapely polygon for a vertex loop, or None if it is degenerate."""
    if len(ring) < 3:
        return None
    try:
        polygon = Polygon(ring)
    except (ValueError, GEOSException):
        return None
    if polygon.is_empty or not polygon.is_valid or polygon.area <= 0:
        return None
    return polygon


class ShapelyPolygonMerger:
    """Union of cell polygons via shapely."""

    def merge(self, polygons: Sequence[Ring]) -> BaseGeometry:
        shapes = []
        for index, ring in enumerate(polygons):
            polygon = to_polygon(ring)
            if polygon is None:
                logger.debug("Skipping degenerate polygon", index=index, vertices=len(ring))
                continue
            shapes.append(polygon)

        if not shapes:
            return MultiPolygon()

        try:
            return unary_union(shapes)
        except GEOSException as e:
            logger.warning("Bulk union failed, merging incrementally", error=str(e))
            return self._merge_incrementally(shapes)

    @staticmethod
    def _merge_incrementally(shapes: List[Polygon]) -> BaseGeometry:
        merged: BaseGeometry = shapes[0]
        for index, shape in enumerate(shapes[1:], start=1):
            try:
                merged = merged.union(shape)
            except GEOSException as e:
                logger.warning("Skipping polygon in union", index=index, error=str(e))
        return merged


DEFAULT_MERGER = ShapelyPolygonMerger()


def merge_cells(
    cell_ids: Iterable[int], cells: Sequence[Cell], merger: Optional[PolygonMerger] = None
) -> BaseGeometry:
    """
    Outline of a set of cells.

    Args:
        cell_ids: Cells to merge
        cells: All cells of the world, indexed by id
        merger: Merge implementation, shapely by default

    Returns:
        Merged geometry; empty MultiPolygon when no cell has a usable polygon
    """
    merger = merger or DEFAULT_MERGER
    rings = []
    for cell_id in cell_ids:
        if 0 <= cell_id < len(cells):
            rings.append(cells[cell_id].polygon)
    return merger.merge(rings)


def compute_kingdom_outline(
    kingdom_id: int, cells: Sequence[Cell], merger: Optional[PolygonMerger] = None
) -> BaseGeometry:
    """Outline of every cell currently owned by a kingdom."""
    owned = [cell.id for cell in cells if cell.kingdom_id == kingdom_id]
    return merge_cells(owned, cells, merger)


def compute_coastline(cells: Sequence[Cell], merger: Optional[PolygonMerger] = None) -> BaseGeometry:
    """Outline of all land."""
    logger.info("Merging coastline")
    return merge_cells((cell.id for cell in cells if not cell.is_water), cells, merger)


def compute_biome_outlines(
    cells: Sequence[Cell],
    biomes: Sequence[BiomeType] = (BiomeType.HILLS, BiomeType.FOREST, BiomeType.SNOW),
    merger: Optional[PolygonMerger] = None,
) -> Dict[BiomeType, BaseGeometry]:
    """Outline per biome, for the biomes that occur at all."""
    outlines = {}
    for biome in biomes:
        ids = [cell.id for cell in cells if cell.biome == biome]
        if ids:
            outlines[biome] = merge_cells(ids, cells, merger)
    return outlines


def iter_polygons(geometry: Optional[BaseGeometry]) -> List[Polygon]:
    """Flatten a polygon, multipolygon or collection into polygons."""
    if geometry is None or geometry.is_empty:
        return []
    if isinstance(geometry, Polygon):
        return [geometry]
    if hasattr(geometry, "geoms"):
        polygons = []
        for part in geometry.geoms:
            polygons.extend(iter_polygons(part))
        return polygons
    return []


def _ring_path(coords) -> str:
    points = list(coords)
    # Shapely closes rings by repeating the first vertex
    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]
    return "M " + " L ".join(f"{x:.1f},{y:.1f}" for x, y in points) + " Z"


def outline_to_svg_path(geometry: Optional[BaseGeometry]) -> str:
    """SVG path data for an outline, holes included."""
    parts = []
    for polygon in iter_polygons(geometry):
        parts.append(_ring_path(polygon.exterior.coords))
        for interior in polygon.interiors:
            parts.append(_ring_path(interior.coords))
    return " ".join(parts)
