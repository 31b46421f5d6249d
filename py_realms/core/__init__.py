"""
Core world generation functionality.
"""

from .alea_prng import AleaPRNG, AleaState, alea_next, alea_seed
from .biomes import BiomeClassifier, BiomeOptions, BiomeType, ClimateZone
from .boundaries import PolygonMerger, ShapelyPolygonMerger
from .models import Cell, Kingdom, Settlement, SettlementKind, World
from .voronoi_graph import GridConfig, VoronoiGraph, generate_voronoi_graph
from .world_generator import generate_world, world_summary

__all__ = ['AleaPRNG', 'AleaState', 'alea_next', 'alea_seed',
           'BiomeClassifier', 'BiomeOptions', 'BiomeType', 'ClimateZone',
           'PolygonMerger', 'ShapelyPolygonMerger',
           'Cell', 'Kingdom', 'Settlement', 'SettlementKind', 'World',
           'GridConfig', 'VoronoiGraph', 'generate_voronoi_graph',
           'generate_world', 'world_summary']
