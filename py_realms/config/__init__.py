"""
Configuration modules for world generation and simulation.
"""

from .settings import Settings, settings
from .world_config import ConflictOptions, InitialStateOptions, WorldGenConfig

__all__ = ['Settings', 'settings', 'WorldGenConfig', 'ConflictOptions', 'InitialStateOptions']
