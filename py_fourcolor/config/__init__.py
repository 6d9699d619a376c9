"""
Configuration modules for map generation and coloring.
"""

from .config import Settings, settings
from .tolerances import (
    AdjacencyTolerances,
    DEFAULT_TOLERANCES,
    GeometryTolerances,
    MapTolerances,
    SamplerSettings,
    SnapSettings,
)

__all__ = [
    'Settings', 'settings', 'MapTolerances', 'DEFAULT_TOLERANCES',
    'GeometryTolerances', 'SamplerSettings', 'AdjacencyTolerances', 'SnapSettings',
]
