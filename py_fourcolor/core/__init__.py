"""
Core map generation and coloring functionality.
"""

from .voronoi_graph import generate_map
from .adjacency import compute_adjacency, validate_adjacency
from .coloring import (ColoringFailure, ColoringResult, estimate_par_value, find_conflicts,
                       greedy_iterations, solve_exact_coloring)
from .freehand import SnapRejection, SnapResult, add_freehand_region, empty_snapshot, remove_region, snap_freehand_path
from .map_model import AdjacencyGraph, AdjacencyInvariantViolation, MapSnapshot, Region
from .alea_prng import AleaPRNG, RandomSource

__all__ = ['generate_map', 'compute_adjacency', 'validate_adjacency',
           'ColoringFailure', 'ColoringResult', 'estimate_par_value', 'find_conflicts',
           'greedy_iterations', 'solve_exact_coloring',
           'SnapRejection', 'SnapResult', 'snap_freehand_path', 'empty_snapshot',
           'add_freehand_region', 'remove_region',
           'AdjacencyGraph', 'AdjacencyInvariantViolation', 'MapSnapshot', 'Region', 'AleaPRNG', 'RandomSource']
