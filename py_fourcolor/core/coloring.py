"""
Coloring of the region adjacency graph.

Two algorithms with different contracts:

- :func:`estimate_par_value` is a randomized greedy heuristic. It produces
  the "par" for the target color (how few regions need that color). The
  number is a challenge metric and is not binding.
- :func:`solve_exact_coloring` is a DSATUR backtracking search. It is binding:
  it either returns a complete conflict-free assignment, proves that none
  exists, or reports that its node budget ran out.

Neither algorithm assumes planarity. Freehand maps can produce non-planar
adjacency graphs, and the solver reports those as infeasible.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

import structlog

from .alea_prng import RandomSource
from .map_model import AdjacencyGraph, ColorIndex, Region, RegionId

logger = structlog.get_logger()

DEFAULT_PALETTE_SIZE = 4


class ColoringFailure(str, Enum):
    """Why the exact solver did not return an assignment."""

    INFEASIBLE = "infeasible"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class ColoringResult:
    """Outcome of :func:`solve_exact_coloring`."""

    success: bool
    coloring: Dict[RegionId, ColorIndex] = field(default_factory=dict)
    failure: Optional[ColoringFailure] = None
    nodes_explored: int = 0

    def __bool__(self) -> bool:
        return self.success


def find_conflicts(regions: Sequence[Region], graph: AdjacencyGraph) -> List[Tuple[RegionId, RegionId]]:
    """
    Adjacent region pairs that carry the same color.

    Uncolored regions never conflict. Each pair is reported once as
    ``(a, b)`` with ``a < b``, in sorted order.
    """
    colors = {r.id: r.color for r in regions}
    conflicts = []
    for region_id, neighbors in graph.neighbors.items():
        color = colors.get(region_id)
        if color is None:
            continue
        for neighbor_id in neighbors:
            if region_id < neighbor_id and colors.get(neighbor_id) == color:
                conflicts.append((region_id, neighbor_id))
    return sorted(conflicts)


def greedy_iterations(region_count: int) -> int:
    """Estimator trials for a map size; smaller maps get more trials."""
    if region_count <= 80:
        return 60
    if region_count <= 140:
        return 40
    return 25


def _greedy_pass(
    order: Sequence[RegionId],
    graph: AdjacencyGraph,
    target_color: ColorIndex,
    palette_size: int,
) -> Dict[RegionId, ColorIndex]:
    colors: Dict[RegionId, ColorIndex] = {}
    for region_id in order:
        used = {colors[n] for n in graph.neighbors_of(region_id) if n in colors}
        available = [c for c in range(palette_size) if c not in used]
        if not available:
            # Relaxation: the estimator does not have to be conflict-free
            colors[region_id] = target_color
            continue
        # Stable sort keeps ascending order and moves the target color last
        available.sort(key=lambda c: c == target_color)
        colors[region_id] = available[0]
    return colors


def estimate_par_value(
    regions: Sequence[Region],
    graph: AdjacencyGraph,
    target_color: ColorIndex,
    iterations: int,
    rng: RandomSource,
    palette_size: int = DEFAULT_PALETTE_SIZE,
) -> int:
    """
    Estimate how few regions need ``target_color``.

    Each iteration shuffles the region order and runs a greedy pass that
    picks the smallest color unused by already-colored neighbors, avoiding the
    target color while any other color is free. The smallest target usage over
    all iterations is returned.

    Args:
        regions: Regions of the map
        graph: Their adjacency
        target_color: Color whose usage is minimized
        iterations: Number of shuffled trials (see :func:`greedy_iterations`)
        rng: Random source for the shuffles
        palette_size: Number of colors

    Returns:
        Minimum target color count seen, 0 for an empty map
    """
    if not regions or iterations <= 0:
        return 0

    region_ids = [r.id for r in regions]
    best = len(region_ids)
    for _ in range(iterations):
        order = list(region_ids)
        rng.shuffle(order)
        colors = _greedy_pass(order, graph, target_color, palette_size)
        count = sum(1 for c in colors.values() if c == target_color)
        best = min(best, count)

    logger.debug("Par value estimated",
                 regions=len(region_ids), iterations=iterations,
                 target_color=target_color, par=best)
    return best


class _DsaturSearch:
    """Explicit-stack DSATUR backtracking over a fixed region set."""

    def __init__(self, region_ids: Sequence[RegionId], graph: AdjacencyGraph, palette_size: int):
        self.region_ids = sorted(region_ids)
        id_set = set(self.region_ids)
        # Neighbors outside the region list are ignored
        self.neighbors: Dict[RegionId, Tuple[RegionId, ...]] = {
            rid: tuple(n for n in graph.neighbors_of(rid) if n in id_set and n != rid)
            for rid in self.region_ids
        }
        self.degree = {rid: len(nbrs) for rid, nbrs in self.neighbors.items()}
        self.palette_size = palette_size
        self.colors: Dict[RegionId, ColorIndex] = {}

    def used_colors(self, region_id: RegionId) -> Set[ColorIndex]:
        return {self.colors[n] for n in self.neighbors[region_id] if n in self.colors}

    def select_next(self) -> RegionId:
        """Highest saturation, then highest degree, then lowest id."""
        best = None
        best_key = None
        for rid in self.region_ids:
            if rid in self.colors:
                continue
            key = (len(self.used_colors(rid)), self.degree[rid])
            if best_key is None or key > best_key:
                best, best_key = rid, key
        return best

    def candidates(self, region_id: RegionId) -> Iterator[ColorIndex]:
        used = self.used_colors(region_id)
        return iter([c for c in range(self.palette_size) if c not in used])

    def run(self, node_budget: Optional[int]) -> ColoringResult:
        nodes = 0
        stack: List[Tuple[RegionId, Iterator[ColorIndex]]] = []

        while len(self.colors) < len(self.region_ids):
            region_id = self.select_next()
            stack.append((region_id, self.candidates(region_id)))

            # Advance the deepest frame that still has a color to try
            while stack:
                top_id, choices = stack[-1]
                self.colors.pop(top_id, None)
                color = next(choices, None)
                if color is not None:
                    nodes += 1
                    if node_budget is not None and nodes > node_budget:
                        return ColoringResult(
                            success=False,
                            failure=ColoringFailure.BUDGET_EXHAUSTED,
                            nodes_explored=nodes,
                        )
                    self.colors[top_id] = color
                    break
                stack.pop()
            else:
                return ColoringResult(
                    success=False,
                    failure=ColoringFailure.INFEASIBLE,
                    nodes_explored=nodes,
                )

        return ColoringResult(success=True, coloring=dict(self.colors), nodes_explored=nodes)


def solve_exact_coloring(
    regions: Sequence[Region],
    graph: AdjacencyGraph,
    palette_size: int = DEFAULT_PALETTE_SIZE,
    node_budget: Optional[int] = None,
) -> ColoringResult:
    """
    Find a conflict-free coloring with ``palette_size`` colors.

    DSATUR ordering: the next region is the uncolored one whose neighbors
    already use the most distinct colors, ties broken by degree and then by the
    lowest region id, so the search is deterministic. Colors are tried in
    ascending order and undone on failure.

    Args:
        regions: Regions to color (existing colors are ignored)
        graph: Their adjacency
        palette_size: Number of available colors
        node_budget: Maximum tentative assignments before giving up with
            ``BUDGET_EXHAUSTED``; ``None`` searches exhaustively

    Returns:
        ColoringResult with the mapping on success, or the failure reason
    """
    if palette_size < 0:
        raise ValueError("palette_size must be >= 0")

    region_ids = [r.id for r in regions]
    if len(set(region_ids)) != len(region_ids):
        raise ValueError("Region ids must be unique")

    search = _DsaturSearch(region_ids, graph, palette_size)
    result = search.run(node_budget)

    logger.info("Exact coloring finished",
                regions=len(regions), palette_size=palette_size,
                success=result.success,
                failure=result.failure.value if result.failure else None,
                nodes=result.nodes_explored)
    return result
