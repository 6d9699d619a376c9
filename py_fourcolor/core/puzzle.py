"""
Puzzle session helpers.

A :class:`Puzzle` bundles a map snapshot with the challenge parameters: the
palette size, the target color and its par value. Coloring operations return
new snapshots and puzzles; nothing here mutates its inputs.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Mapping, Optional, Tuple

import structlog

from ..config.config import settings
from ..config.tolerances import MapTolerances
from .alea_prng import RandomSource
from .coloring import (
    DEFAULT_PALETTE_SIZE,
    ColoringResult,
    estimate_par_value,
    find_conflicts,
    greedy_iterations,
    solve_exact_coloring,
)
from .map_model import ColorIndex, MapSnapshot, RegionId
from .voronoi_graph import generate_map

logger = structlog.get_logger()


class CheckStatus(str, Enum):
    CONFLICTS = "conflicts"
    INCOMPLETE = "incomplete"
    SOLVED = "solved"


@dataclass(frozen=True)
class Puzzle:
    """A map to color, plus the target color challenge."""
    snapshot: MapSnapshot
    palette_size: int
    target_color: ColorIndex
    par_value: int

    def with_snapshot(self, snapshot: MapSnapshot) -> "Puzzle":
        return replace(self, snapshot=snapshot)


@dataclass(frozen=True)
class CheckResult:
    """Verdict on the player's current coloring."""
    status: CheckStatus
    conflicts: List[Tuple[RegionId, RegionId]] = field(default_factory=list)
    uncolored: int = 0
    target_count: int = 0
    par_value: int = 0

    @property
    def beat_par(self) -> bool:
        return self.status is CheckStatus.SOLVED and self.target_count <= self.par_value


def clamp_region_count(count: int) -> int:
    """Clamp a requested region count to the configured bounds."""
    return max(settings.min_region_count, min(settings.max_region_count, int(count)))


def new_puzzle(
    region_count: int,
    rng: RandomSource,
    width: Optional[float] = None,
    height: Optional[float] = None,
    palette_size: Optional[int] = None,
    adjacency_mode: str = "triangulation",
    tolerances: Optional[MapTolerances] = None,
) -> Puzzle:
    """
    Generate a fresh puzzle.

    Args:
        region_count: Requested regions, clamped with :func:`clamp_region_count`
        rng: Random source for the map, the target color and the par estimate
        width: Map width, defaults to ``settings.map_width``
        height: Map height, defaults to ``settings.map_height``
        palette_size: Number of colors, defaults to ``settings.palette_size``
        adjacency_mode: See :func:`generate_map`
        tolerances: Sampler and adjacency settings

    Returns:
        Puzzle with every region uncolored
    """
    width = settings.map_width if width is None else width
    height = settings.map_height if height is None else height
    palette_size = settings.palette_size if palette_size is None else palette_size
    if palette_size <= 0:
        raise ValueError("palette_size must be positive")

    snapshot = generate_map(
        clamp_region_count(region_count),
        width,
        height,
        rng,
        adjacency_mode=adjacency_mode,
        tolerances=tolerances,
        strict=settings.debug,
    )
    target_color = rng.randint(palette_size)
    par_value = estimate_par_value(
        snapshot.regions,
        snapshot.graph,
        target_color,
        greedy_iterations(len(snapshot.regions)),
        rng,
        palette_size=palette_size,
    )

    logger.info("Puzzle created",
                regions=len(snapshot.regions), target_color=target_color,
                par=par_value, palette_size=palette_size)
    return Puzzle(
        snapshot=snapshot,
        palette_size=palette_size,
        target_color=target_color,
        par_value=par_value,
    )


def _check_color(color: ColorIndex, palette_size: int) -> None:
    if not 0 <= color < palette_size:
        raise ValueError(f"Color {color} outside palette of {palette_size}")


def recolor(snapshot: MapSnapshot, region_id: RegionId, color: ColorIndex,
            palette_size: int = DEFAULT_PALETTE_SIZE) -> MapSnapshot:
    """Return a snapshot with ``region_id`` painted ``color``."""
    _check_color(color, palette_size)
    if region_id not in snapshot.region_by_id():
        raise ValueError(f"Unknown region id {region_id}")
    return snapshot.with_regions(
        r.with_color(color) if r.id == region_id else r for r in snapshot.regions
    )


def clear_color(snapshot: MapSnapshot, region_id: RegionId) -> MapSnapshot:
    if region_id not in snapshot.region_by_id():
        raise ValueError(f"Unknown region id {region_id}")
    return snapshot.with_regions(
        r.with_color(None) if r.id == region_id else r for r in snapshot.regions
    )


def reset_colors(snapshot: MapSnapshot) -> MapSnapshot:
    return snapshot.with_regions(r.with_color(None) for r in snapshot.regions)


def apply_coloring(snapshot: MapSnapshot, mapping: Mapping[RegionId, ColorIndex]) -> MapSnapshot:
    """Paint every region listed in ``mapping``; other regions keep their color."""
    known = snapshot.region_by_id()
    unknown = [rid for rid in mapping if rid not in known]
    if unknown:
        raise ValueError(f"Unknown region ids {sorted(unknown)}")
    return snapshot.with_regions(
        r.with_color(mapping[r.id]) if r.id in mapping else r for r in snapshot.regions
    )


def check_solution(puzzle: Puzzle) -> CheckResult:
    """
    Judge the current coloring.

    Conflicts take precedence over missing colors. A conflict-free, complete
    coloring is ``SOLVED``; it beats par when the target color is used no more
    often than the par value.
    """
    snapshot = puzzle.snapshot
    conflicts = find_conflicts(snapshot.regions, snapshot.graph)
    uncolored = sum(1 for r in snapshot.regions if r.color is None)
    target_count = sum(1 for r in snapshot.regions if r.color == puzzle.target_color)

    for a, b in conflicts:
        logger.info("Coloring conflict", region_a=a, region_b=b,
                    shared_length=snapshot.graph.shared_length(a, b))

    if conflicts:
        status = CheckStatus.CONFLICTS
    elif uncolored:
        status = CheckStatus.INCOMPLETE
    else:
        status = CheckStatus.SOLVED

    return CheckResult(
        status=status,
        conflicts=conflicts,
        uncolored=uncolored,
        target_count=target_count,
        par_value=puzzle.par_value,
    )


def auto_color(puzzle: Puzzle, node_budget: Optional[int] = None) -> Tuple[Puzzle, ColoringResult]:
    """Run the exact solver and apply its coloring when it succeeds."""
    snapshot = puzzle.snapshot
    result = solve_exact_coloring(
        snapshot.regions, snapshot.graph,
        palette_size=puzzle.palette_size, node_budget=node_budget,
    )
    if not result.success:
        logger.warning("Auto color failed", reason=result.failure.value)
        return puzzle, result
    return puzzle.with_snapshot(apply_coloring(snapshot, result.coloring)), result
