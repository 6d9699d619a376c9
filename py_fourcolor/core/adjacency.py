"""
Geometric adjacency detection for arbitrary region polygons.

Used when regions did not all come out of one triangulation (for example a
custom map built from freehand strokes). Two passes:

1. Quantized edge matching. Every edge endpoint is snapped to a grid of
   ``quantization_epsilon`` and edges are grouped by their
   orientation-independent key. Regions contributing to the same bucket are
   neighbors when the shorter of the two edges exceeds ``min_shared_length``.
2. Collinear overlap matching. Region pairs not matched in pass 1 are compared
   edge by edge with :func:`collinear_overlap_length`, which catches snapped
   edges that cover only part of an existing edge.

Quantization is an approximation. Two truly separate near-collinear edges from
unrelated regions can land in one bucket and be reported as adjacent, and
nearly identical vertices that straddle a bucket boundary can fail to match in
pass 1. The result means "geometric proximity above the threshold", not exact
topological adjacency.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from ..config.tolerances import DEFAULT_TOLERANCES, MapTolerances
from .geometry import (
    bounds_overlap,
    collinear_overlap_length,
    distance,
    edge_key,
    pair_key,
    polygon_bounds,
    polygon_edges,
    quantize_point,
)
from .map_model import AdjacencyGraph, AdjacencyInvariantViolation, PairKey, Region, RegionId

logger = structlog.get_logger()


def compute_adjacency(
    regions: Sequence[Region],
    tolerances: Optional[MapTolerances] = None,
    strict: bool = False,
) -> AdjacencyGraph:
    """
    Build the adjacency graph of ``regions`` by matching their edges.

    Args:
        regions: Regions with finalized polygons
        tolerances: Quantization and minimum shared length settings
        strict: Raise :class:`AdjacencyInvariantViolation` if the result is
            not symmetric and irreflexive (errors are always logged)

    Returns:
        Complete AdjacencyGraph with shared lengths in ``edge_meta``
    """
    tol = (tolerances or DEFAULT_TOLERANCES).adjacency
    eps = tol.quantization_epsilon
    min_shared = tol.min_shared_length

    neighbors: Dict[RegionId, Set[RegionId]] = {r.id: set() for r in regions}
    edge_meta: Dict[PairKey, float] = {}

    def link(a: RegionId, b: RegionId, shared: float) -> None:
        neighbors[a].add(b)
        neighbors[b].add(a)
        key = pair_key(a, b)
        edge_meta[key] = max(edge_meta.get(key, 0.0), shared)

    # Pass 1: quantized buckets
    buckets: Dict[tuple, List[Tuple[RegionId, float]]] = defaultdict(list)
    for region in regions:
        for start, end in polygon_edges(region.polygon):
            length = distance(start, end)
            if length < min_shared:
                continue
            key = edge_key(quantize_point(start, eps), quantize_point(end, eps))
            buckets[key].append((region.id, length))

    for entries in buckets.values():
        if len(entries) < 2:
            continue
        for i, (id_a, len_a) in enumerate(entries):
            for id_b, len_b in entries[i + 1:]:
                if id_a == id_b:
                    continue
                shared = min(len_a, len_b)
                if shared <= min_shared:
                    continue
                link(id_a, id_b, shared)

    bucket_pairs = len(edge_meta)

    # Pass 2: partially overlapping collinear edges
    if tol.match_collinear:
        _match_collinear(regions, tolerances or DEFAULT_TOLERANCES, edge_meta, link)

    graph = AdjacencyGraph.from_sets(neighbors, edge_meta)
    report_invariant_violations(graph, strict=strict)

    logger.info("Adjacency computed",
                regions=len(regions),
                edges=len(edge_meta),
                bucket_edges=bucket_pairs,
                collinear_edges=len(edge_meta) - bucket_pairs)
    return graph


def _match_collinear(regions: Sequence[Region], tolerances: MapTolerances, edge_meta, link) -> None:
    min_shared = tolerances.adjacency.min_shared_length
    margin = tolerances.geometry.collinear_distance_tolerance
    bounds = [polygon_bounds(r.polygon) for r in regions]
    edges = [
        [e for e in polygon_edges(r.polygon) if distance(*e) >= min_shared]
        for r in regions
    ]

    for i, region_a in enumerate(regions):
        for j in range(i + 1, len(regions)):
            region_b = regions[j]
            if region_a.id == region_b.id or pair_key(region_a.id, region_b.id) in edge_meta:
                continue
            if not bounds_overlap(bounds[i], bounds[j], margin):
                continue
            best = 0.0
            for seg_a in edges[i]:
                for seg_b in edges[j]:
                    best = max(best, collinear_overlap_length(seg_a, seg_b, tolerances.geometry))
            if best > min_shared:
                link(region_a.id, region_b.id, best)


def validate_adjacency(graph: AdjacencyGraph) -> List[str]:
    """Return symmetry and irreflexivity errors of ``graph``."""
    return graph.validate()


def report_invariant_violations(graph: AdjacencyGraph, strict: bool = False) -> List[str]:
    """
    Log every invariant violation of ``graph``.

    Violations point at a bug in geometry handling. They are logged at error
    level, and raised as :class:`AdjacencyInvariantViolation` when ``strict``.
    """
    errors = validate_adjacency(graph)
    for error in errors:
        logger.error("Adjacency invariant violated", detail=error)
    if errors and strict:
        raise AdjacencyInvariantViolation(errors)
    return errors


def region_adjacency_lists(graph: AdjacencyGraph, region_ids: Iterable[RegionId]) -> Dict[RegionId, List[RegionId]]:
    """``{region_id: sorted neighbor ids}`` for serialization."""
    return {rid: sorted(graph.neighbors_of(rid)) for rid in region_ids}
