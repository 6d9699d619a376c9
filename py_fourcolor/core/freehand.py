"""
Freehand stroke to polygon conversion.

This module handles:
- Ramer-Douglas-Peucker simplification of the raw pointer path
- Capping the vertex count
- Snapping vertices onto existing region boundaries
- Closing the shape along existing boundaries (shortest path over the
  boundary graph) so new regions share edges with old ones
- Adding and removing user-drawn regions on a custom map snapshot

Rejections are returned as values in a :class:`SnapResult`, never raised.
"""

import heapq
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..config.tolerances import DEFAULT_TOLERANCES, MapTolerances, SnapSettings
from .adjacency import compute_adjacency
from .geometry import (
    Point,
    Polygon,
    Segment,
    as_point,
    dedupe_consecutive,
    distance,
    point_line_distance,
    polygon_edges,
    project_point_to_segment,
    signed_area,
)
from .map_model import AdjacencyGraph, MapSnapshot, Region, RegionId

logger = structlog.get_logger()


class SnapRejection(str, Enum):
    """Why a stroke could not become a region."""

    TOO_FEW_POINTS = "too_few_points"
    REGION_TOO_SMALL = "region_too_small"
    NO_VALID_CLOSURE = "no_valid_closure"


@dataclass(frozen=True)
class SnapResult:
    """Either a finished polygon or the reason the stroke was rejected."""

    polygon: Optional[Polygon] = None
    rejection: Optional[SnapRejection] = None
    area: float = 0.0
    stitched: bool = False

    @property
    def ok(self) -> bool:
        return self.polygon is not None


def simplify_path(points: Sequence[Point], tolerance: float) -> List[Point]:
    """
    Ramer-Douglas-Peucker simplification with an explicit work stack.

    A span keeps its point of maximum perpendicular deviation from the chord
    when the deviation exceeds ``tolerance`` and both halves are processed in
    turn; otherwise the span collapses to its two endpoints.
    """
    n = len(points)
    if n < 3:
        return list(points)

    keep = [False] * n
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]
    while stack:
        start, end = stack.pop()
        if end <= start + 1:
            continue
        max_dist = 0.0
        max_idx = start
        for i in range(start + 1, end):
            d = point_line_distance(points[i], points[start], points[end])
            if d > max_dist:
                max_dist = d
                max_idx = i
        if max_dist > tolerance:
            keep[max_idx] = True
            stack.append((max_idx, end))
            stack.append((start, max_idx))

    return [p for p, kept in zip(points, keep) if kept]


def cap_vertices(points: Sequence[Point], max_vertices: int) -> List[Point]:
    """Resample at a uniform stride when over budget, always keeping the last point."""
    if max_vertices <= 0 or len(points) <= max_vertices:
        return list(points)
    stride = math.ceil(len(points) / max_vertices)
    result = list(points[::stride])
    if result[-1] != points[-1]:
        if len(result) >= max_vertices:
            result[-1] = points[-1]
        else:
            result.append(points[-1])
    return result


def boundary_segments(regions: Sequence[Region]) -> List[Segment]:
    """Every region edge once, regardless of orientation."""
    seen = set()
    segments: List[Segment] = []
    for region in regions:
        for a, b in polygon_edges(region.polygon):
            if a == b:
                continue
            key = (a, b) if a <= b else (b, a)
            if key in seen:
                continue
            seen.add(key)
            segments.append(key)
    return segments


def snap_to_boundaries(points: Sequence[Point], segments: Sequence[Segment], threshold: float) -> List[Point]:
    """Replace each point by its projection on the nearest segment within ``threshold``."""
    snapped = []
    for p in points:
        best = None
        for a, b in segments:
            proj = project_point_to_segment(p, a, b)
            if proj.distance <= threshold and (best is None or proj.distance < best.distance):
                best = proj
        snapped.append(best.point if best is not None else p)
    return snapped


class BoundaryGraph:
    """
    Graph over existing boundary segments.

    Nodes are segment endpoints merged within ``merge_distance``; edges are
    the segments weighted by Euclidean length.
    """

    def __init__(self, merge_distance: float):
        self.merge_distance = merge_distance
        self.nodes: List[Point] = []
        self.edges: Dict[int, Dict[int, float]] = {}

    def node_for(self, p: Point, create: bool = True) -> Optional[int]:
        """Index of the node within merge distance of ``p`` (closest wins)."""
        best = None
        best_dist = None
        for idx, node in enumerate(self.nodes):
            d = distance(node, p)
            if d <= self.merge_distance and (best_dist is None or d < best_dist):
                best, best_dist = idx, d
        if best is not None or not create:
            return best
        self.nodes.append(p)
        self.edges[len(self.nodes) - 1] = {}
        return len(self.nodes) - 1

    def connect(self, i: int, j: int) -> None:
        if i == j:
            return
        weight = distance(self.nodes[i], self.nodes[j])
        current = self.edges[i].get(j)
        if current is None or weight < current:
            self.edges[i][j] = weight
            self.edges[j][i] = weight

    def add_segment(self, a: Point, b: Point) -> None:
        self.connect(self.node_for(a), self.node_for(b))

    def shortest_path(self, source: int, target: int) -> Optional[List[int]]:
        """Dijkstra over summed edge length; ``None`` when unreachable."""
        dist = {source: 0.0}
        prev: Dict[int, int] = {}
        heap = [(0.0, source)]
        visited = set()
        while heap:
            current_dist, node = heapq.heappop(heap)
            if node in visited:
                continue
            visited.add(node)
            if node == target:
                break
            for neighbor, weight in self.edges[node].items():
                candidate = current_dist + weight
                if candidate < dist.get(neighbor, math.inf):
                    dist[neighbor] = candidate
                    prev[neighbor] = node
                    heapq.heappush(heap, (candidate, neighbor))

        if target not in visited:
            return None
        path = [target]
        while path[-1] != source:
            path.append(prev[path[-1]])
        path.reverse()
        return path


def _split_at(segments: List[Segment], p: Point, threshold: float) -> bool:
    """Split the nearest segment within ``threshold`` at the projection of ``p``."""
    best_idx = None
    best = None
    for idx, (a, b) in enumerate(segments):
        proj = project_point_to_segment(p, a, b)
        if proj.distance <= threshold and (best is None or proj.distance < best.distance):
            best_idx, best = idx, proj
    if best is None:
        return False
    a, b = segments.pop(best_idx)
    for piece in ((a, best.point), (best.point, b)):
        if piece[0] != piece[1]:
            segments.append(piece)
    return True


def stitch_path(
    path: Sequence[Point],
    segments: Sequence[Segment],
    snap_threshold: float,
) -> Optional[List[Point]]:
    """
    Vertices that close ``path`` along existing boundaries.

    The start and end of the path are attached to the boundary graph by
    splitting the nearest segment within ``snap_threshold``. The shortest
    boundary route from start to end is returned reversed (end back to start),
    without its two endpoints, ready to append to the path. ``None`` means no
    boundary route exists.
    """
    if not segments or len(path) < 2:
        return None
    start, end = path[0], path[-1]

    pieces = list(segments)
    if not _split_at(pieces, start, snap_threshold) or not _split_at(pieces, end, snap_threshold):
        return None

    graph = BoundaryGraph(merge_distance=snap_threshold)
    # Endpoints first so that nearby corners merge into them, not the reverse
    source = graph.node_for(start)
    target = graph.node_for(end)
    if source == target:
        return None
    for a, b in pieces:
        graph.add_segment(a, b)

    route = graph.shortest_path(source, target)
    if route is None:
        return None
    return [graph.nodes[idx] for idx in reversed(route[1:-1])]


def snap_freehand_path(
    raw_points: Sequence[Sequence[float]],
    existing_regions: Sequence[Region],
    snap_threshold: float,
    settings: Optional[SnapSettings] = None,
) -> SnapResult:
    """
    Convert a freehand stroke into a closed polygon that shares boundaries
    with existing regions.

    Args:
        raw_points: Pointer samples in drawing order
        existing_regions: Regions already on the map
        snap_threshold: Distance within which vertices snap onto boundaries
        settings: Simplification, vertex budget, closing and area settings

    Returns:
        SnapResult with the polygon, or with a :class:`SnapRejection`
    """
    settings = settings or DEFAULT_TOLERANCES.snap
    if len(raw_points) < 3:
        return SnapResult(rejection=SnapRejection.TOO_FEW_POINTS)

    path = dedupe_consecutive((as_point(p) for p in raw_points), closed=False)
    path = simplify_path(path, settings.simplify_tolerance)
    path = cap_vertices(path, settings.max_vertices)

    segments = boundary_segments(existing_regions)
    path = snap_to_boundaries(path, segments, snap_threshold)

    stitched = False
    if distance(path[0], path[-1]) <= settings.closing_threshold:
        if len(path) > 1:
            path = path[:-1]
    else:
        route = stitch_path(path, segments, snap_threshold)
        if route is not None:
            path = path + route
            stitched = True
        else:
            path = path + [path[0]]

    polygon = dedupe_consecutive(path)
    if len(polygon) < 3:
        return SnapResult(rejection=SnapRejection.NO_VALID_CLOSURE)

    area = signed_area(polygon)
    if abs(area) < settings.min_area:
        return SnapResult(rejection=SnapRejection.REGION_TOO_SMALL, area=abs(area))

    logger.info("Freehand stroke converted",
                raw_points=len(raw_points), vertices=len(polygon),
                area=abs(area), stitched=stitched)
    return SnapResult(polygon=tuple(polygon), area=abs(area), stitched=stitched)


def empty_snapshot(width: float, height: float) -> MapSnapshot:
    """A blank custom map."""
    return MapSnapshot(regions=(), graph=AdjacencyGraph(), width=width, height=height)


def add_freehand_region(
    snapshot: MapSnapshot,
    raw_points: Sequence[Sequence[float]],
    snap_threshold: float,
    tolerances: Optional[MapTolerances] = None,
    strict: bool = False,
) -> Tuple[Optional[MapSnapshot], SnapResult]:
    """
    Turn a stroke into a new region on ``snapshot``.

    On success the returned snapshot holds the new region under a fresh id and
    adjacency recomputed over every region. On rejection the snapshot is
    ``None``; the input snapshot is never modified.
    """
    tolerances = tolerances or DEFAULT_TOLERANCES
    result = snap_freehand_path(raw_points, snapshot.regions, snap_threshold, tolerances.snap)
    if not result.ok:
        logger.info("Freehand stroke rejected", reason=result.rejection.value)
        return None, result

    region = Region(id=snapshot.next_region_id, polygon=result.polygon)
    regions = snapshot.regions + (region,)
    graph = compute_adjacency(regions, tolerances, strict=strict)
    return replace(
        snapshot,
        regions=regions,
        graph=graph,
        next_region_id=snapshot.next_region_id + 1,
    ), result


def remove_region(
    snapshot: MapSnapshot,
    region_id: RegionId,
    tolerances: Optional[MapTolerances] = None,
) -> MapSnapshot:
    """Drop a region and recompute adjacency. Its id is not handed out again."""
    snapshot.get_region(region_id)
    regions = tuple(r for r in snapshot.regions if r.id != region_id)
    graph = compute_adjacency(regions, tolerances)
    return replace(snapshot, regions=regions, graph=graph)
