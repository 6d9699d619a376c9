"""
Geometry kernel: points, segments and polygons.

Pure functions shared by the tessellator, the adjacency builder and the
freehand snap engine. Polygons are tuples of :class:`Point` and are implicitly
closed (the last vertex connects back to the first).
"""

import math
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from ..config.tolerances import GeometryTolerances

_DEFAULT_GEOMETRY = GeometryTolerances()


class Point(NamedTuple):
    """A 2D point in map units."""
    x: float
    y: float


Polygon = Tuple[Point, ...]
Segment = Tuple[Point, Point]


class Projection(NamedTuple):
    """Closest point on a segment to a query point."""
    point: Point
    t: float  # position along the segment, 0 at start and 1 at end
    distance: float


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def as_point(p: Sequence[float]) -> Point:
    return Point(float(p[0]), float(p[1]))


def project_point_to_segment(p: Sequence[float], a: Sequence[float], b: Sequence[float]) -> Projection:
    """
    Project ``p`` onto segment ``a``-``b``, clamped to the segment.

    A zero-length segment projects everything onto ``a``.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return Projection(as_point(a), 0.0, distance(p, a))

    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    proj = Point(a[0] + t * dx, a[1] + t * dy)
    return Projection(proj, t, distance(p, proj))


def point_segment_distance(p: Sequence[float], a: Sequence[float], b: Sequence[float]) -> float:
    return project_point_to_segment(p, a, b).distance


def point_line_distance(p: Sequence[float], a: Sequence[float], b: Sequence[float]) -> float:
    """Perpendicular distance from ``p`` to the infinite line through ``a`` and ``b``.

    Falls back to the distance to ``a`` when the line is degenerate.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length = math.hypot(dx, dy)
    if length == 0.0:
        return distance(p, a)
    return abs(dx * (p[1] - a[1]) - dy * (p[0] - a[0])) / length


def signed_area(polygon: Sequence[Sequence[float]]) -> float:
    """
    Signed area via the shoelace formula.

    Positive for counter-clockwise winding in a y-up frame, negative for
    clockwise. Fewer than three vertices give 0.
    """
    n = len(polygon)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x1, y1 = polygon[i][0], polygon[i][1]
        x2, y2 = polygon[(i + 1) % n][0], polygon[(i + 1) % n][1]
        area += x1 * y2 - x2 * y1
    return area / 2.0


def _unit(a: Sequence[float], b: Sequence[float]) -> Optional[Tuple[float, float]]:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length = math.hypot(dx, dy)
    if length == 0.0:
        return None
    return dx / length, dy / length


def segments_collinear(
    seg_a: Segment,
    seg_b: Segment,
    tolerances: Optional[GeometryTolerances] = None,
) -> bool:
    """
    True when two segments are parallel and lie on (nearly) the same line.

    Both tests are symmetric in the argument order: the normalized cross
    product of the directions, and the largest distance of any endpoint to the
    other segment's supporting line.
    """
    tol = tolerances or _DEFAULT_GEOMETRY
    ua = _unit(*seg_a)
    ub = _unit(*seg_b)
    if ua is None or ub is None:
        return False

    cross = ua[0] * ub[1] - ua[1] * ub[0]
    if abs(cross) >= tol.collinear_cross_tolerance:
        return False

    offset = max(
        point_line_distance(seg_b[0], *seg_a),
        point_line_distance(seg_b[1], *seg_a),
        point_line_distance(seg_a[0], *seg_b),
        point_line_distance(seg_a[1], *seg_b),
    )
    return offset < tol.collinear_distance_tolerance


def collinear_overlap_length(
    seg_a: Segment,
    seg_b: Segment,
    tolerances: Optional[GeometryTolerances] = None,
) -> float:
    """
    Length shared by two collinear segments, 0 when they are not collinear.

    Both segments are projected onto one unit axis (the sum of the two
    directions after aligning their signs) and the 1-D intervals intersected.
    """
    if not segments_collinear(seg_a, seg_b, tolerances):
        return 0.0

    ua = _unit(*seg_a)
    ub = _unit(*seg_b)
    if ua[0] * ub[0] + ua[1] * ub[1] < 0:
        ub = (-ub[0], -ub[1])
    ax, ay = ua[0] + ub[0], ua[1] + ub[1]
    norm = math.hypot(ax, ay)
    ax, ay = ax / norm, ay / norm

    def proj(p):
        return p[0] * ax + p[1] * ay

    a0, a1 = sorted((proj(seg_a[0]), proj(seg_a[1])))
    b0, b1 = sorted((proj(seg_b[0]), proj(seg_b[1])))
    overlap = min(a1, b1) - max(a0, b0)
    return overlap if overlap > 0 else 0.0


def polygon_edges(polygon: Sequence[Point]) -> Iterator[Segment]:
    """Yield each edge of an implicitly closed polygon."""
    n = len(polygon)
    for i in range(n):
        yield polygon[i], polygon[(i + 1) % n]


def dedupe_consecutive(points: Iterable[Sequence[float]], closed: bool = True) -> List[Point]:
    """Drop vertices equal to their predecessor (and the wrap-around duplicate if closed)."""
    result: List[Point] = []
    for p in points:
        p = as_point(p)
        if result and result[-1] == p:
            continue
        result.append(p)
    if closed:
        while len(result) > 1 and result[0] == result[-1]:
            result.pop()
    return result


def normalize_polygon(points: Iterable[Sequence[float]]) -> List[Point]:
    """Copy a ring, removing the closing vertex when it repeats the first."""
    result = [as_point(p) for p in points]
    if len(result) > 1 and result[0] == result[-1]:
        result.pop()
    return result


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def clamp_point(p: Sequence[float], width: float, height: float) -> Point:
    return Point(clamp(p[0], 0.0, width), clamp(p[1], 0.0, height))


def quantize(value: float, eps: float) -> float:
    """Snap to the nearest multiple of ``eps``, rounding halves up."""
    return math.floor(value / eps + 0.5) * eps


def quantize_point(p: Sequence[float], eps: float) -> Point:
    return Point(quantize(p[0], eps), quantize(p[1], eps))


def edge_key(a: Point, b: Point) -> Tuple[Point, Point]:
    """Orientation-independent key: lexicographically smaller endpoint first."""
    return (a, b) if a <= b else (b, a)


def pair_key(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)


def polygon_bounds(polygon: Sequence[Sequence[float]]) -> Tuple[float, float, float, float]:
    """Axis-aligned bounding box ``(min_x, min_y, max_x, max_y)``."""
    xs = [p[0] for p in polygon]
    ys = [p[1] for p in polygon]
    return min(xs), min(ys), max(xs), max(ys)


def bounds_overlap(
    a: Tuple[float, float, float, float],
    b: Tuple[float, float, float, float],
    margin: float = 0.0,
) -> bool:
    return not (
        a[2] + margin < b[0]
        or b[2] + margin < a[0]
        or a[3] + margin < b[1]
        or b[3] + margin < a[1]
    )
