"""Voronoi tessellation of a rectangular map into regions."""

import math
from typing import Dict, Optional, Set, Tuple

import numpy as np
import structlog
from scipy.spatial import Voronoi
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box

from ..config.tolerances import DEFAULT_TOLERANCES, MapTolerances
from .adjacency import compute_adjacency, report_invariant_violations
from .alea_prng import RandomSource
from .geometry import Point, clamp_point, dedupe_consecutive, normalize_polygon, pair_key
from .map_model import AdjacencyGraph, MapSnapshot, PairKey, Region, RegionId
from .point_sampler import sample_points

logger = structlog.get_logger()

ADJACENCY_MODES = ("triangulation", "edges")

# Ridges shorter than this touch at a point only and do not make cells adjacent
MIN_RIDGE_LENGTH = 1e-9


def mirror_points(points: np.ndarray, width: float, height: float) -> np.ndarray:
    """
    Append the reflections of ``points`` across the four rectangle edges.

    With the mirrored copies present, the Voronoi cell of every original site
    is exactly its cell clipped to the rectangle: each rectangle edge becomes
    the bisector between a site and its reflection.

    Args:
        points: Array of [x, y] sites inside the rectangle
        width: Rectangle width
        height: Rectangle height

    Returns:
        Array of shape (5 * N, 2); the first N rows are the original sites
    """
    left = points.copy()
    left[:, 0] = -left[:, 0]
    right = points.copy()
    right[:, 0] = 2 * width - right[:, 0]
    bottom = points.copy()
    bottom[:, 1] = -bottom[:, 1]
    top = points.copy()
    top[:, 1] = 2 * height - top[:, 1]
    return np.vstack([points, left, right, bottom, top])


def order_around(site: np.ndarray, vertices: np.ndarray) -> np.ndarray:
    """Sort the vertices of a convex cell by angle around its site."""
    angles = np.arctan2(vertices[:, 1] - site[1], vertices[:, 0] - site[0])
    return vertices[np.argsort(angles, kind="stable")]


def build_cell_polygons(vor: Voronoi, n_sites: int, width: float, height: float) -> Dict[int, Tuple[Point, ...]]:
    """
    Build clipped cell polygons for the first ``n_sites`` Voronoi sites.

    Each cell is ordered around its site, intersected with the map rectangle,
    normalized (closing vertex removed) and clamped. Cells that do not survive
    as a polygon with at least three distinct vertices are left out.

    Args:
        vor: scipy Voronoi diagram of the mirrored site set
        n_sites: Number of original sites
        width: Map width
        height: Map height

    Returns:
        ``{site_index: polygon}`` for every usable cell
    """
    bounds = box(0.0, 0.0, width, height)
    polygons: Dict[int, Tuple[Point, ...]] = {}
    dropped = 0

    for i in range(n_sites):
        region_idx = vor.point_region[i]
        if region_idx == -1:
            dropped += 1
            continue
        vertex_ids = vor.regions[region_idx]
        if not vertex_ids or -1 in vertex_ids or len(vertex_ids) < 3:
            dropped += 1
            continue

        ordered = order_around(vor.points[i], vor.vertices[vertex_ids])
        cell = ShapelyPolygon(ordered)
        if not cell.is_valid:
            cell = cell.buffer(0)
        clipped = cell.intersection(bounds)
        if clipped.is_empty or clipped.geom_type != "Polygon" or clipped.area <= 0:
            dropped += 1
            continue

        ring = normalize_polygon(clipped.exterior.coords)
        polygon = dedupe_consecutive(clamp_point(p, width, height) for p in ring)
        if len(polygon) < 3:
            dropped += 1
            continue
        polygons[i] = tuple(polygon)

    if dropped:
        logger.info("Dropped degenerate cells", dropped=dropped, sites=n_sites)
    return polygons


def build_cell_connectivity(vor: Voronoi, kept: Set[int]) -> AdjacencyGraph:
    """
    Adjacency from the triangulation neighbor relation.

    Every Voronoi ridge is dual to a Delaunay edge. A ridge between two kept
    original sites with positive length means their clipped cells share that
    edge; ridges touching a mirrored site are the map border and are skipped.

    Args:
        vor: scipy Voronoi diagram of the mirrored site set
        kept: Site indices that produced a region

    Returns:
        AdjacencyGraph with ridge lengths in ``edge_meta``
    """
    neighbors: Dict[RegionId, Set[RegionId]] = {i: set() for i in kept}
    edge_meta: Dict[PairKey, float] = {}

    for ridge_idx, (p1, p2) in enumerate(vor.ridge_points):
        p1, p2 = int(p1), int(p2)
        if p1 not in kept or p2 not in kept or p1 == p2:
            continue
        ridge_vertices = vor.ridge_vertices[ridge_idx]
        if -1 in ridge_vertices:
            continue
        v1, v2 = vor.vertices[ridge_vertices[0]], vor.vertices[ridge_vertices[1]]
        length = float(math.hypot(v2[0] - v1[0], v2[1] - v1[1]))
        if length <= MIN_RIDGE_LENGTH:
            continue
        neighbors[p1].add(p2)
        neighbors[p2].add(p1)
        edge_meta[pair_key(p1, p2)] = length

    return AdjacencyGraph.from_sets(neighbors, edge_meta)


def generate_map(
    region_count: int,
    width: float,
    height: float,
    rng: RandomSource,
    adjacency_mode: str = "triangulation",
    tolerances: Optional[MapTolerances] = None,
    strict: bool = False,
) -> MapSnapshot:
    """
    Generate a random map of roughly ``region_count`` Voronoi regions.

    Args:
        region_count: Number of seed sites
        width: Map width
        height: Map height
        rng: Random source for the seed sites
        adjacency_mode: ``"triangulation"`` reads neighbors off the Delaunay
            triangulation; ``"edges"`` runs geometric edge matching instead
        tolerances: Sampler and adjacency settings
        strict: Raise on adjacency invariant violations

    Returns:
        MapSnapshot whose region ids are the site indices. A few degenerate
        cells may be dropped, so the region count can be below ``region_count``.
    """
    if adjacency_mode not in ADJACENCY_MODES:
        raise ValueError(f"Unknown adjacency mode {adjacency_mode!r}, expected one of {ADJACENCY_MODES}")
    tolerances = tolerances or DEFAULT_TOLERANCES

    logger.info("Generating map",
                width=width, height=height,
                region_count=region_count, adjacency_mode=adjacency_mode)

    sites = sample_points(region_count, width, height, rng, tolerances.sampler)
    if len(sites) == 0:
        return MapSnapshot(regions=(), graph=AdjacencyGraph(), width=width, height=height)

    vor = Voronoi(mirror_points(sites, width, height))
    logger.info("Voronoi diagram calculated",
                vertices=len(vor.vertices), ridges=len(vor.ridge_points))

    polygons = build_cell_polygons(vor, len(sites), width, height)
    regions = tuple(Region(id=i, polygon=polygon) for i, polygon in sorted(polygons.items()))

    if adjacency_mode == "triangulation":
        graph = build_cell_connectivity(vor, set(polygons))
        report_invariant_violations(graph, strict=strict)
    else:
        graph = compute_adjacency(regions, tolerances, strict=strict)

    logger.info("Map generated", regions=len(regions), edges=len(graph.edge_meta))

    return MapSnapshot(
        regions=regions,
        graph=graph,
        width=width,
        height=height,
        next_region_id=len(sites),
    )
