"""
Map data model: regions, the adjacency graph and immutable map snapshots.

A :class:`MapSnapshot` is the unit a caller threads through its own state
management. Every operation that changes the map returns a new snapshot; the
previous one is never mutated.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .geometry import Polygon, pair_key

RegionId = int
ColorIndex = int
PairKey = Tuple[RegionId, RegionId]


class AdjacencyInvariantViolation(Exception):
    """Adjacency graph is not symmetric or contains a self reference.

    This indicates a defect in geometry handling, never a user error.
    """

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass(frozen=True)
class Region:
    """A closed polygon with an optional color."""
    id: RegionId
    polygon: Polygon
    color: Optional[ColorIndex] = None

    def with_color(self, color: Optional[ColorIndex]) -> "Region":
        return replace(self, color=color)


@dataclass(frozen=True)
class AdjacencyGraph:
    """
    Symmetric, irreflexive neighbor relation over region ids.

    ``edge_meta`` maps the unordered pair ``(min_id, max_id)`` to the length
    of boundary the two regions share. It is used for diagnostics and conflict
    reporting only.
    """
    neighbors: Dict[RegionId, FrozenSet[RegionId]] = field(default_factory=dict)
    edge_meta: Dict[PairKey, float] = field(default_factory=dict)

    @classmethod
    def from_sets(
        cls,
        neighbors: Mapping[RegionId, Iterable[RegionId]],
        edge_meta: Optional[Mapping[PairKey, float]] = None,
    ) -> "AdjacencyGraph":
        return cls(
            neighbors={rid: frozenset(nbrs) for rid, nbrs in neighbors.items()},
            edge_meta=dict(edge_meta or {}),
        )

    @classmethod
    def from_pairs(
        cls,
        region_ids: Iterable[RegionId],
        pairs: Iterable[PairKey],
    ) -> "AdjacencyGraph":
        """Build a graph from unordered pairs; handy for hand-made graphs."""
        neighbors: Dict[RegionId, Set[RegionId]] = {rid: set() for rid in region_ids}
        for a, b in pairs:
            neighbors.setdefault(a, set()).add(b)
            neighbors.setdefault(b, set()).add(a)
        return cls.from_sets(neighbors)

    def neighbors_of(self, region_id: RegionId) -> FrozenSet[RegionId]:
        return self.neighbors.get(region_id, frozenset())

    def degree(self, region_id: RegionId) -> int:
        return len(self.neighbors_of(region_id))

    def are_adjacent(self, a: RegionId, b: RegionId) -> bool:
        return b in self.neighbors_of(a)

    def pairs(self) -> List[PairKey]:
        """Every adjacent pair once, as sorted ``(a, b)`` with ``a < b``."""
        result = set()
        for rid, nbrs in self.neighbors.items():
            for other in nbrs:
                result.add(pair_key(rid, other))
        return sorted(result)

    def shared_length(self, a: RegionId, b: RegionId) -> Optional[float]:
        return self.edge_meta.get(pair_key(a, b))

    def validate(self) -> List[str]:
        """Return a list of symmetry/irreflexivity errors (empty when valid)."""
        errors: List[str] = []
        for rid, nbrs in self.neighbors.items():
            if rid in nbrs:
                errors.append(f"Region {rid} lists itself as a neighbor")
            for other in nbrs:
                if rid not in self.neighbors.get(other, frozenset()):
                    errors.append(f"Adjacency not symmetric for {rid} <-> {other}")
        return errors


@dataclass(frozen=True)
class MapSnapshot:
    """Regions and their adjacency, replaced wholesale on every change."""
    regions: Tuple[Region, ...]
    graph: AdjacencyGraph
    width: float
    height: float
    next_region_id: RegionId = 0

    def region_ids(self) -> List[RegionId]:
        return [r.id for r in self.regions]

    def region_by_id(self) -> Dict[RegionId, Region]:
        return {r.id: r for r in self.regions}

    def get_region(self, region_id: RegionId) -> Region:
        """Return the region with ``region_id`` or raise ``KeyError``."""
        for region in self.regions:
            if region.id == region_id:
                return region
        raise KeyError(f"No region with id {region_id!r}")

    def with_regions(self, regions: Iterable[Region]) -> "MapSnapshot":
        """Same geometry and graph, new region colors."""
        return replace(self, regions=tuple(regions))
