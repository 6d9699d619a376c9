"""FastAPI main application."""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Tuple
import structlog

from ..config import settings
from ..core.adjacency import compute_adjacency, region_adjacency_lists
from ..core.coloring import estimate_par_value, find_conflicts, greedy_iterations, solve_exact_coloring
from ..core.freehand import add_freehand_region
from ..core.geometry import Point
from ..core.map_model import AdjacencyGraph, MapSnapshot, Region
from ..core.puzzle import Puzzle, check_solution, new_puzzle
from ..utils.log_config import configure_logging
from ..utils.random import make_prng

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Four Color Map API",
    description="Planar map generation, adjacency and four-color puzzle solving",
    version="0.1.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class RegionModel(BaseModel):
    """A region polygon with its optional color."""

    id: int = Field(..., ge=0, description="Region id")
    polygon: List[Tuple[float, float]] = Field(..., min_length=3, description="Implicitly closed ring of [x, y]")
    color: Optional[int] = Field(None, ge=0, description="Color index, null when uncolored")


class MapModel(BaseModel):
    """Serialized map snapshot."""

    width: float
    height: float
    regions: List[RegionModel]
    neighbors: Dict[int, List[int]]
    next_region_id: int


class MapGenerationRequest(BaseModel):
    """Request to generate a new puzzle map."""

    seed: Optional[str] = Field(None, description="Random seed for reproducible generation")
    region_count: Optional[int] = Field(None, ge=1, description="Requested regions, clamped to the configured bounds")
    width: Optional[float] = Field(None, ge=100, le=4000, description="Map width")
    height: Optional[float] = Field(None, ge=100, le=4000, description="Map height")
    adjacency_mode: str = Field("triangulation", description="'triangulation' or 'edges'")


class PuzzleResponse(BaseModel):
    """Generated map plus the target color challenge."""

    seed: str
    map: MapModel
    palette_size: int
    target_color: int
    par_value: int


class RegionsRequest(BaseModel):
    """Regions with an optional precomputed neighbor relation."""

    regions: List[RegionModel]
    neighbors: Optional[Dict[int, List[int]]] = Field(
        None, description="Neighbor lists; computed from the polygons when omitted"
    )


class AdjacencyEdge(BaseModel):
    a: int
    b: int
    shared_length: Optional[float] = None


class AdjacencyResponse(BaseModel):
    neighbors: Dict[int, List[int]]
    edges: List[AdjacencyEdge]


class ConflictsResponse(BaseModel):
    conflicts: List[Tuple[int, int]]


class ParRequest(RegionsRequest):
    """Request for a par value estimate."""

    target_color: int = Field(..., ge=0, description="Color whose usage is minimized")
    iterations: Optional[int] = Field(None, ge=1, le=1000, description="Greedy trials, sized by region count when omitted")
    palette_size: int = Field(4, ge=1, le=16)
    seed: Optional[str] = Field(None, description="Random seed for the shuffles")


class ParResponse(BaseModel):
    par_value: int
    iterations: int


class SolveRequest(RegionsRequest):
    """Request for an exact coloring."""

    palette_size: int = Field(4, ge=1, le=16)
    node_budget: Optional[int] = Field(None, ge=1, description="Search node budget, server default when omitted")


class SolveResponse(BaseModel):
    success: bool
    coloring: Dict[int, int]
    failure: Optional[str] = None
    nodes_explored: int


class SnapRequest(BaseModel):
    """Freehand stroke to add to a custom map."""

    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    regions: List[RegionModel] = Field(default_factory=list)
    points: List[Tuple[float, float]] = Field(..., description="Raw pointer samples in drawing order")
    snap_threshold: Optional[float] = Field(None, gt=0, description="Snap distance, server default when omitted")
    next_region_id: Optional[int] = Field(None, ge=0, description="Id for the new region")


class SnapResponse(BaseModel):
    accepted: bool
    rejection: Optional[str] = None
    polygon: Optional[List[Tuple[float, float]]] = None
    area: float
    map: Optional[MapModel] = None


class CheckRequest(RegionsRequest):
    """Colored map to judge."""

    target_color: int = Field(..., ge=0)
    par_value: int = Field(..., ge=0)
    palette_size: int = Field(4, ge=1, le=16)


class CheckResponse(BaseModel):
    status: str
    conflicts: List[Tuple[int, int]]
    uncolored: int
    target_count: int
    par_value: int
    beat_par: bool


def _regions_from_request(regions: List[RegionModel], palette_size: Optional[int] = None) -> Tuple[Region, ...]:
    ids = [r.id for r in regions]
    if len(set(ids)) != len(ids):
        raise HTTPException(status_code=400, detail="Duplicate region ids")
    result = []
    for r in regions:
        if palette_size is not None and r.color is not None and r.color >= palette_size:
            raise HTTPException(status_code=400, detail=f"Color {r.color} of region {r.id} outside palette")
        result.append(Region(id=r.id, polygon=tuple(Point(x, y) for x, y in r.polygon), color=r.color))
    return tuple(result)


def _graph_from_request(request: RegionsRequest, regions: Tuple[Region, ...]) -> AdjacencyGraph:
    if request.neighbors is None:
        return compute_adjacency(regions, strict=settings.debug)

    known = {r.id for r in regions}
    neighbors = {rid: set() for rid in known}
    for rid, nbrs in request.neighbors.items():
        if rid not in known or any(n not in known for n in nbrs):
            raise HTTPException(status_code=400, detail=f"Neighbor list of {rid} references unknown regions")
        neighbors[rid].update(nbrs)
    graph = AdjacencyGraph.from_sets(neighbors)
    errors = graph.validate()
    if errors:
        raise HTTPException(status_code=400, detail=errors)
    return graph


def _map_model(snapshot: MapSnapshot) -> MapModel:
    return MapModel(
        width=snapshot.width,
        height=snapshot.height,
        regions=[
            RegionModel(id=r.id, polygon=[(p[0], p[1]) for p in r.polygon], color=r.color)
            for r in snapshot.regions
        ],
        neighbors=region_adjacency_lists(snapshot.graph, snapshot.region_ids()),
        next_region_id=snapshot.next_region_id,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Four Color Map API",
        "version": "0.1.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/maps/generate", response_model=PuzzleResponse)
def generate_map(request: MapGenerationRequest):
    """Generate a new map, pick a target color and estimate its par value."""
    seed = request.seed or str(make_prng().seed)
    region_count = request.region_count or settings.default_region_count

    logger.info("Map generation requested", seed=seed, region_count=region_count)
    try:
        puzzle = new_puzzle(
            region_count,
            make_prng(seed),
            width=request.width,
            height=request.height,
            adjacency_mode=request.adjacency_mode,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PuzzleResponse(
        seed=seed,
        map=_map_model(puzzle.snapshot),
        palette_size=puzzle.palette_size,
        target_color=puzzle.target_color,
        par_value=puzzle.par_value,
    )


@app.post("/maps/adjacency", response_model=AdjacencyResponse)
def adjacency(request: RegionsRequest):
    """Compute the neighbor relation of arbitrary region polygons."""
    regions = _regions_from_request(request.regions)
    graph = compute_adjacency(regions, strict=settings.debug)
    return AdjacencyResponse(
        neighbors=region_adjacency_lists(graph, [r.id for r in regions]),
        edges=[AdjacencyEdge(a=a, b=b, shared_length=graph.shared_length(a, b)) for a, b in graph.pairs()],
    )


@app.post("/maps/conflicts", response_model=ConflictsResponse)
def conflicts(request: RegionsRequest):
    """List adjacent pairs sharing a color."""
    regions = _regions_from_request(request.regions)
    graph = _graph_from_request(request, regions)
    return ConflictsResponse(conflicts=find_conflicts(regions, graph))


@app.post("/maps/par", response_model=ParResponse)
def par(request: ParRequest):
    """Estimate the par value for a target color."""
    if request.target_color >= request.palette_size:
        raise HTTPException(status_code=400, detail="target_color outside palette")
    regions = _regions_from_request(request.regions)
    graph = _graph_from_request(request, regions)
    iterations = request.iterations or greedy_iterations(len(regions))
    par_value = estimate_par_value(
        regions, graph, request.target_color, iterations,
        make_prng(request.seed), palette_size=request.palette_size,
    )
    return ParResponse(par_value=par_value, iterations=iterations)


@app.post("/maps/solve", response_model=SolveResponse)
def solve(request: SolveRequest):
    """Find a conflict-free coloring, or report why there is none."""
    regions = _regions_from_request(request.regions)
    graph = _graph_from_request(request, regions)
    node_budget = request.node_budget or settings.solver_node_budget
    result = solve_exact_coloring(regions, graph, palette_size=request.palette_size, node_budget=node_budget)
    return SolveResponse(
        success=result.success,
        coloring=result.coloring,
        failure=result.failure.value if result.failure else None,
        nodes_explored=result.nodes_explored,
    )


@app.post("/maps/snap", response_model=SnapResponse)
def snap(request: SnapRequest):
    """Convert a freehand stroke into a new region of a custom map."""
    regions = _regions_from_request(request.regions)
    next_id = max([r.id + 1 for r in regions] + [request.next_region_id or 0])
    snapshot = MapSnapshot(
        regions=regions,
        graph=AdjacencyGraph(),
        width=request.width,
        height=request.height,
        next_region_id=next_id,
    )
    threshold = request.snap_threshold or settings.default_snap_threshold

    updated, result = add_freehand_region(snapshot, request.points, threshold)
    if updated is None:
        return SnapResponse(accepted=False, rejection=result.rejection.value, area=result.area)

    return SnapResponse(
        accepted=True,
        polygon=[(p.x, p.y) for p in result.polygon],
        area=result.area,
        map=_map_model(updated),
    )


@app.post("/maps/check", response_model=CheckResponse)
def check(request: CheckRequest):
    """Judge a colored map against the target color par."""
    if request.target_color >= request.palette_size:
        raise HTTPException(status_code=400, detail="target_color outside palette")
    regions = _regions_from_request(request.regions, request.palette_size)
    graph = _graph_from_request(request, regions)
    snapshot = MapSnapshot(regions=regions, graph=graph, width=0.0, height=0.0)
    puzzle = Puzzle(
        snapshot=snapshot,
        palette_size=request.palette_size,
        target_color=request.target_color,
        par_value=request.par_value,
    )
    result = check_solution(puzzle)
    return CheckResponse(
        status=result.status.value,
        conflicts=result.conflicts,
        uncolored=result.uncolored,
        target_count=result.target_count,
        par_value=result.par_value,
        beat_par=result.beat_par,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
