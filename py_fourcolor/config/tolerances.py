"""
Numeric tolerances for geometry, sampling, adjacency and freehand snapping.

The defaults were tuned against the 900x620 map scale. They are
scale-dependent, so every algorithm takes them as an argument instead of
hardcoding literals; callers working at another scale pass their own copy.
"""

from pydantic import BaseModel, Field


class GeometryTolerances(BaseModel):
    """Tolerances for segment collinearity and overlap."""

    collinear_cross_tolerance: float = Field(
        default=0.1,
        description="Maximum |normalized cross product| for two segments to count as parallel",
    )
    collinear_distance_tolerance: float = Field(
        default=3.0,
        description="Maximum endpoint distance to the other segment's supporting line",
    )


class SamplerSettings(BaseModel):
    """Settings for blue-noise style rejection sampling of seed points."""

    margin_ratio: float = Field(default=0.05, description="Inset on every side, as a fraction of the size")
    separation_divisor: float = Field(
        default=2.2,
        description="Minimum separation is width / sqrt(count) / separation_divisor",
    )
    attempts_per_point: int = Field(default=120, description="Rejection budget per requested point")


class AdjacencyTolerances(BaseModel):
    """Settings for geometric edge matching."""

    quantization_epsilon: float = Field(default=0.5, description="Grid size for endpoint snapping")
    min_shared_length: float = Field(
        default=2.0, description="Shortest boundary two regions must share to be adjacent"
    )
    match_collinear: bool = Field(
        default=True,
        description="Also match partially overlapping collinear edges across regions",
    )


class SnapSettings(BaseModel):
    """Settings for converting freehand strokes into polygons."""

    simplify_tolerance: float = Field(default=3.0, description="Ramer-Douglas-Peucker tolerance")
    max_vertices: int = Field(default=18, description="Vertex budget after simplification")
    closing_threshold: float = Field(
        default=20.0, description="Start/end distance below which a stroke counts as closed"
    )
    min_area: float = Field(default=350.0, description="Smallest accepted polygon area")


class MapTolerances(BaseModel):
    """All tolerance groups in one object."""

    geometry: GeometryTolerances = Field(default_factory=GeometryTolerances)
    sampler: SamplerSettings = Field(default_factory=SamplerSettings)
    adjacency: AdjacencyTolerances = Field(default_factory=AdjacencyTolerances)
    snap: SnapSettings = Field(default_factory=SnapSettings)


DEFAULT_TOLERANCES = MapTolerances()
