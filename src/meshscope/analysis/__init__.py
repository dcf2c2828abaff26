"""Mesh analysis modules."""

from meshscope.analysis.curvature import (
    CurvatureAnalyzer,
    CurvatureType,
    compute_curvature,
    curvature_colors,
    normalize_scalar,
)
from meshscope.analysis.geodesic import (
    PathResult,
    PathStrategy,
    ShortestPathSolver,
    distances_from,
    path_length,
    shortest_path,
    waypoint_path,
)

__all__ = [
    "CurvatureAnalyzer",
    "CurvatureType",
    "compute_curvature",
    "curvature_colors",
    "normalize_scalar",
    "PathResult",
    "PathStrategy",
    "ShortestPathSolver",
    "distances_from",
    "path_length",
    "shortest_path",
    "waypoint_path",
]
