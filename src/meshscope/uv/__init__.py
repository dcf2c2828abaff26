"""UV parameterization analysis."""

from meshscope.uv.parameterization import (
    ParameterizationMesh,
    boundary_length_ratio,
    cut_edges,
    cut_length,
)
from meshscope.uv.distortion import (
    DistortionAnalyzer,
    DistortionReport,
    compute_distortion,
    distortion_colors,
)
from meshscope.uv.charts import (
    BOUNDARY_EDGE_COLOR,
    INTERIOR_EDGE_COLOR,
    BoundaryCornerReport,
    BoundarySegment,
    ChartSegmentation,
    detect_boundary_corners,
    edge_colors,
    segment_charts,
)

__all__ = [
    "ParameterizationMesh",
    "boundary_length_ratio",
    "cut_edges",
    "cut_length",
    "DistortionAnalyzer",
    "DistortionReport",
    "compute_distortion",
    "distortion_colors",
    "BOUNDARY_EDGE_COLOR",
    "INTERIOR_EDGE_COLOR",
    "BoundaryCornerReport",
    "BoundarySegment",
    "ChartSegmentation",
    "detect_boundary_corners",
    "edge_colors",
    "segment_charts",
]
