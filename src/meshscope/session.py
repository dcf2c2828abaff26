"""
Mesh session: the load lifecycle and every buffer derived from it.

A session owns one mesh at a time. Each load clears all derived data
first, then rebuilds normals, index buffers and the active scalar field.
All calls run synchronously on the caller's thread; callers embedding a
session in an interactive application must serialize access to it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union
import numpy as np

from meshscope.analysis.curvature import CurvatureAnalyzer, CurvatureType
from meshscope.analysis.geodesic import PathResult, PathStrategy, ShortestPathSolver, waypoint_path
from meshscope.config import ViewerConfig
from meshscope.core.errors import ParseError, TopologyError
from meshscope.core.io import load_mesh
from meshscope.core.mesh import Mesh
from meshscope.uv.charts import ChartSegmentation, segment_charts
from meshscope.uv.distortion import DistortionAnalyzer, DistortionReport, distortion_colors
from meshscope.uv.parameterization import ParameterizationMesh
from meshscope.utils.timing import TimingLog, timed_operation

logger = logging.getLogger("meshscope.session")


class MeshSession:
    """
    Holds the current mesh and its derived data.

    Derived data: triangle and edge index buffers, the per-vertex scalar
    field for the current render mode, the selected waypoints and the
    path through them.
    """

    def __init__(self, config: Optional[ViewerConfig] = None):
        self.config = config or ViewerConfig()
        self.render_mode = CurvatureType(self.config.curvature.mode)
        self.path_strategy = PathStrategy(self.config.path.strategy)
        self.timing = TimingLog()
        self.clear()

    def clear(self) -> None:
        """Drop the mesh and every derived buffer."""
        self.mesh: Optional[Mesh] = None
        self.original_mesh: Optional[Mesh] = None
        self.triangle_buffer = np.zeros((0, 3), dtype=np.int64)
        self.edge_buffer = np.zeros((0, 2), dtype=np.int64)
        self.scalar_field = np.zeros(0)
        self.model_center = np.zeros(3)
        self.selected_vertices: list[int] = []
        self.path = PathResult()
        self._solver: Optional[ShortestPathSolver] = None

    @property
    def loaded(self) -> bool:
        return self.mesh is not None

    def load(self, path: Union[str, Path]) -> bool:
        """
        Load a mesh file and rebuild all derived data.

        Previous state is cleared before reading. Returns False (and logs)
        when the file cannot be loaded; the session is then empty.
        """
        self.clear()
        try:
            with timed_operation("load", timing_log=self.timing):
                mesh = load_mesh(path)
        except ParseError as e:
            logger.warning(f"Failed to load mesh: {e}")
            return False

        self.set_mesh(mesh)
        return True

    def set_mesh(self, mesh: Mesh) -> None:
        """
        Adopt an in-memory mesh as if it had just been loaded.

        The session works on its own copy; the caller's mesh is left untouched.
        """
        self.clear()
        self.original_mesh = mesh.copy()
        mesh = mesh.copy()

        with timed_operation("prepare", timing_log=self.timing):
            mesh.normalize(self.config.mesh.target_extent)
            self.model_center = np.zeros(3)
            if self.config.mesh.compute_normals:
                mesh.compute_normals()
            self.triangle_buffer = mesh.triangle_indices()
            self.edge_buffer = mesh.edge_indices()

        self.mesh = mesh
        self._update_scalar_field()
        logger.info(
            f"Loaded '{mesh.name}': {mesh.num_vertices} vertices, {mesh.num_faces} faces, "
            f"{len(self.triangle_buffer)} triangles, {len(self.edge_buffer)} edges"
        )

    def set_render_mode(self, mode: Union[CurvatureType, str]) -> np.ndarray:
        """Select the scalar field to visualize and recompute it."""
        self.render_mode = CurvatureType(mode)
        self._update_scalar_field()
        return self.scalar_field

    def _update_scalar_field(self) -> None:
        if self.mesh is None:
            self.scalar_field = np.zeros(0)
            return
        with timed_operation(f"curvature_{self.render_mode.value}", timing_log=self.timing):
            analyzer = CurvatureAnalyzer(
                self.mesh,
                epsilon=self.config.curvature.epsilon,
                gaussian_area=self.config.curvature.gaussian_area,
            )
            self.scalar_field = analyzer.compute(self.render_mode)

    # ------------------------------------------------------------------
    # Path selection

    def set_path_strategy(self, strategy: Union[PathStrategy, str]) -> None:
        self.path_strategy = PathStrategy(strategy)
        self._solver = None
        self._update_path()

    def select_vertex(self, vertex: int) -> PathResult:
        """
        Append a picked vertex to the waypoint list.

        Out-of-range ids are ignored. Once two or more waypoints exist the
        path through all of them is recomputed.
        """
        if self.mesh is None or not 0 <= vertex < self.mesh.num_vertices:
            logger.debug(f"Ignoring vertex pick {vertex}")
            return self.path
        self.selected_vertices.append(int(vertex))
        self._update_path()
        return self.path

    def clear_selection(self) -> None:
        self.selected_vertices = []
        self.path = PathResult()

    def _update_path(self) -> None:
        if self.mesh is None or len(self.selected_vertices) < 2:
            self.path = PathResult()
            return
        if self._solver is None:
            self._solver = ShortestPathSolver(self.mesh, self.path_strategy)
        with timed_operation("shortest_path", timing_log=self.timing):
            self.path = waypoint_path(self.mesh, self.selected_vertices, solver=self._solver)

    # ------------------------------------------------------------------
    # UV analysis

    def analyze_uv(self) -> Optional[tuple[DistortionReport, ChartSegmentation]]:
        """
        Distortion report and chart segmentation of the loaded mesh.

        Returns None when there is no mesh or it carries no UV data.
        """
        if self.mesh is None or not self.mesh.has_uv:
            return None
        try:
            with timed_operation("uv_analysis", timing_log=self.timing):
                param = ParameterizationMesh.from_mesh(self.mesh)
                report = DistortionAnalyzer(param, area_epsilon=self.config.uv.area_epsilon).analyze()
                charts = segment_charts(self.mesh)
        except (TopologyError, ValueError) as e:
            logger.warning(f"UV analysis failed: {e}")
            return None
        return report, charts

    def uv_face_colors(self, report: DistortionReport) -> np.ndarray:
        """Per-face RGB for a distortion report, capped at the configured value."""
        return distortion_colors(report.per_face, cap=self.config.uv.distortion_color_cap)
