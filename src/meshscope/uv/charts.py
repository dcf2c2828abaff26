"""
Chart segmentation and boundary-corner detection for UV layouts.

Charts are flood-filled over faces that share texture-coordinate ids.
Corners are found by walking each UV boundary loop and quantizing the
interior angle at every boundary vertex to multiples of π/2.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Iterable
import numpy as np

from meshscope.core.mesh import INVALID, Mesh

logger = logging.getLogger("meshscope.uv.charts")

BOUNDARY_EDGE_COLOR = (229, 156, 59)
INTERIOR_EDGE_COLOR = (100, 100, 100)

CHART_PALETTE = (
    (230, 25, 75),
    (60, 180, 75),
    (255, 225, 25),
    (0, 130, 200),
    (245, 130, 48),
    (145, 30, 180),
    (70, 240, 240),
    (240, 50, 230),
)

# Direction codes of axis-aligned boundary segments
TAG_POS_U, TAG_POS_V, TAG_NEG_U, TAG_NEG_V = 0, 1, 2, 3


@dataclass
class ChartSegmentation:
    """Connected UV charts."""
    face_chart: np.ndarray
    n_charts: int
    chart_faces: list[list[int]] = field(default_factory=list)

    @property
    def face_colors(self) -> np.ndarray:
        """Fx3 uint8 colors cycling through ``CHART_PALETTE``."""
        palette = np.array(CHART_PALETTE, dtype=np.uint8)
        return palette[self.face_chart % len(palette)]


@dataclass
class BoundarySegment:
    """Boundary stretch between two consecutive corners of one loop."""
    vert0: int
    vert1: int
    loop: int
    tag: int
    coord: int


@dataclass
class BoundaryCornerReport:
    """Result of walking the boundary loops of a UV mesh."""
    loops: list[list[int]] = field(default_factory=list)
    vertex_valence: dict[int, int] = field(default_factory=dict)
    corners: list[int] = field(default_factory=list)
    loop_corner_offsets: list[int] = field(default_factory=lambda: [0])
    loop_euler: list[int] = field(default_factory=list)
    loop_orientation_ok: list[bool] = field(default_factory=list)
    n_inner_segments: int = 0
    segments: list[BoundarySegment] = field(default_factory=list)
    halfedge_segment: dict[int, int] = field(default_factory=dict)
    face_segments: dict[int, set] = field(default_factory=lambda: defaultdict(set))

    @property
    def n_loops(self) -> int:
        return len(self.loops)

    @property
    def euler_ok(self) -> bool:
        return all(e == 4 for e in self.loop_euler)

    def loop_corners(self, i: int) -> list[int]:
        return self.corners[self.loop_corner_offsets[i]:self.loop_corner_offsets[i + 1]]


def segment_charts(mesh: Mesh) -> ChartSegmentation:
    """
    Assign a chart id to every face.

    Faces that share any texture-coordinate id end up in the same chart.
    """
    if not mesh.has_uv:
        raise ValueError(f"Mesh '{mesh.name}' has no texture coordinates")

    tex_faces: dict[int, list[int]] = defaultdict(list)
    for fi, ft in enumerate(mesh.face_texcoords):
        for t in ft:
            tex_faces[t].append(fi)

    face_chart = np.full(mesh.num_faces, INVALID, dtype=np.int64)
    chart_faces: list[list[int]] = []

    for seed in range(mesh.num_faces):
        if face_chart[seed] != INVALID:
            continue
        chart = len(chart_faces)
        members = []
        face_chart[seed] = chart
        queue = deque([seed])
        while queue:
            fi = queue.popleft()
            members.append(fi)
            for t in mesh.face_texcoords[fi]:
                for nb in tex_faces[t]:
                    if face_chart[nb] == INVALID:
                        face_chart[nb] = chart
                        queue.append(nb)
        chart_faces.append(sorted(members))

    logger.debug(f"Segmented '{mesh.name}' into {len(chart_faces)} charts")
    return ChartSegmentation(face_chart=face_chart, n_charts=len(chart_faces), chart_faces=chart_faces)


def detect_boundary_corners(para: Mesh, extra_corners: Iterable[int] = ()) -> BoundaryCornerReport:
    """
    Walk every boundary loop of a UV mesh and find its corners.

    At each boundary vertex the interior angles of the face fan are summed
    and quantized as k = round(angle / (π/2)). A vertex with k != 2, or one
    listed in ``extra_corners``, is a corner. Each loop of a disk-like quad
    chart satisfies Σ(2 - k) == 4 with a positive winding; violations are
    logged, not raised.
    """
    forced = set(int(v) for v in extra_corners)
    report = BoundaryCornerReport()
    visited = np.zeros(para.num_halfedges, dtype=bool)
    max_steps = para.num_halfedges + 1

    for h in np.flatnonzero(para.he_face == INVALID):
        if visited[h]:
            continue

        loop_id = len(report.loops)
        loop: list[int] = []
        euler = 0
        z_normal = 0.0
        bh = int(h)
        for _ in range(max_steps):
            visited[bh] = True
            loop.append(bh)

            angle_v = 0.0
            to_v = int(para.he_to[bh])
            bh = int(para.he_opposite[bh])
            while para.he_face[bh] != INVALID:
                vec0 = para.halfedge_vector(bh)
                bh = int(para.he_opposite[para.he_prev[bh]])
                vec1 = para.halfedge_vector(bh)
                z_normal += vec0[0] * vec1[1] - vec0[1] * vec1[0]
                angle_v += _vec_angle(vec0, vec1)

            vk = int(np.rint(angle_v / (np.pi / 2)))
            if vk != 2 or to_v in forced:
                report.corners.append(to_v)
                report.n_inner_segments += vk - 1
            euler += 2 - vk
            report.vertex_valence[to_v] = vk

            if bh == h:
                break
        else:
            logger.warning(f"Boundary loop starting at half-edge {h} did not close")

        report.loops.append(loop)
        report.loop_corner_offsets.append(len(report.corners))
        report.loop_euler.append(euler)
        report.loop_orientation_ok.append(z_normal > 0)
        if euler != 4:
            logger.warning(f"Euler check failed on boundary loop {loop_id}: sum(2 - k) = {euler}")
        if z_normal <= 0:
            logger.warning(f"Boundary loop {loop_id} has non-positive winding")

    _build_segments(para, report)

    n_segments = len(report.segments)
    if n_segments - report.n_inner_segments != 4 * report.n_loops:
        logger.warning(
            f"Segment count check failed: {n_segments} segments, "
            f"{report.n_inner_segments} inner, {report.n_loops} loops"
        )
    return report


def _build_segments(para: Mesh, report: BoundaryCornerReport) -> None:
    """Split each loop into corner-to-corner segments and label half-edges."""
    points = para.vertices
    for loop_id, loop in enumerate(report.loops):
        corners = report.loop_corners(loop_id)
        if not corners:
            continue

        base = len(report.segments)
        m = len(corners)
        for i in range(m):
            v0, v1 = corners[i], corners[(i + 1) % m]
            tag = _direction_tag(points[v1] - points[v0])
            coord = int(np.rint(points[v0][(tag & 1) ^ 1]))
            report.segments.append(BoundarySegment(vert0=v0, vert1=v1, loop=loop_id, tag=tag, coord=coord))

        # Rotate the loop so it starts at the first corner
        starts = [int(para.he_from[bh]) for bh in loop]
        first = starts.index(corners[0]) if corners[0] in starts else 0
        ordered = loop[first:] + loop[:first]

        seg = 0
        for bh in ordered:
            if seg + 1 < m and int(para.he_from[bh]) == corners[seg + 1]:
                seg += 1
            report.halfedge_segment[bh] = base + seg
            face = int(para.he_face[para.he_opposite[bh]])
            if face != INVALID:
                report.face_segments[face].add(base + seg)


def _direction_tag(vec: np.ndarray) -> int:
    if abs(vec[0]) >= abs(vec[1]):
        return TAG_POS_U if vec[0] >= 0 else TAG_NEG_U
    return TAG_POS_V if vec[1] >= 0 else TAG_NEG_V


def _vec_angle(v0: np.ndarray, v1: np.ndarray) -> float:
    n0 = np.linalg.norm(v0)
    n1 = np.linalg.norm(v1)
    if n0 < 1e-12 or n1 < 1e-12:
        return 0.0
    return float(np.arccos(np.clip(np.dot(v0, v1) / (n0 * n1), -1.0, 1.0)))


def edge_colors(para: Mesh) -> np.ndarray:
    """Ex3 uint8 colors: boundary edges highlighted, interior edges grey."""
    colors = np.empty((para.num_edges, 3), dtype=np.uint8)
    boundary = para.boundary_edge_mask
    colors[boundary] = BOUNDARY_EDGE_COLOR
    colors[~boundary] = INTERIOR_EDGE_COLOR
    return colors
