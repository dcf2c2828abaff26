"""
Discrete curvature estimation on polygon meshes.

Per-vertex Gaussian curvature from the angle defect over a mixed Voronoi
area, and the mean-curvature scalar used by the curvature view. Boundary
vertices are pinned to zero and excluded from normalization.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Optional
import numpy as np

from meshscope.core.mesh import INVALID, Mesh

logger = logging.getLogger("meshscope.analysis.curvature")

EPSILON = 1e-4


class CurvatureType(Enum):
    """Scalar fields the curvature view can display."""
    NONE = "none"
    GAUSSIAN = "gaussian"
    MEAN = "mean"
    MAX = "max"


class CurvatureAnalyzer:
    """
    Compute per-vertex curvature scalars.

    Every face corner at a vertex contributes its interior angle and a
    mixed-area term from the triangle (v, next, next-next). For triangles
    that triangle is the face itself; n-gons are handled corner by corner,
    independent of any fan triangulation.
    """

    def __init__(self, mesh: Mesh, epsilon: float = EPSILON, gaussian_area: str = "mixed"):
        if gaussian_area not in ("mixed", "barycentric"):
            raise ValueError(f"Unknown gaussian_area policy: {gaussian_area}")
        self.mesh = mesh
        self.epsilon = epsilon
        self.gaussian_area = gaussian_area
        self._cache: dict = {}

    @property
    def boundary_mask(self) -> np.ndarray:
        return self.mesh.boundary_vertex_mask

    def compute(self, curvature_type: CurvatureType) -> np.ndarray:
        """Compute the selected curvature, normalized to [0, 1] over interior vertices."""
        key = ("normalized", curvature_type)
        if key in self._cache:
            return self._cache[key]

        start_time = time.time()
        values = normalize_scalar(self.raw(curvature_type), self.boundary_mask)
        elapsed = time.time() - start_time
        logger.debug(f"Curvature {curvature_type.value}: {elapsed:.3f}s")

        self._cache[key] = values
        return values

    def raw(self, curvature_type: CurvatureType) -> np.ndarray:
        """Selected curvature before normalization; boundary vertices are 0."""
        if curvature_type == CurvatureType.GAUSSIAN:
            return self.gaussian()
        if curvature_type == CurvatureType.MEAN:
            return self.mean()
        if curvature_type == CurvatureType.MAX:
            return self.gaussian() + self.mean()
        if curvature_type == CurvatureType.NONE:
            return np.zeros(self.mesh.num_vertices)
        raise ValueError(f"Unknown curvature type: {curvature_type}")

    def gaussian(self) -> np.ndarray:
        """
        Gaussian curvature via angle defect.

        K = (2π - Σ angles) / A, with A the mixed Voronoi area (or the
        barycentric area when configured). K = 0 where A <= epsilon.
        """
        if "gaussian" in self._cache:
            return self._cache["gaussian"]

        area = self.mixed_areas() if self.gaussian_area == "mixed" else self.barycentric_areas()
        defect = self.angle_defects()
        gaussian = np.zeros(self.mesh.num_vertices)
        valid = (area > self.epsilon) & ~self.boundary_mask
        gaussian[valid] = defect[valid] / area[valid]

        self._cache["gaussian"] = gaussian
        return gaussian

    def mean(self) -> np.ndarray:
        """
        Mean-curvature scalar: H = 0.5 * sqrt(A_mixed).

        This is the quantity the curvature view is calibrated against, not
        the Laplace-Beltrami mean curvature. H = 0 where A_mixed <= epsilon.
        """
        if "mean" in self._cache:
            return self._cache["mean"]

        area = self.mixed_areas()
        mean = np.zeros(self.mesh.num_vertices)
        valid = (area > self.epsilon) & ~self.boundary_mask
        mean[valid] = 0.5 * np.sqrt(area[valid])

        self._cache["mean"] = mean
        return mean

    def angle_defects(self) -> np.ndarray:
        """2π minus the sum of interior face angles; 0 on boundary vertices."""
        if "defect" in self._cache:
            return self._cache["defect"]

        h, v, a, _, c = self._interior_corners()
        verts = self.mesh.vertices
        angles = _angles_between(verts[a] - verts[v], verts[c] - verts[v])

        angle_sum = np.zeros(self.mesh.num_vertices)
        np.add.at(angle_sum, v, angles)
        defect = 2 * np.pi - angle_sum
        defect[self.boundary_mask] = 0.0

        self._cache["defect"] = defect
        return defect

    def mixed_areas(self) -> np.ndarray:
        """
        Mixed Voronoi area per vertex.

        Non-obtuse corner triangles contribute (|e1|² cot β + |e2|² cot α) / 8
        with α, β the angles at the two other corners. Obtuse triangles fall
        back to half the area when the angle at v is obtuse and a quarter
        otherwise. Triangles with area <= epsilon contribute nothing.
        """
        if "mixed" in self._cache:
            return self._cache["mixed"]

        _, v, a, b, _ = self._interior_corners()
        verts = self.mesh.vertices
        pv, pa, pb = verts[v], verts[a], verts[b]
        e1 = pa - pv
        e2 = pb - pv

        double_area = np.linalg.norm(np.cross(e1, e2), axis=1)
        area = 0.5 * double_area

        dot_v = np.einsum("ij,ij->i", e1, e2)
        dot_a = np.einsum("ij,ij->i", pv - pa, pb - pa)
        dot_b = np.einsum("ij,ij->i", pv - pb, pa - pb)
        non_obtuse = (dot_v >= 0) & (dot_a >= 0) & (dot_b >= 0)
        usable = area > self.epsilon

        safe_double = np.where(usable, double_area, 1.0)
        cot_a = dot_a / safe_double
        cot_b = dot_b / safe_double
        voronoi = (np.einsum("ij,ij->i", e1, e1) * cot_b + np.einsum("ij,ij->i", e2, e2) * cot_a) / 8.0
        fallback = np.where(dot_v < 0, area / 2.0, area / 4.0)

        contrib = np.where(non_obtuse, voronoi, fallback)
        contrib = np.where(usable, contrib, 0.0)

        mixed = np.zeros(self.mesh.num_vertices)
        np.add.at(mixed, v, contrib)
        mixed[self.boundary_mask] = 0.0

        self._cache["mixed"] = mixed
        return mixed

    def barycentric_areas(self) -> np.ndarray:
        """
        One third of the area of each corner triangle, summed per vertex.

        The corner triangle at v spans (prev, v, next) within its face.
        """
        if "barycentric" in self._cache:
            return self._cache["barycentric"]

        _, v, a, _, c = self._interior_corners()
        verts = self.mesh.vertices
        cross = np.cross(verts[a] - verts[v], verts[c] - verts[v])
        area = np.zeros(self.mesh.num_vertices)
        np.add.at(area, v, np.linalg.norm(cross, axis=1) / 6.0)
        area[self.boundary_mask] = 0.0

        self._cache["barycentric"] = area
        return area

    def _interior_corners(self) -> tuple[np.ndarray, ...]:
        """
        Face corners as parallel arrays (h, v, a, b, c).

        ``h`` is an outgoing face half-edge of ``v``; ``a`` its tip, ``b`` the
        tip of the next half-edge and ``c`` the vertex before ``v`` in the face.
        """
        if "corners" in self._cache:
            return self._cache["corners"]

        mesh = self.mesh
        h = np.flatnonzero(mesh.he_face != INVALID)
        v = mesh.he_from[h]
        a = mesh.he_to[h]
        b = mesh.he_to[mesh.he_next[h]]
        c = mesh.he_from[mesh.he_prev[h]]

        self._cache["corners"] = (h, v, a, b, c)
        return self._cache["corners"]

    def compute_all(self) -> dict[CurvatureType, np.ndarray]:
        """Compute all curvature measures."""
        return {ct: self.compute(ct) for ct in CurvatureType}


def normalize_scalar(values: np.ndarray, boundary_mask: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Rescale interior values linearly to [0, 1].

    Boundary vertices are forced to 0 and do not take part in the min/max
    scan. With no interior vertices, or when all interior values are equal,
    the values are returned unscaled.
    """
    values = np.array(values, dtype=np.float64)
    if boundary_mask is None:
        boundary_mask = np.zeros(len(values), dtype=bool)
    values[boundary_mask] = 0.0

    interior = ~boundary_mask
    if not interior.any():
        return values

    lo = values[interior].min()
    hi = values[interior].max()
    span = hi - lo
    if span > 0:
        values[interior] = (values[interior] - lo) / span
    return values


def compute_curvature(
    mesh: Mesh,
    curvature_type: CurvatureType = CurvatureType.GAUSSIAN,
    epsilon: float = EPSILON,
    gaussian_area: str = "mixed",
) -> np.ndarray:
    """Convenience function to compute a normalized curvature field."""
    analyzer = CurvatureAnalyzer(mesh, epsilon=epsilon, gaussian_area=gaussian_area)
    return analyzer.compute(curvature_type)


def curvature_colors(values: np.ndarray) -> np.ndarray:
    """Map a [0, 1] scalar field to RGB floats on a blue-to-red ramp."""
    t = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
    return np.column_stack([t, 1.0 - np.abs(2.0 * t - 1.0), 1.0 - t])


def _angles_between(v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """Angle between row vectors; 0 for degenerate rows."""
    n1 = np.linalg.norm(v1, axis=1)
    n2 = np.linalg.norm(v2, axis=1)
    ok = (n1 > 1e-12) & (n2 > 1e-12)
    denom = np.where(ok, n1 * n2, 1.0)
    cos_angle = np.clip(np.einsum("ij,ij->i", v1, v2) / denom, -1.0, 1.0)
    return np.where(ok, np.arccos(cos_angle), 0.0)
