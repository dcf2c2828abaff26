"""
Per-face distortion of a UV parameterization.

Each triangle is expressed in a local 2D frame and compared with its UV
image through the Jacobian J = M_uv · M_mesh⁻¹. Mesh lengths are first scaled
by sqrt(total_uv_area / total_area), so the metric ignores global scale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
import numpy as np

from meshscope.core.mesh import Mesh
from meshscope.uv.parameterization import ParameterizationMesh, boundary_length_ratio, cut_length

logger = logging.getLogger("meshscope.uv.distortion")

AREA_EPSILON = 1e-12


@dataclass
class DistortionReport:
    """Distortion statistics for one parameterization."""
    per_face: np.ndarray
    singular_values: np.ndarray
    face_areas: np.ndarray
    flipped: set[int] = field(default_factory=set)
    degenerate_faces: set[int] = field(default_factory=set)
    total_area: float = 0.0
    total_uv_area: float = 0.0
    scale_factor: float = 1.0
    average: float = float("nan")
    n_positive: int = 0
    n_negative: int = 0
    cut_length: float = 0.0
    boundary_length_ratio: float = 0.0

    @property
    def max_distortion(self) -> float:
        finite = self.per_face[np.isfinite(self.per_face)]
        return float(finite.max()) if len(finite) else float("nan")

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            "UV Distortion:",
            f"  Average (area-weighted): {self.average:.6f}",
            f"  Max: {self.max_distortion:.6f}",
            f"  Flipped faces: {len(self.flipped)}",
            f"  Degenerate faces: {len(self.degenerate_faces)}",
            f"  Cut length: {self.cut_length:.6f}",
            f"  Boundary length ratio: {self.boundary_length_ratio:.6f}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "average": self.average,
            "max": self.max_distortion,
            "flipped": sorted(self.flipped),
            "degenerate_faces": sorted(self.degenerate_faces),
            "n_positive": self.n_positive,
            "n_negative": self.n_negative,
            "total_area": self.total_area,
            "total_uv_area": self.total_uv_area,
            "scale_factor": self.scale_factor,
            "cut_length": self.cut_length,
            "boundary_length_ratio": self.boundary_length_ratio,
        }


class DistortionAnalyzer:
    """Compute the symmetric stretch distortion of a triangle parameterization."""

    def __init__(self, param: ParameterizationMesh, area_epsilon: float = AREA_EPSILON):
        self.param = param
        self.mesh = param.mesh
        self.area_epsilon = area_epsilon

    def analyze(self) -> DistortionReport:
        mesh = self.mesh
        if not mesh.is_triangular:
            raise ValueError("Distortion analysis requires a triangle mesh")

        n_faces = mesh.num_faces
        para = self.param.para

        # Corners come from the half-edge tips, UV tips via the correspondence
        h0 = mesh.face_halfedge
        h1 = mesh.he_next[h0]
        face_he = np.column_stack([h0, h1, mesh.he_next[h1]])
        corners = mesh.he_to[face_he]
        uv_corners = para.he_to[self.param.h_mesh2para[face_he]]

        p = mesh.vertices[corners]
        q = para.vertices[uv_corners, :2]
        m1 = p[:, 1] - p[:, 0]
        m2 = p[:, 2] - p[:, 0]
        u1 = q[:, 1] - q[:, 0]
        u2 = q[:, 2] - q[:, 0]

        face_areas = 0.5 * np.linalg.norm(np.cross(m1, m2), axis=1)
        uv_areas = 0.5 * np.abs(u1[:, 0] * u2[:, 1] - u1[:, 1] * u2[:, 0])
        total_area = float(face_areas.sum())
        total_uv_area = float(uv_areas.sum())

        report = DistortionReport(
            per_face=np.full(n_faces, np.nan),
            singular_values=np.full((n_faces, 2), np.nan),
            face_areas=face_areas,
            total_area=total_area,
            total_uv_area=total_uv_area,
            cut_length=cut_length(mesh),
            boundary_length_ratio=boundary_length_ratio(mesh),
        )
        if total_area <= self.area_epsilon or total_uv_area <= self.area_epsilon:
            logger.warning(
                f"Cannot measure distortion of '{mesh.name}': "
                f"area={total_area:.3g}, uv area={total_uv_area:.3g}"
            )
            report.degenerate_faces = set(range(n_faces))
            return report

        factor = np.sqrt(total_uv_area / total_area)
        report.scale_factor = float(factor)
        m1 = m1 * factor
        m2 = m2 * factor

        # Local frame: e1 along the first edge, e2 = n × e1 in the face plane
        normals = np.cross(m1, m2)
        len1 = np.linalg.norm(m1, axis=1)
        normal_len = np.linalg.norm(normals, axis=1)
        valid = (face_areas > self.area_epsilon) & (len1 > 0) & (normal_len > 0)

        safe_len1 = np.where(valid, len1, 1.0)[:, None]
        safe_nlen = np.where(valid, normal_len, 1.0)[:, None]
        e1 = m1 / safe_len1
        e2 = np.cross(normals / safe_nlen, e1)

        mesh_m = np.zeros((n_faces, 2, 2))
        mesh_m[:, 0, 0] = len1
        mesh_m[:, 0, 1] = np.einsum("ij,ij->i", m2, e1)
        mesh_m[:, 1, 1] = np.einsum("ij,ij->i", m2, e2)

        para_m = np.zeros((n_faces, 2, 2))
        para_m[:, 0, 0] = u1[:, 0]
        para_m[:, 1, 0] = u1[:, 1]
        para_m[:, 0, 1] = u2[:, 0]
        para_m[:, 1, 1] = u2[:, 1]

        det_p = np.linalg.det(para_m)
        negative = det_p <= 0
        report.n_positive = int((~negative).sum())
        report.n_negative = int(negative.sum())
        report.flipped = set(np.flatnonzero(negative).tolist())
        para_m[negative, 0, :] *= -1.0

        # M_mesh is upper triangular, invert in closed form
        det_m = mesh_m[:, 0, 0] * mesh_m[:, 1, 1]
        valid &= np.abs(det_m) > self.area_epsilon
        safe_det = np.where(valid, det_m, 1.0)
        inv_m = np.zeros_like(mesh_m)
        inv_m[:, 0, 0] = mesh_m[:, 1, 1] / safe_det
        inv_m[:, 0, 1] = -mesh_m[:, 0, 1] / safe_det
        inv_m[:, 1, 1] = mesh_m[:, 0, 0] / safe_det

        jacobian = para_m @ inv_m
        sigma = np.linalg.svd(jacobian, compute_uv=False)
        s_max = sigma[:, 0]
        s_min = sigma[:, 1]
        valid &= s_min > 1e-12

        safe_max = np.where(valid, s_max, 1.0)
        safe_min = np.where(valid, s_min, 1.0)
        distortion = 0.25 * (safe_max ** 2 + safe_min ** 2 + 1.0 / safe_max ** 2 + 1.0 / safe_min ** 2)

        report.per_face = np.where(valid, distortion, np.nan)
        report.singular_values = np.where(valid[:, None], sigma, np.nan)
        report.degenerate_faces = set(np.flatnonzero(~valid).tolist())

        if valid.any():
            report.average = float((distortion[valid] * face_areas[valid]).sum() / total_area)
        if report.degenerate_faces:
            logger.info(f"Skipped {len(report.degenerate_faces)} degenerate faces in distortion")

        logger.debug(
            f"Distortion of '{mesh.name}': avg={report.average:.6f}, "
            f"flipped={len(report.flipped)}, BL={report.boundary_length_ratio:.6f}"
        )
        return report


def compute_distortion(mesh: Mesh) -> DistortionReport:
    """Convenience function: build the parameterization and analyze it."""
    return DistortionAnalyzer(ParameterizationMesh.from_mesh(mesh)).analyze()


def distortion_colors(per_face: np.ndarray, cap: float = 4.0) -> np.ndarray:
    """
    Map per-face distortion to RGB floats.

    1.0 (no distortion) is white, ``cap`` and above is red; degenerate
    faces (nan) are grey.
    """
    values = np.asarray(per_face, dtype=np.float64)
    t = np.clip((np.nan_to_num(values, nan=1.0) - 1.0) / max(cap - 1.0, 1e-12), 0.0, 1.0)
    colors = np.column_stack([np.ones_like(t), 1.0 - t, 1.0 - t])
    colors[~np.isfinite(values)] = 0.5
    return colors
