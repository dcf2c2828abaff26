"""
Parameterization mesh built from a mesh's texture coordinates.

The UV mesh shares face ids and corner order with the 3D mesh, so the i-th
half-edge of face f corresponds in both meshes. Seams appear as UV boundary
edges whose 3D edge is interior.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
import numpy as np

from meshscope.core.errors import TopologyError
from meshscope.core.mesh import INVALID, Mesh

logger = logging.getLogger("meshscope.uv.parameterization")


@dataclass
class ParameterizationMesh:
    """
    UV embedding of a mesh with half-edge correspondence.

    Attributes:
        mesh: The 3D mesh
        para: Mesh over texture coordinates (z = 0)
        h_mesh2para: UV half-edge id per 3D half-edge (-1 on 3D boundary half-edges)
        h_para2mesh: 3D half-edge id per UV half-edge (-1 on UV boundary half-edges)
    """
    mesh: Mesh
    para: Mesh
    h_mesh2para: np.ndarray
    h_para2mesh: np.ndarray

    @classmethod
    def from_mesh(cls, mesh: Mesh) -> ParameterizationMesh:
        """
        Build the UV mesh from ``mesh.texcoords`` / ``mesh.face_texcoords``.

        Raises:
            ValueError: If the mesh carries no UV data
            TopologyError: If the UV faces do not form a manifold mesh
        """
        if not mesh.has_uv:
            raise ValueError(f"Mesh '{mesh.name}' has no texture coordinates")

        uv = mesh.texcoords
        para = Mesh(
            vertices=np.column_stack([uv[:, 0], uv[:, 1], np.zeros(len(uv))]),
            faces=list(mesh.face_texcoords),
            name=f"{mesh.name}_uv",
        )

        h_mesh2para = np.full(mesh.num_halfedges, INVALID, dtype=np.int64)
        h_para2mesh = np.full(para.num_halfedges, INVALID, dtype=np.int64)
        for f in range(mesh.num_faces):
            for h3, h2 in zip(mesh.face_halfedges(f), para.face_halfedges(f)):
                h_mesh2para[h3] = h2
                h_para2mesh[h2] = h3

        logger.debug(
            f"Parameterization of '{mesh.name}': {para.num_vertices} uv vertices, "
            f"{len(para.boundary_loops())} boundary loops"
        )
        return cls(mesh=mesh, para=para, h_mesh2para=h_mesh2para, h_para2mesh=h_para2mesh)

    def para_vertex_pair(self, h: int) -> tuple[int, int]:
        """UV (from, to) vertex ids of the UV half-edge matching 3D half-edge ``h``."""
        hp = self.h_mesh2para[h]
        if hp == INVALID:
            raise TopologyError(f"3D half-edge {h} has no UV counterpart")
        return int(self.para.he_from[hp]), int(self.para.he_to[hp])

    def mesh_vertex_pair(self, hp: int) -> tuple[int, int]:
        """3D (from, to) vertex ids of the 3D half-edge matching UV half-edge ``hp``."""
        h = self.h_para2mesh[hp]
        if h == INVALID:
            raise TopologyError(f"UV half-edge {hp} has no 3D counterpart")
        return int(self.mesh.he_from[h]), int(self.mesh.he_to[h])

    @property
    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        """UV bounding box (min, max) as 2D points."""
        min_b, max_b = self.para.bounds
        return min_b[:2], max_b[:2]

    def cut_edges(self) -> np.ndarray:
        return cut_edges(self.mesh)

    def cut_length(self) -> float:
        return cut_length(self.mesh)


def cut_edges(mesh: Mesh) -> np.ndarray:
    """
    Per-edge seam flag.

    An interior edge is a cut when its two half-edges disagree on the
    texture index at either endpoint. Boundary edges are never flagged.
    """
    if not mesh.has_uv:
        raise ValueError(f"Mesh '{mesh.name}' has no texture coordinates")

    h0 = np.arange(0, mesh.num_halfedges, 2)
    h1 = h0 + 1
    interior = (mesh.he_face[h0] != INVALID) & (mesh.he_face[h1] != INVALID)

    to0 = mesh.he_texcoord[h0]
    to1 = mesh.he_texcoord[h1]
    from0 = mesh.he_texcoord[np.where(interior, mesh.he_prev[h0], h0)]
    from1 = mesh.he_texcoord[np.where(interior, mesh.he_prev[h1], h1)]

    return interior & ((to0 != from1) | (to1 != from0))


def cut_length(mesh: Mesh) -> float:
    """
    Seam length of the unfolded parameterization.

    Boundary edges count once; cut edges count twice because each shows up
    as two boundary edges in UV space.
    """
    lengths = mesh.edge_lengths()
    boundary = mesh.boundary_edge_mask
    cuts = cut_edges(mesh)
    return float(lengths[boundary].sum() + 2.0 * lengths[cuts].sum())


def boundary_length_ratio(mesh: Mesh) -> float:
    """Cut length relative to the 3D bounding-box diagonal."""
    diag = mesh.diagonal
    if diag <= 0:
        return 0.0
    return cut_length(mesh) / diag
