"""
Half-edge mesh with integer-indexed arenas.

Vertices, faces, half-edges and edges are plain integer ids into parallel
numpy arrays. Half-edges are allocated in opposite pairs, so the opposite of
half-edge ``h`` is ``h ^ 1`` and the edge id is ``h // 2``. Every edge owns
exactly two half-edges; a side without a face is a boundary half-edge with
face ``-1``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence
import numpy as np

from meshscope.core.errors import TopologyError

INVALID = -1


@dataclass
class Mesh:
    """
    Polygon mesh with half-edge connectivity.

    Attributes:
        vertices: Nx3 array of vertex positions
        faces: list of vertex-id tuples (arity >= 3, no repeated vertices)
        texcoords: Optional Tx2 array of texture coordinates
        face_texcoords: Optional per-face texcoord ids, parallel to ``faces``
        name: Optional mesh identifier
        metadata: Additional mesh properties
    """
    vertices: np.ndarray
    faces: list
    texcoords: Optional[np.ndarray] = None
    face_texcoords: Optional[list] = None
    name: str = "unnamed"
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        """Validate input and build the half-edge arrays."""
        vertices = np.asarray(self.vertices, dtype=np.float64)
        if vertices.size == 0:
            vertices = vertices.reshape(0, 3)
        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise ValueError(f"Vertices must be Nx3, got shape {vertices.shape}")
        self.vertices = vertices

        self.faces = [tuple(int(v) for v in face) for face in self.faces]
        n_verts = len(self.vertices)
        for fi, face in enumerate(self.faces):
            if len(face) < 3:
                raise ValueError(f"Face {fi} has {len(face)} vertices, need at least 3")
            if len(set(face)) != len(face):
                raise ValueError(f"Face {fi} repeats a vertex: {face}")
            if min(face) < 0 or max(face) >= n_verts:
                raise ValueError(f"Face {fi} references a vertex outside 0..{n_verts - 1}")

        if self.face_texcoords is not None:
            if self.texcoords is None:
                raise ValueError("face_texcoords given without texcoords")
            self.texcoords = np.asarray(self.texcoords, dtype=np.float64).reshape(-1, 2)
            self.face_texcoords = [tuple(int(t) for t in ft) for ft in self.face_texcoords]
            if len(self.face_texcoords) != len(self.faces):
                raise ValueError("face_texcoords must have one entry per face")
            n_tex = len(self.texcoords)
            for fi, (face, ft) in enumerate(zip(self.faces, self.face_texcoords)):
                if len(ft) != len(face):
                    raise ValueError(f"Face {fi} has {len(face)} vertices but {len(ft)} texcoords")
                if min(ft) < 0 or max(ft) >= n_tex:
                    raise ValueError(f"Face {fi} references a texcoord outside 0..{n_tex - 1}")
        elif self.texcoords is not None:
            self.texcoords = np.asarray(self.texcoords, dtype=np.float64).reshape(-1, 2)

        self.normals: Optional[np.ndarray] = None
        self.face_normals: Optional[np.ndarray] = None
        self._build_topology()

    # ------------------------------------------------------------------
    # Construction

    def _build_topology(self) -> None:
        n_verts = len(self.vertices)
        edge_ids: dict[tuple[int, int], int] = {}
        he_from: list[int] = []
        he_to: list[int] = []
        he_face: list[int] = []
        face_loops: list[list[int]] = []

        for fi, face in enumerate(self.faces):
            n = len(face)
            loop = []
            for i in range(n):
                a, b = face[i], face[(i + 1) % n]
                key = (a, b) if a < b else (b, a)
                e = edge_ids.get(key)
                if e is None:
                    e = len(edge_ids)
                    edge_ids[key] = e
                    he_from.extend((a, b))
                    he_to.extend((b, a))
                    he_face.extend((fi, INVALID))
                    h = 2 * e
                else:
                    h = 2 * e + 1
                    if he_face[h] != INVALID:
                        raise TopologyError(f"Edge ({a}, {b}) is shared by more than two faces")
                    if he_from[h] != a:
                        raise TopologyError(
                            f"Faces around edge ({a}, {b}) have inconsistent orientation"
                        )
                    he_face[h] = fi
                loop.append(h)
            face_loops.append(loop)

        n_he = len(he_from)
        self.he_from = np.array(he_from, dtype=np.int64)
        self.he_to = np.array(he_to, dtype=np.int64)
        self.he_face = np.array(he_face, dtype=np.int64)
        self.he_opposite = np.arange(n_he, dtype=np.int64) ^ 1
        self.he_next = np.full(n_he, INVALID, dtype=np.int64)
        self.he_prev = np.full(n_he, INVALID, dtype=np.int64)
        self.face_halfedge = np.full(len(self.faces), INVALID, dtype=np.int64)

        for fi, loop in enumerate(face_loops):
            n = len(loop)
            for i in range(n):
                self.he_next[loop[i]] = loop[(i + 1) % n]
                self.he_prev[loop[(i + 1) % n]] = loop[i]
            self.face_halfedge[fi] = loop[0]

        # Link boundary half-edges into loops by rotating around their tip
        for h in np.flatnonzero(self.he_face == INVALID):
            g = h ^ 1
            for _ in range(n_he):
                g = self.he_prev[g] ^ 1
                if self.he_face[g] == INVALID:
                    self.he_next[h] = g
                    self.he_prev[g] = h
                    break
            else:
                raise TopologyError(f"Could not close boundary loop at half-edge {h}")

        self.he_texcoord = np.full(n_he, INVALID, dtype=np.int64)
        if self.face_texcoords is not None:
            for loop, ft in zip(face_loops, self.face_texcoords):
                n = len(loop)
                for i, h in enumerate(loop):
                    self.he_texcoord[h] = ft[(i + 1) % n]

        self.vertex_halfedge = np.full(n_verts, INVALID, dtype=np.int64)
        all_he = np.arange(n_he, dtype=np.int64)
        self.vertex_halfedge[self.he_from[::-1]] = all_he[::-1]
        boundary_he = all_he[self.he_face == INVALID]
        self.vertex_halfedge[self.he_from[boundary_he]] = boundary_he

        # CSR index of outgoing half-edges per vertex
        self._out_order = np.argsort(self.he_from, kind="stable")
        counts = np.bincount(self.he_from, minlength=n_verts) if n_he else np.zeros(n_verts, dtype=np.int64)
        self._out_ptr = np.concatenate([[0], np.cumsum(counts)]).astype(np.int64)

        self._boundary_vertices = np.zeros(n_verts, dtype=bool)
        self._boundary_vertices[self.he_from[boundary_he]] = True
        self._boundary_vertices[counts == 0] = True

    # ------------------------------------------------------------------
    # Counts and bounds

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    @property
    def num_halfedges(self) -> int:
        return len(self.he_from)

    @property
    def num_edges(self) -> int:
        return len(self.he_from) // 2

    @property
    def has_uv(self) -> bool:
        return self.face_texcoords is not None

    @property
    def is_triangular(self) -> bool:
        return all(len(face) == 3 for face in self.faces)

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Get axis-aligned bounding box (min, max)."""
        if self.num_vertices == 0:
            return np.zeros(3), np.zeros(3)
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    @property
    def center(self) -> np.ndarray:
        """Get bounding box center."""
        min_b, max_b = self.bounds
        return (min_b + max_b) / 2

    @property
    def diagonal(self) -> float:
        """Get bounding box diagonal length."""
        min_b, max_b = self.bounds
        return float(np.linalg.norm(max_b - min_b))

    @property
    def edge_vertices(self) -> np.ndarray:
        """Ex2 array of (from, to) for the first half-edge of each edge."""
        return np.column_stack([self.he_from[0::2], self.he_to[0::2]])

    # ------------------------------------------------------------------
    # Boundary queries

    @property
    def boundary_vertex_mask(self) -> np.ndarray:
        return self._boundary_vertices.copy()

    @property
    def boundary_edge_mask(self) -> np.ndarray:
        face_pairs = self.he_face.reshape(-1, 2)
        return (face_pairs == INVALID).any(axis=1)

    def is_boundary_vertex(self, v: int) -> bool:
        return bool(self._boundary_vertices[v])

    def is_boundary_halfedge(self, h: int) -> bool:
        return bool(self.he_face[h] == INVALID)

    def is_boundary_edge(self, e: int) -> bool:
        return bool(self.he_face[2 * e] == INVALID or self.he_face[2 * e + 1] == INVALID)

    def boundary_loops(self) -> list[list[int]]:
        """Boundary half-edge ids grouped into loops, each in ``next`` order."""
        visited = np.zeros(self.num_halfedges, dtype=bool)
        loops = []
        for h in np.flatnonzero(self.he_face == INVALID):
            if visited[h]:
                continue
            loop = []
            g = int(h)
            while not visited[g]:
                visited[g] = True
                loop.append(g)
                g = int(self.he_next[g])
            loops.append(loop)
        return loops

    # ------------------------------------------------------------------
    # Neighborhood traversal

    def outgoing_halfedges(self, v: int) -> np.ndarray:
        return self._out_order[self._out_ptr[v]:self._out_ptr[v + 1]]

    def vertex_neighbors(self, v: int) -> np.ndarray:
        """One-ring vertex ids of ``v``."""
        return self.he_to[self.outgoing_halfedges(v)]

    def vertex_faces(self, v: int) -> np.ndarray:
        faces = self.he_face[self.outgoing_halfedges(v)]
        return faces[faces != INVALID]

    def find_halfedge(self, a: int, b: int) -> int:
        """Half-edge from ``a`` to ``b``, or ``INVALID`` if they are not adjacent."""
        if not (0 <= a < self.num_vertices and 0 <= b < self.num_vertices):
            return INVALID
        out = self.outgoing_halfedges(a)
        hits = out[self.he_to[out] == b]
        return int(hits[0]) if len(hits) else INVALID

    def face_halfedges(self, f: int) -> list[int]:
        """Half-edges of face ``f``; the i-th runs from corner i to corner i+1."""
        start = int(self.face_halfedge[f])
        loop = [start]
        h = int(self.he_next[start])
        while h != start:
            loop.append(h)
            h = int(self.he_next[h])
        return loop

    def face_vertices(self, f: int) -> tuple[int, ...]:
        return self.faces[f]

    def edge_halfedges(self, e: int) -> tuple[int, int]:
        return 2 * e, 2 * e + 1

    def halfedge_vector(self, h: int) -> np.ndarray:
        return self.vertices[self.he_to[h]] - self.vertices[self.he_from[h]]

    def edge_lengths(self) -> np.ndarray:
        ev = self.edge_vertices
        return np.linalg.norm(self.vertices[ev[:, 1]] - self.vertices[ev[:, 0]], axis=1)

    def edge_length(self, e: int) -> float:
        return float(np.linalg.norm(self.halfedge_vector(2 * e)))

    # ------------------------------------------------------------------
    # Index buffers

    def triangle_indices(self) -> np.ndarray:
        """Fan-triangulate every face into an Mx3 index array."""
        return self._fan_triangles()[0]

    def _fan_triangles(self) -> tuple[np.ndarray, np.ndarray]:
        tris = []
        owners = []
        for fi, face in enumerate(self.faces):
            for tri in triangulate_face(face):
                tris.append(tri)
                owners.append(fi)
        if not tris:
            return np.zeros((0, 3), dtype=np.int64), np.zeros(0, dtype=np.int64)
        return np.array(tris, dtype=np.int64), np.array(owners, dtype=np.int64)

    def edge_indices(self) -> np.ndarray:
        """
        Undirected edges as an Ex2 array of sorted (min, max) pairs.

        A half-edge contributes when it is a boundary half-edge or the smaller
        id of its opposite pair; duplicates are then collapsed.
        """
        if self.num_halfedges == 0:
            return np.zeros((0, 2), dtype=np.int64)
        ids = np.arange(self.num_halfedges)
        canonical = (self.he_face == INVALID) | (ids < self.he_opposite)
        pairs = np.column_stack([self.he_from[canonical], self.he_to[canonical]])
        pairs.sort(axis=1)
        return np.unique(pairs, axis=0)

    # ------------------------------------------------------------------
    # Geometry

    def compute_normals(self) -> None:
        """
        Compute face and vertex normals.

        Face normals sum the cross products of the face's fan triangles
        (a plain cross product for triangles). Vertex normals are the
        normalized, unweighted average of incident unit face normals.
        """
        self.face_normals = _safe_normalize(self._face_vector_areas())

        self.normals = np.zeros_like(self.vertices)
        for i, face in enumerate(self.faces):
            for vi in face:
                self.normals[vi] += self.face_normals[i]
        self.normals = _safe_normalize(self.normals)

    def _face_vector_areas(self) -> np.ndarray:
        tris, owners = self._fan_triangles()
        vector_areas = np.zeros((self.num_faces, 3))
        if len(tris):
            p0 = self.vertices[tris[:, 0]]
            cross = np.cross(self.vertices[tris[:, 1]] - p0, self.vertices[tris[:, 2]] - p0)
            np.add.at(vector_areas, owners, cross)
        return vector_areas

    def face_areas(self) -> np.ndarray:
        """Planar polygon area per face."""
        return 0.5 * np.linalg.norm(self._face_vector_areas(), axis=1)

    def polygon_area(self, f: int) -> float:
        """Planar area of face ``f`` via the Newell normal."""
        pts = self.vertices[list(self.faces[f])]
        shifted = np.roll(pts, -1, axis=0)
        return float(0.5 * np.linalg.norm(np.cross(pts, shifted).sum(axis=0)))

    def triangle_areas(self) -> np.ndarray:
        """Area of each fan triangle, aligned with ``triangle_indices()``."""
        tris = self.triangle_indices()
        if not len(tris):
            return np.zeros(0)
        p0 = self.vertices[tris[:, 0]]
        cross = np.cross(self.vertices[tris[:, 1]] - p0, self.vertices[tris[:, 2]] - p0)
        return 0.5 * np.linalg.norm(cross, axis=1)

    def normalize(self, target_extent: float = 2.0) -> tuple[np.ndarray, float]:
        """
        Center the bounding box at the origin and scale its longest axis
        to ``target_extent``.

        Returns:
            (center, scale) that were applied; normals are recomputed
            if they had been computed before.
        """
        center = self.center
        min_b, max_b = self.bounds
        extent = float((max_b - min_b).max()) if self.num_vertices else 0.0
        scale = target_extent / extent if extent > 0 else 1.0
        self.vertices = (self.vertices - center) * scale
        if self.normals is not None or self.face_normals is not None:
            self.compute_normals()
        return center, scale

    # ------------------------------------------------------------------
    # Conversion

    def copy(self) -> Mesh:
        """Create a deep copy."""
        mesh = Mesh(
            vertices=self.vertices.copy(),
            faces=list(self.faces),
            texcoords=self.texcoords.copy() if self.texcoords is not None else None,
            face_texcoords=list(self.face_texcoords) if self.face_texcoords is not None else None,
            name=self.name,
            metadata=self.metadata.copy(),
        )
        mesh.normals = self.normals.copy() if self.normals is not None else None
        mesh.face_normals = self.face_normals.copy() if self.face_normals is not None else None
        return mesh

    def to_trimesh(self):
        """Convert to a (fan-triangulated) trimesh object."""
        import trimesh
        return trimesh.Trimesh(vertices=self.vertices, faces=self.triangle_indices(), process=False)

    def __repr__(self) -> str:
        uv = ", uv" if self.has_uv else ""
        return (
            f"Mesh('{self.name}', {self.num_vertices} verts, {self.num_faces} faces, "
            f"{self.num_edges} edges{uv})"
        )


def triangulate_face(face: Sequence[int]) -> list[tuple[int, int, int]]:
    """Fan triangulation from the first corner: (v0, vi, vi+1) for i in 1..k-2."""
    v0 = face[0]
    return [(v0, face[i], face[i + 1]) for i in range(1, len(face) - 1)]


def _safe_normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms = np.where(norms > 1e-10, norms, 1.0)
    return vectors / norms
