"""
Half-edge mesh tests.

Covers construction, connectivity queries, index buffers and geometry.
"""

import pytest
import numpy as np

from meshscope.core.errors import TopologyError
from meshscope.core.mesh import INVALID, Mesh, triangulate_face
from meshscope.test_meshes import create_cube, create_grid, create_quad, create_sphere


class TestConstruction:
    """Validation and half-edge layout."""

    def test_cube_counts(self):
        cube = create_cube()
        assert cube.num_vertices == 8
        assert cube.num_faces == 6
        assert cube.num_edges == 12
        assert cube.num_halfedges == 24
        assert not cube.is_triangular

    def test_opposite_pairs(self):
        """Opposite of h is h ^ 1 and runs the other way."""
        cube = create_cube()
        h = np.arange(cube.num_halfedges)
        assert np.array_equal(cube.he_opposite, h ^ 1)
        assert np.array_equal(cube.he_from, cube.he_to[h ^ 1])

    def test_next_prev_consistent(self):
        mesh = create_grid(3, 2)
        h = np.arange(mesh.num_halfedges)
        assert np.array_equal(mesh.he_prev[mesh.he_next], h)
        assert np.array_equal(mesh.he_to, mesh.he_from[mesh.he_next])

    def test_closed_mesh_has_no_boundary(self):
        sphere = create_sphere(subdivisions=1)
        assert not sphere.boundary_vertex_mask.any()
        assert not sphere.boundary_edge_mask.any()
        assert sphere.boundary_loops() == []

    def test_rejects_repeated_vertex(self):
        verts = np.zeros((3, 3))
        with pytest.raises(ValueError):
            Mesh(verts, [(0, 1, 1)])

    def test_rejects_out_of_range_vertex(self):
        verts = np.eye(3)
        with pytest.raises(ValueError):
            Mesh(verts, [(0, 1, 5)])

    def test_rejects_edge_shared_by_three_faces(self):
        verts = np.random.default_rng(0).random((5, 3))
        with pytest.raises(TopologyError):
            Mesh(verts, [(0, 1, 2), (1, 0, 3), (0, 1, 4)])

    def test_rejects_inconsistent_orientation(self):
        verts = np.random.default_rng(1).random((4, 3))
        with pytest.raises(TopologyError):
            Mesh(verts, [(0, 1, 2), (0, 1, 3)])

    def test_isolated_vertex_is_boundary(self):
        verts = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]], dtype=float)
        mesh = Mesh(verts, [(0, 1, 2)])
        assert mesh.is_boundary_vertex(3)
        assert len(mesh.outgoing_halfedges(3)) == 0


class TestQueries:
    """Neighborhood and boundary traversal."""

    def test_vertex_neighbors(self):
        cube = create_cube()
        assert set(cube.vertex_neighbors(0).tolist()) == {1, 3, 4}
        assert len(cube.vertex_faces(0)) == 3

    def test_find_halfedge(self):
        quad = create_quad()
        h = quad.find_halfedge(0, 1)
        assert h != INVALID
        assert quad.he_from[h] == 0 and quad.he_to[h] == 1
        # 1-3 is not the diagonal
        assert quad.find_halfedge(1, 3) == INVALID
        assert quad.find_halfedge(0, 99) == INVALID

    def test_quad_boundary(self):
        quad = create_quad()
        assert quad.num_edges == 5
        loops = quad.boundary_loops()
        assert len(loops) == 1
        assert len(loops[0]) == 4
        assert quad.boundary_vertex_mask.all()
        diag = quad.find_halfedge(0, 2)
        assert not quad.is_boundary_edge(diag // 2)

    def test_boundary_loop_is_chained(self):
        grid = create_grid(4, 3)
        loop = grid.boundary_loops()[0]
        assert len(loop) == 2 * (4 + 3)
        for a, b in zip(loop, loop[1:] + loop[:1]):
            assert grid.he_to[a] == grid.he_from[b]

    def test_element_lookups(self):
        cube = create_cube()
        assert cube.face_vertices(1) == (4, 5, 6, 7)
        h0, h1 = cube.edge_halfedges(3)
        assert cube.he_opposite[h0] == h1
        assert cube.edge_length(3) == pytest.approx(1.0)

    def test_face_halfedges_follow_corners(self):
        cube = create_cube()
        for f, face in enumerate(cube.faces):
            hs = cube.face_halfedges(f)
            assert [int(cube.he_from[h]) for h in hs] == list(face)

    def test_texcoord_on_halfedges(self):
        grid = create_grid(2, 2)
        face_he = grid.he_face != INVALID
        assert (grid.he_texcoord[~face_he] == INVALID).all()
        # uv ids equal vertex ids on a seamless grid
        assert np.array_equal(grid.he_texcoord[face_he], grid.he_to[face_he])


class TestBuffers:
    """Triangle and edge index buffers."""

    def test_fan_triangulation(self):
        assert triangulate_face((0, 1, 2, 3, 4)) == [(0, 1, 2), (0, 2, 3), (0, 3, 4)]

    def test_cube_buffers(self):
        cube = create_cube()
        tris = cube.triangle_indices()
        edges = cube.edge_indices()
        assert tris.shape == (12, 3)
        assert edges.shape == (12, 2)
        assert (edges[:, 0] < edges[:, 1]).all()
        assert len(np.unique(edges, axis=0)) == len(edges)

    def test_triangulated_cube_edges(self):
        cube = create_cube(triangulate=True)
        assert cube.edge_indices().shape == (18, 2)

    def test_open_mesh_edges(self):
        grid = create_grid(3, 3)
        edges = grid.edge_indices()
        assert len(edges) == grid.num_edges
        assert set(map(tuple, edges.tolist())) == {
            tuple(sorted(p)) for p in grid.edge_vertices.tolist()
        }


class TestGeometry:
    """Normals, areas and normalization."""

    def test_normalize_cube(self):
        cube = create_cube(size=3.0)
        center, scale = cube.normalize()
        assert np.allclose(center, [1.5, 1.5, 1.5])
        assert scale == pytest.approx(2.0 / 3.0)
        assert np.allclose(cube.vertices.min(axis=0), -1.0)
        assert np.allclose(cube.vertices.max(axis=0), 1.0)

    def test_normalize_single_point(self):
        mesh = Mesh(np.array([[1.0, 2.0, 3.0]]), [])
        center, scale = mesh.normalize()
        assert scale == 1.0
        assert np.allclose(mesh.vertices, 0.0)

    def test_cube_normals_point_outward(self):
        cube = create_cube()
        cube.compute_normals()
        assert np.allclose(cube.face_normals[0], [0, 0, -1])
        assert np.allclose(cube.normals[0], -np.ones(3) / np.sqrt(3))
        outward = cube.vertices - cube.center
        assert (np.einsum("ij,ij->i", cube.normals, outward) > 0).all()

    def test_flat_normals(self):
        quad = create_quad()
        quad.compute_normals()
        assert np.allclose(quad.normals, [0, 0, 1])

    def test_areas(self):
        cube = create_cube()
        assert np.allclose(cube.face_areas(), 1.0)
        assert cube.polygon_area(2) == pytest.approx(1.0)
        assert cube.triangle_areas().sum() == pytest.approx(6.0)

    def test_fan_area_matches_polygon_area(self):
        """Summed fan triangles cover a planar, tilted pentagon exactly."""
        angles = np.linspace(0, 2 * np.pi, 6)[:-1]
        flat = np.column_stack([np.cos(angles), 0.5 * np.sin(angles), np.zeros(5)])
        tilt = np.array([[1, 0, 0], [0, np.cos(0.7), -np.sin(0.7)], [0, np.sin(0.7), np.cos(0.7)]])
        pentagon = Mesh(flat @ tilt.T, [(0, 1, 2, 3, 4)])
        assert pentagon.triangle_areas().sum() == pytest.approx(pentagon.polygon_area(0))
        assert pentagon.face_areas()[0] == pytest.approx(pentagon.polygon_area(0))

    def test_copy_is_independent(self):
        cube = create_cube()
        dup = cube.copy()
        dup.vertices[0] = [9, 9, 9]
        assert not np.allclose(cube.vertices[0], [9, 9, 9])
        assert dup.num_edges == cube.num_edges

    def test_to_trimesh(self):
        tm = create_cube().to_trimesh()
        assert len(tm.faces) == 12
        assert len(tm.vertices) == 8
