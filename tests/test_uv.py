"""
Parameterization and distortion tests.
"""

import pytest
import numpy as np

from meshscope.core.mesh import INVALID, Mesh
from meshscope.uv.distortion import DistortionAnalyzer, compute_distortion, distortion_colors
from meshscope.uv.parameterization import (
    ParameterizationMesh,
    boundary_length_ratio,
    cut_edges,
    cut_length,
)
from meshscope.test_meshes import create_cube, create_grid


class TestParameterizationMesh:
    """UV mesh and half-edge correspondence."""

    def test_correspondence_is_bijective(self):
        grid = create_grid(3, 3, seam_column=1)
        param = ParameterizationMesh.from_mesh(grid)
        face_he = np.flatnonzero(grid.he_face != INVALID)
        mapped = param.h_mesh2para[face_he]
        assert (mapped != INVALID).all()
        assert np.array_equal(param.h_para2mesh[mapped], face_he)
        assert len(set(mapped.tolist())) == len(face_he)

    def test_vertex_pairs(self):
        grid = create_grid(2, 2, seam_column=1)
        param = ParameterizationMesh.from_mesh(grid)
        for f, ft in enumerate(grid.face_texcoords):
            for i, h in enumerate(grid.face_halfedges(f)):
                assert param.para_vertex_pair(h) == (ft[i], ft[(i + 1) % 3])
                hp = param.h_mesh2para[h]
                assert param.mesh_vertex_pair(hp) == (grid.he_from[h], grid.he_to[h])

    def test_seam_splits_uv_boundary(self):
        grid = create_grid(4, 4, seam_column=2)
        param = ParameterizationMesh.from_mesh(grid)
        assert len(grid.boundary_loops()) == 1
        assert len(param.para.boundary_loops()) == 2

    def test_requires_uv(self):
        with pytest.raises(ValueError):
            ParameterizationMesh.from_mesh(create_cube())

    def test_bounding_box(self):
        param = ParameterizationMesh.from_mesh(create_grid(4, 2, uv_scale=(0.25, 0.5)))
        lo, hi = param.bounding_box
        assert np.allclose(lo, [0, 0])
        assert np.allclose(hi, [1, 1])


class TestCutLength:
    """Seams and boundary length."""

    def test_seamless_grid(self):
        grid = create_grid(4, 4)
        assert not cut_edges(grid).any()
        assert cut_length(grid) == pytest.approx(16.0)
        assert boundary_length_ratio(grid) == pytest.approx(16.0 / np.sqrt(32.0))

    def test_seam_counted_twice(self):
        grid = create_grid(4, 3, seam_column=2)
        cuts = cut_edges(grid)
        assert cuts.sum() == 3
        seam = grid.edge_vertices[cuts]
        xs = grid.vertices[seam.ravel(), 0]
        assert np.allclose(xs, 2.0)
        assert cut_length(grid) == pytest.approx(2 * (4 + 3) + 2 * 3)


class TestDistortion:
    """Symmetric stretch metric."""

    def test_isometric(self):
        report = compute_distortion(create_grid(4, 4))
        assert report.average == pytest.approx(1.0)
        assert np.allclose(report.per_face, 1.0)
        assert np.allclose(report.singular_values, 1.0)
        assert not report.flipped
        assert report.n_positive == 32 and report.n_negative == 0

    def test_scale_invariant(self):
        report = compute_distortion(create_grid(4, 4, uv_scale=(0.1, 0.1)))
        assert report.scale_factor == pytest.approx(0.1)
        assert report.average == pytest.approx(1.0)

    def test_anisotropic_stretch(self):
        """u * 2 gives singular values sqrt(2) and 1/sqrt(2) after rescaling."""
        report = compute_distortion(create_grid(3, 3, uv_scale=(2.0, 1.0)))
        assert np.allclose(report.singular_values[:, 0], np.sqrt(2))
        assert np.allclose(report.singular_values[:, 1], 1 / np.sqrt(2))
        assert report.average == pytest.approx(1.25)

    def test_mirrored_layout_is_flipped(self):
        grid = create_grid(3, 3, uv_scale=(-1.0, 1.0))
        report = compute_distortion(grid)
        assert report.flipped == set(range(grid.num_faces))
        assert report.n_negative == grid.num_faces
        assert report.average == pytest.approx(1.0)

    def test_reads_uv_through_correspondence(self):
        """Positions come from the UV mesh, not the source texcoords."""
        grid = create_grid(3, 3)
        param = ParameterizationMesh.from_mesh(grid)
        param.para.vertices[:, 0] *= 2.0
        report = DistortionAnalyzer(param).analyze()
        assert report.average == pytest.approx(1.25)
        assert grid.texcoords[:, 0].max() == pytest.approx(3.0)

    def test_seamed_layout(self):
        report = compute_distortion(create_grid(4, 4, seam_column=2))
        assert report.average == pytest.approx(1.0)
        assert report.cut_length == pytest.approx(16.0 + 8.0)

    def test_degenerate_face_excluded(self):
        verts = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [2, 0, 0], [3, 0, 0]], dtype=float)
        uvs = np.array([[0, 0], [1, 0], [0, 1], [2, 0], [3, 1]], dtype=float)
        mesh = Mesh(verts, [(0, 1, 2), (1, 3, 4)], texcoords=uvs, face_texcoords=[(0, 1, 2), (1, 3, 4)])
        report = compute_distortion(mesh)
        assert report.degenerate_faces == {1}
        assert np.isnan(report.per_face[1])
        assert np.isfinite(report.average)
        assert report.average == pytest.approx(report.per_face[0])

    def test_zero_uv_area(self):
        verts = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
        mesh = Mesh(verts, [(0, 1, 2)], texcoords=np.zeros((3, 2)), face_texcoords=[(0, 1, 2)])
        report = compute_distortion(mesh)
        assert np.isnan(report.average)
        assert np.isnan(report.per_face).all()

    def test_requires_triangles(self):
        verts = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)
        mesh = Mesh(verts, [(0, 1, 2, 3)], texcoords=verts[:, :2], face_texcoords=[(0, 1, 2, 3)])
        with pytest.raises(ValueError):
            DistortionAnalyzer(ParameterizationMesh.from_mesh(mesh)).analyze()

    def test_report_dict(self):
        data = compute_distortion(create_grid(2, 2)).to_dict()
        assert data["flipped"] == []
        assert data["average"] == pytest.approx(1.0)

    def test_colors(self):
        colors = distortion_colors(np.array([1.0, 4.0, np.nan]))
        assert np.allclose(colors[0], [1, 1, 1])
        assert np.allclose(colors[1], [1, 0, 0])
        assert np.allclose(colors[2], [0.5, 0.5, 0.5])
