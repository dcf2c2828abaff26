"""
Curvature estimator tests.
"""

import pytest
import numpy as np

from meshscope.analysis.curvature import (
    CurvatureAnalyzer,
    CurvatureType,
    compute_curvature,
    curvature_colors,
    normalize_scalar,
)
from meshscope.core.mesh import Mesh
from meshscope.test_meshes import create_cube, create_grid, create_quad, create_sphere


class TestAngleDefect:
    """Raw Gaussian quantities."""

    def test_cube_defects(self):
        """Three right angles meet at every cube corner."""
        for cube in (create_cube(), create_cube(triangulate=True)):
            defects = CurvatureAnalyzer(cube).angle_defects()
            assert np.allclose(defects, np.pi / 2)

    def test_gauss_bonnet_sphere(self):
        analyzer = CurvatureAnalyzer(create_sphere(subdivisions=2))
        assert analyzer.angle_defects().sum() == pytest.approx(4 * np.pi)

    def test_flat_interior_has_zero_gaussian(self):
        grid = create_grid(4, 4)
        assert np.allclose(CurvatureAnalyzer(grid).gaussian(), 0.0, atol=1e-9)

    def test_mixed_areas_tile_closed_surface(self):
        sphere = create_sphere(subdivisions=2)
        analyzer = CurvatureAnalyzer(sphere)
        total = sphere.triangle_areas().sum()
        assert analyzer.mixed_areas().sum() == pytest.approx(total)
        assert analyzer.barycentric_areas().sum() == pytest.approx(total)

    def test_grid_interior_voronoi_area(self):
        """Interior vertices of a unit grid own one unit of area."""
        grid = create_grid(4, 4)
        areas = CurvatureAnalyzer(grid).mixed_areas()
        interior = ~grid.boundary_vertex_mask
        assert np.allclose(areas[interior], 1.0)
        assert np.allclose(areas[~interior], 0.0)


class TestCurvatureModes:
    """Normalized scalar fields."""

    def test_boundary_vertices_are_zero(self):
        grid = create_grid(4, 4)
        analyzer = CurvatureAnalyzer(grid)
        boundary = grid.boundary_vertex_mask
        for kind in (CurvatureType.GAUSSIAN, CurvatureType.MEAN, CurvatureType.MAX):
            assert (analyzer.compute(kind)[boundary] == 0).all()
        assert (analyzer.mean()[~boundary] > 0).all()

    def test_all_boundary_mesh(self):
        values = compute_curvature(create_quad(), CurvatureType.GAUSSIAN)
        assert np.array_equal(values, np.zeros(4))

    def test_sphere_range(self):
        sphere = create_sphere(subdivisions=1)
        for kind in (CurvatureType.GAUSSIAN, CurvatureType.MEAN, CurvatureType.MAX):
            values = compute_curvature(sphere, kind)
            assert values.min() == pytest.approx(0.0)
            assert values.max() == pytest.approx(1.0)

    def test_max_is_sum(self):
        analyzer = CurvatureAnalyzer(create_sphere(subdivisions=1))
        assert np.allclose(
            analyzer.raw(CurvatureType.MAX),
            analyzer.gaussian() + analyzer.mean(),
        )

    def test_mean_formula(self):
        analyzer = CurvatureAnalyzer(create_sphere(subdivisions=1))
        assert np.allclose(analyzer.mean(), 0.5 * np.sqrt(analyzer.mixed_areas()))

    def test_none_mode(self):
        values = compute_curvature(create_sphere(), CurvatureType.NONE)
        assert not values.any()

    def test_barycentric_policy(self):
        sphere = create_sphere(subdivisions=1)
        mixed = CurvatureAnalyzer(sphere).gaussian()
        bary = CurvatureAnalyzer(sphere, gaussian_area="barycentric").gaussian()
        assert (bary > 0).all()
        assert not np.allclose(mixed, bary)

    def test_barycentric_uses_prev_and_next_on_polygons(self):
        """On a quad the corner triangle is (prev, v, next), not (v, next, next-next)."""
        verts = np.array([[i, j, 0.0] for j in range(3) for i in range(3)])
        verts[4] = [1.3, 1.2, 0.0]
        quads = [(0, 1, 4, 3), (1, 2, 5, 4), (3, 4, 7, 6), (4, 5, 8, 7)]
        areas = CurvatureAnalyzer(Mesh(verts, quads)).barycentric_areas()
        assert areas[4] == pytest.approx(4.0 / 6.0)
        assert np.allclose(np.delete(areas, 4), 0.0)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            CurvatureAnalyzer(create_quad(), gaussian_area="voronoi")

    def test_results_are_cached(self):
        analyzer = CurvatureAnalyzer(create_sphere())
        first = analyzer.compute(CurvatureType.GAUSSIAN)
        assert analyzer.compute(CurvatureType.GAUSSIAN) is first
        assert set(analyzer.compute_all()) == set(CurvatureType)


class TestNormalization:
    """Interior-only rescaling."""

    def test_interior_rescale(self):
        values = np.array([5.0, 1.0, 3.0, 2.0])
        boundary = np.array([False, False, True, False])
        out = normalize_scalar(values, boundary)
        assert np.allclose(out, [1.0, 0.0, 0.0, 0.25])

    def test_constant_interior_unchanged(self):
        out = normalize_scalar(np.array([2.0, 2.0, 7.0]), np.array([False, False, True]))
        assert np.allclose(out, [2.0, 2.0, 0.0])

    def test_no_interior(self):
        out = normalize_scalar(np.array([4.0, 3.0]), np.array([True, True]))
        assert np.allclose(out, 0.0)

    def test_input_not_modified(self):
        values = np.array([1.0, 3.0])
        normalize_scalar(values, np.array([True, False]))
        assert values[0] == 1.0

    def test_colors(self):
        colors = curvature_colors(np.array([0.0, 1.0]))
        assert np.allclose(colors[0], [0, 0, 1])
        assert np.allclose(colors[1], [1, 0, 0])
