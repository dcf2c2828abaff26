"""
Command-line interface tests.
"""

import pytest
from typer.testing import CliRunner

from meshscope.cli import app
from meshscope.test_meshes import save_test_meshes

runner = CliRunner()


@pytest.fixture(scope="module")
def mesh_dir(tmp_path_factory):
    output = tmp_path_factory.mktemp("meshes")
    save_test_meshes(str(output))
    return output


class TestCommands:
    """End-to-end command runs."""

    def test_info(self, mesh_dir):
        result = runner.invoke(app, ["info", str(mesh_dir / "cube.obj")])
        assert result.exit_code == 0
        assert "Vertices" in result.output

    def test_info_missing_file(self, tmp_path):
        result = runner.invoke(app, ["info", str(tmp_path / "none.obj")])
        assert result.exit_code == 1

    def test_curvature(self, mesh_dir):
        result = runner.invoke(app, ["curvature", str(mesh_dir / "sphere.obj"), "-m", "mean"])
        assert result.exit_code == 0
        assert "Highest Curvature" in result.output

    def test_curvature_bad_mode(self, mesh_dir):
        result = runner.invoke(app, ["curvature", str(mesh_dir / "sphere.obj"), "-m", "bogus"])
        assert result.exit_code == 2

    def test_path(self, mesh_dir):
        result = runner.invoke(app, ["path", str(mesh_dir / "grid_uv.obj"), "0", "80", "-s", "astar"])
        assert result.exit_code == 0
        assert "Path:" in result.output

    def test_path_unreachable(self, mesh_dir):
        result = runner.invoke(app, ["path", str(mesh_dir / "grid_uv.obj"), "0", "999"])
        assert result.exit_code == 1

    def test_uv(self, mesh_dir):
        result = runner.invoke(app, ["uv", str(mesh_dir / "grid_seam.obj"), "--corners"])
        assert result.exit_code == 0
        assert "Charts" in result.output
        assert "Euler Check" in result.output

    def test_uv_without_texcoords(self, mesh_dir):
        result = runner.invoke(app, ["uv", str(mesh_dir / "cube.obj")])
        assert result.exit_code == 1

    def test_gen_config(self, tmp_path):
        path = tmp_path / "meshscope.yaml"
        result = runner.invoke(app, ["gen-config", "-o", str(path), "-n", "demo"])
        assert result.exit_code == 0
        assert path.exists()
        assert "demo" in path.read_text()

    def test_gen_test_meshes(self, tmp_path):
        result = runner.invoke(app, ["gen-test-meshes", "-o", str(tmp_path / "out")])
        assert result.exit_code == 0
        assert (tmp_path / "out" / "sphere.obj").exists()
