"""
Command-line interface for MeshScope.

Provides commands for inspecting meshes, curvature, paths and UV layouts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="meshscope",
    help="Mesh inspection: curvature, shortest paths and UV distortion"
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s - %(message)s')


def _load_session(mesh_path: Path, config_path: Optional[Path]):
    from meshscope.config import ViewerConfig
    from meshscope.session import MeshSession

    config = ViewerConfig.load(config_path) if config_path else ViewerConfig()
    session = MeshSession(config)
    if not session.load(mesh_path):
        console.print(f"[red]Failed to load:[/red] {mesh_path}")
        raise typer.Exit(code=1)
    return session


@app.command()
def info(
    mesh_path: Path = typer.Argument(..., help="Mesh file to inspect (OBJ, PLY, STL, OFF)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose logging"),
):
    """
    Show information about a mesh file.
    """
    from meshscope.core.errors import ParseError
    from meshscope.core.io import load_mesh

    _configure_logging(verbose)

    try:
        mesh = load_mesh(mesh_path)
    except ParseError as e:
        console.print(f"[red]Failed to load:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Mesh Info: {mesh_path.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Name", mesh.name)
    table.add_row("Vertices", str(mesh.num_vertices))
    table.add_row("Faces", str(mesh.num_faces))
    table.add_row("Edges", str(mesh.num_edges))
    table.add_row("Triangles", str(len(mesh.triangle_indices())))
    table.add_row("Type", "Triangles" if mesh.is_triangular else "Polygons")
    table.add_row("Boundary Loops", str(len(mesh.boundary_loops())))
    table.add_row("UV", "yes" if mesh.has_uv else "no")

    min_b, max_b = mesh.bounds
    table.add_row("Bounding Box Min", f"({min_b[0]:.3f}, {min_b[1]:.3f}, {min_b[2]:.3f})")
    table.add_row("Bounding Box Max", f"({max_b[0]:.3f}, {max_b[1]:.3f}, {max_b[2]:.3f})")
    table.add_row("Diagonal", f"{mesh.diagonal:.4f}")

    console.print(table)


@app.command()
def curvature(
    mesh_path: Path = typer.Argument(..., help="Mesh file"),
    mode: str = typer.Option("gaussian", "-m", "--mode", help="gaussian, mean or max"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Config YAML"),
    top: int = typer.Option(5, "-n", "--top", help="Number of highest-curvature vertices to list"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose logging"),
):
    """
    Compute a normalized curvature field and list its peaks.
    """
    import numpy as np
    from meshscope.analysis.curvature import CurvatureType

    _configure_logging(verbose)

    try:
        kind = CurvatureType(mode)
    except ValueError:
        console.print(f"[red]Unknown curvature mode:[/red] {mode}")
        raise typer.Exit(code=2)

    session = _load_session(mesh_path, config_path)
    values = session.set_render_mode(kind)
    interior = ~session.mesh.boundary_vertex_mask

    console.print(f"[bold blue]{kind.value.capitalize()} curvature:[/bold blue] {mesh_path}")
    console.print(
        f"Interior vertices: {int(interior.sum())}, "
        f"boundary vertices: {int((~interior).sum())}"
    )

    table = Table(title="Highest Curvature")
    table.add_column("Vertex", style="cyan")
    table.add_column("Value", justify="right")
    for v in np.argsort(-values, kind="stable")[:top]:
        table.add_row(str(int(v)), f"{values[v]:.4f}")

    console.print(table)


@app.command()
def path(
    mesh_path: Path = typer.Argument(..., help="Mesh file"),
    waypoints: list[int] = typer.Argument(..., help="Vertex ids to connect, in order"),
    strategy: str = typer.Option("dijkstra", "-s", "--strategy", help="dijkstra or astar"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose logging"),
):
    """
    Shortest edge path through a sequence of vertices.
    """
    from meshscope.analysis.geodesic import PathStrategy

    _configure_logging(verbose)

    try:
        path_strategy = PathStrategy(strategy)
    except ValueError:
        console.print(f"[red]Unknown path strategy:[/red] {strategy}")
        raise typer.Exit(code=2)

    session = _load_session(mesh_path, None)
    session.set_path_strategy(path_strategy)
    for v in waypoints:
        session.select_vertex(v)

    result = session.path
    if not result.found:
        console.print("[yellow]No path found[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold green]Path:[/bold green] {' '.join(str(v) for v in result.vertices)}")
    console.print(f"Edges: {len(result.edges)}, length: {result.distance:.6f} (normalized units)")
    console.print(f"Vertices visited: {result.visited}")


@app.command()
def uv(
    mesh_path: Path = typer.Argument(..., help="OBJ file with texture coordinates"),
    corners: bool = typer.Option(False, "--corners", help="Detect boundary corners of the UV layout"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose logging"),
):
    """
    Report UV distortion, flipped faces, cut length and charts.
    """
    from meshscope.uv.charts import detect_boundary_corners
    from meshscope.uv.parameterization import ParameterizationMesh

    _configure_logging(verbose)

    session = _load_session(mesh_path, None)
    analysis = session.analyze_uv()
    if analysis is None:
        console.print("[yellow]Mesh has no usable UV data[/yellow]")
        raise typer.Exit(code=1)
    report, charts = analysis

    table = Table(title=f"UV Analysis: {mesh_path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Average Distortion", f"{report.average:.6f}")
    table.add_row("Max Distortion", f"{report.max_distortion:.6f}")
    table.add_row("Positive / Negative", f"{report.n_positive} / {report.n_negative}")
    table.add_row("Degenerate Faces", str(len(report.degenerate_faces)))
    table.add_row("Cut Length", f"{report.cut_length:.6f}")
    table.add_row("Boundary Length Ratio", f"{report.boundary_length_ratio:.6f}")
    table.add_row("Charts", str(charts.n_charts))

    if corners:
        para = ParameterizationMesh.from_mesh(session.mesh).para
        corner_report = detect_boundary_corners(para)
        table.add_row("Boundary Loops", str(corner_report.n_loops))
        table.add_row("Corners", str(len(corner_report.corners)))
        table.add_row("Euler Check", "OK" if corner_report.euler_ok else "FAIL")

    console.print(table)


@app.command()
def gen_test_meshes(
    output_dir: Path = typer.Option("test_meshes", "-o", "--output", help="Output directory"),
):
    """
    Generate test meshes for experimentation.
    """
    from meshscope.test_meshes import save_test_meshes

    console.print(f"[bold blue]Generating test meshes to:[/bold blue] {output_dir}")
    paths = save_test_meshes(str(output_dir))
    console.print(f"[green]Done![/green] {len(paths)} meshes written")


@app.command()
def gen_config(
    output_path: Path = typer.Option("meshscope.yaml", "-o", "--output", help="Output config file"),
    name: str = typer.Option("default", "-n", "--name", help="Config name"),
):
    """
    Generate a default configuration file.
    """
    from meshscope.config import create_default_config

    config = create_default_config()
    config.name = name
    config.save(output_path)

    console.print(f"[green]Config saved to:[/green] {output_path}")


if __name__ == "__main__":
    app()
