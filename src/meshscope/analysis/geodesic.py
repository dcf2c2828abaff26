"""
Shortest paths over the mesh edge graph.

Edges are weighted by Euclidean length. The search strategy is selected by
``PathStrategy``; every strategy answers the same query and returns the
same ``PathResult``.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence
import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import dijkstra

from meshscope.core.errors import TopologyError
from meshscope.core.mesh import INVALID, Mesh

logger = logging.getLogger("meshscope.analysis.geodesic")


class PathStrategy(Enum):
    """Search algorithm used by the path solver."""
    DIJKSTRA = "dijkstra"
    ASTAR = "astar"


@dataclass
class PathResult:
    """A vertex path and the mesh elements connecting its vertices."""
    vertices: list[int] = field(default_factory=list)
    halfedges: list[int] = field(default_factory=list)
    edges: list[int] = field(default_factory=list)
    distance: float = float("inf")
    visited: int = 0

    @property
    def found(self) -> bool:
        return len(self.vertices) > 0

    def __len__(self) -> int:
        return len(self.vertices)


class ShortestPathSolver:
    """
    Single-source, single-target shortest paths on one mesh.

    The weighted adjacency is built once per solver; build a new solver
    after the mesh changes.
    """

    def __init__(self, mesh: Mesh, strategy: PathStrategy = PathStrategy.DIJKSTRA):
        self.mesh = mesh
        self.strategy = strategy
        self.graph = build_edge_graph(mesh)

    def solve(self, source: int, target: int) -> PathResult:
        """
        Shortest path from ``source`` to ``target``.

        Returns an empty result for out-of-range ids or when ``target`` is
        not reachable.
        """
        n = self.mesh.num_vertices
        if not (0 <= source < n and 0 <= target < n):
            logger.debug(f"Path query out of range: {source} -> {target} (n={n})")
            return PathResult()

        if self.strategy == PathStrategy.DIJKSTRA:
            heuristic = None
        elif self.strategy == PathStrategy.ASTAR:
            goal = self.mesh.vertices[target]
            heuristic = lambda v: float(np.linalg.norm(self.mesh.vertices[v] - goal))
        else:
            raise ValueError(f"Unknown path strategy: {self.strategy}")

        dist, pred, visited = self._search(source, target, heuristic)
        if not np.isfinite(dist[target]):
            logger.debug(f"No path {source} -> {target} after visiting {visited} vertices")
            return PathResult(visited=visited)

        path = [target]
        while path[-1] != source:
            path.append(int(pred[path[-1]]))
        path.reverse()

        result = connect_path(self.mesh, path)
        result.distance = float(dist[target])
        result.visited = visited
        return result

    def _search(self, source: int, target: int, heuristic) -> tuple[np.ndarray, np.ndarray, int]:
        """Best-first search with lazy deletion; stops once the target is popped."""
        indptr, indices, weights = self.graph.indptr, self.graph.indices, self.graph.data
        n = self.mesh.num_vertices

        dist = np.full(n, np.inf)
        pred = np.full(n, INVALID, dtype=np.int64)
        done = np.zeros(n, dtype=bool)
        dist[source] = 0.0

        h0 = heuristic(source) if heuristic else 0.0
        queue = [(h0, source)]
        visited = 0

        while queue:
            _, u = heapq.heappop(queue)
            if done[u]:
                continue
            done[u] = True
            visited += 1
            if u == target:
                break

            for k in range(indptr[u], indptr[u + 1]):
                w = indices[k]
                if done[w]:
                    continue
                nd = dist[u] + weights[k]
                if nd < dist[w]:
                    dist[w] = nd
                    pred[w] = u
                    key = nd + heuristic(w) if heuristic else nd
                    heapq.heappush(queue, (key, int(w)))

        return dist, pred, visited


def build_edge_graph(mesh: Mesh) -> csr_matrix:
    """Symmetric sparse adjacency with Euclidean edge lengths as weights."""
    n = mesh.num_vertices
    ev = mesh.edge_vertices
    lengths = mesh.edge_lengths()
    rows = np.concatenate([ev[:, 0], ev[:, 1]])
    cols = np.concatenate([ev[:, 1], ev[:, 0]])
    data = np.concatenate([lengths, lengths])
    graph = csr_matrix((data, (rows, cols)), shape=(n, n))
    graph.sort_indices()
    return graph


def connect_path(mesh: Mesh, vertices: Sequence[int]) -> PathResult:
    """
    Look up the half-edges and edges joining consecutive path vertices.

    A pair that is not mesh-adjacent is logged and its segment skipped;
    the vertex list is kept intact.
    """
    halfedges: list[int] = []
    for a, b in zip(vertices[:-1], vertices[1:]):
        try:
            halfedges.append(_require_halfedge(mesh, a, b))
        except TopologyError as e:
            logger.warning(f"Skipping path segment: {e}")
    return PathResult(
        vertices=[int(v) for v in vertices],
        halfedges=halfedges,
        edges=[h // 2 for h in halfedges],
        distance=path_length(mesh, vertices),
    )


def _require_halfedge(mesh: Mesh, a: int, b: int) -> int:
    h = mesh.find_halfedge(a, b)
    if h == INVALID:
        raise TopologyError(f"No half-edge between vertices {a} and {b}")
    return h


def shortest_path(
    mesh: Mesh,
    source: int,
    target: int,
    strategy: PathStrategy = PathStrategy.DIJKSTRA,
) -> list[int]:
    """Vertex ids from source to target; empty if invalid or unreachable."""
    return ShortestPathSolver(mesh, strategy).solve(source, target).vertices


def waypoint_path(
    mesh: Mesh,
    waypoints: Sequence[int],
    strategy: PathStrategy = PathStrategy.DIJKSTRA,
    solver: ShortestPathSolver | None = None,
) -> PathResult:
    """
    Chain shortest paths through an ordered list of waypoints.

    Shared joint vertices appear once. If any leg has no path the whole
    result is empty.
    """
    if solver is None:
        solver = ShortestPathSolver(mesh, strategy)
    if len(waypoints) == 1:
        return solver.solve(waypoints[0], waypoints[0])
    if len(waypoints) < 2:
        return PathResult()

    combined = PathResult(distance=0.0)
    for a, b in zip(waypoints[:-1], waypoints[1:]):
        leg = solver.solve(a, b)
        combined.visited += leg.visited
        if not leg.found:
            logger.info(f"Waypoint leg {a} -> {b} is unreachable")
            return PathResult(visited=combined.visited)
        combined.vertices.extend(leg.vertices if not combined.vertices else leg.vertices[1:])
        combined.halfedges.extend(leg.halfedges)
        combined.edges.extend(leg.edges)
        combined.distance += leg.distance
    return combined


def path_length(mesh: Mesh, vertices: Sequence[int]) -> float:
    """Polyline length through the given vertex ids."""
    if len(vertices) < 2:
        return 0.0
    pts = mesh.vertices[np.asarray(vertices, dtype=np.int64)]
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def distances_from(mesh: Mesh, source: int) -> np.ndarray:
    """Edge-graph distance from ``source`` to every vertex (inf if unreachable)."""
    if not 0 <= source < mesh.num_vertices:
        return np.full(mesh.num_vertices, np.inf)
    return dijkstra(build_edge_graph(mesh), directed=False, indices=source)
