"""Exception types raised by the mesh core."""

from __future__ import annotations


class MeshScopeError(Exception):
    """Base class for all meshscope errors."""
    pass


class ParseError(MeshScopeError, ValueError):
    """Raised when a geometry file cannot be read into a mesh."""

    def __init__(self, message: str, path: str | None = None, line: int | None = None):
        self.path = path
        self.line = line
        location = ""
        if path is not None:
            location = f"{path}:{line}: " if line is not None else f"{path}: "
        super().__init__(f"{location}{message}")


class TopologyError(MeshScopeError):
    """Raised when the connectivity does not support a requested query.

    Covers non-manifold input during construction and missing half-edges
    between vertices expected to be adjacent.
    """
    pass
