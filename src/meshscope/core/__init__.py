"""Core mesh data structures and I/O."""

from meshscope.core.errors import MeshScopeError, ParseError, TopologyError
from meshscope.core.mesh import INVALID, Mesh, triangulate_face
from meshscope.core.io import load_mesh, load_obj, save_obj

__all__ = [
    "INVALID",
    "Mesh",
    "MeshScopeError",
    "ParseError",
    "TopologyError",
    "load_mesh",
    "load_obj",
    "save_obj",
    "triangulate_face",
]
