"""
MeshScope: mesh inspection core

Half-edge meshes, discrete curvature, edge-graph shortest paths and
UV parameterization analysis.
"""

__version__ = "0.1.0"

# Suppress trimesh's verbose logs by default
import logging
logging.getLogger("trimesh").setLevel(logging.WARNING)

from meshscope.core.mesh import Mesh
from meshscope.core.io import load_mesh, save_obj
from meshscope.core.errors import MeshScopeError, ParseError, TopologyError
from meshscope.session import MeshSession

__all__ = [
    "Mesh",
    "MeshSession",
    "MeshScopeError",
    "ParseError",
    "TopologyError",
    "load_mesh",
    "save_obj",
    "__version__",
]
