"""
Mesh I/O utilities.

OBJ files are parsed directly so texture coordinates and polygon arity
survive; other formats (PLY, STL, OFF, GLB) go through trimesh and carry
no UV data.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union
import numpy as np

from meshscope.core.errors import ParseError, TopologyError
from meshscope.core.mesh import Mesh

logger = logging.getLogger("meshscope.core.io")

_IGNORED_PREFIXES = {"vn", "vp", "o", "g", "s", "usemtl", "mtllib", "l", "p"}


def load_mesh(filepath: Union[str, Path]) -> Mesh:
    """
    Load a mesh from file.

    Args:
        filepath: Path to an OBJ, PLY, STL, OFF, GLB or GLTF file

    Returns:
        Loaded Mesh object

    Raises:
        ParseError: If the file is missing, unreadable or has no usable faces
    """
    filepath = Path(filepath)
    if not filepath.is_file():
        raise ParseError("mesh file not found", path=str(filepath))

    if filepath.suffix.lower() == ".obj":
        return load_obj(filepath)
    return _load_via_trimesh(filepath)


def load_obj(filepath: Union[str, Path]) -> Mesh:
    """
    Parse an OBJ file with ``v``, ``vt`` and ``f`` records.

    Malformed vertex lines and face lines with unparsable tokens are logged
    and skipped. A face that references an undefined vertex fails the load.
    Faces with fewer than three distinct vertices are dropped, as are faces
    that would make an edge non-manifold or flip its orientation.
    """
    filepath = Path(filepath)
    try:
        text = filepath.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ParseError(f"cannot read file: {e}", path=str(filepath)) from e

    vertices: list[list[float]] = []
    texcoords: list[list[float]] = []
    faces: list[list[int]] = []
    face_tex: list[Optional[list[int]]] = []
    skipped = 0
    degenerate = 0

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split()
        tag = parts[0]

        if tag == "v":
            try:
                vertices.append([float(parts[1]), float(parts[2]), float(parts[3])])
            except (IndexError, ValueError):
                logger.warning(f"{filepath.name}:{lineno}: malformed vertex line skipped: {line!r}")
                skipped += 1
        elif tag == "vt":
            try:
                texcoords.append([float(parts[1]), float(parts[2])])
            except (IndexError, ValueError):
                logger.warning(f"{filepath.name}:{lineno}: malformed texcoord line skipped: {line!r}")
                skipped += 1
        elif tag == "f":
            try:
                corners = [_parse_corner(tok, len(vertices), len(texcoords)) for tok in parts[1:]]
            except ValueError:
                logger.warning(f"{filepath.name}:{lineno}: unparsable face skipped: {line!r}")
                skipped += 1
                continue

            for vi, _ in corners:
                if not 0 <= vi < len(vertices):
                    raise ParseError(
                        f"face references undefined vertex {vi + 1}",
                        path=str(filepath), line=lineno,
                    )

            corners = _collapse_repeats(corners)
            if _is_degenerate(corners):
                degenerate += 1
                continue

            faces.append([vi for vi, _ in corners])
            tex = [ti for _, ti in corners]
            face_tex.append(tex if all(0 <= ti < len(texcoords) for ti in tex) else None)
        elif tag not in _IGNORED_PREFIXES:
            logger.debug(f"{filepath.name}:{lineno}: unknown record '{tag}' ignored")

    if degenerate:
        logger.info(f"{filepath.name}: skipped {degenerate} degenerate faces")
    if skipped:
        logger.info(f"{filepath.name}: skipped {skipped} malformed lines")

    if not vertices or not faces:
        raise ParseError("no valid mesh data found", path=str(filepath))

    keep = _manifold_face_mask(faces, filepath.name)
    faces = [face for face, ok in zip(faces, keep) if ok]
    face_tex = [ft for ft, ok in zip(face_tex, keep) if ok]

    tex_arr = None
    face_texcoords = None
    if texcoords and all(ft is not None for ft in face_tex):
        tex_arr = np.array(texcoords, dtype=np.float64)
        face_texcoords = face_tex
    elif texcoords:
        logger.warning(f"{filepath.name}: texture indices missing on some faces, UV data dropped")

    try:
        return Mesh(
            vertices=np.array(vertices, dtype=np.float64),
            faces=faces,
            texcoords=tex_arr,
            face_texcoords=face_texcoords,
            name=filepath.stem,
            metadata={"source_file": str(filepath), "loader": "obj"},
        )
    except (TopologyError, ValueError) as e:
        raise ParseError(str(e), path=str(filepath)) from e


def _parse_corner(token: str, n_verts: int, n_tex: int) -> tuple[int, int]:
    """Parse ``v``, ``v/vt``, ``v//vn`` or ``v/vt/vn`` into 0-based (v, vt)."""
    fields = token.split("/")
    vi = _resolve_index(int(fields[0]), n_verts)
    ti = -1
    if len(fields) > 1 and fields[1]:
        ti = _resolve_index(int(fields[1]), n_tex)
    return vi, ti


def _resolve_index(index: int, count: int) -> int:
    if index > 0:
        return index - 1
    if index < 0:
        return count + index
    raise ValueError("OBJ indices are 1-based")


def _collapse_repeats(corners: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Drop corners that repeat the previous vertex (cyclically)."""
    out: list[tuple[int, int]] = []
    for c in corners:
        if not out or out[-1][0] != c[0]:
            out.append(c)
    while len(out) > 1 and out[0][0] == out[-1][0]:
        out.pop()
    return out


def _is_degenerate(corners: list[tuple[int, int]]) -> bool:
    distinct = {vi for vi, _ in corners}
    return len(distinct) < 3 or len(distinct) != len(corners)


def _manifold_face_mask(faces: list[list[int]], label: str) -> list[bool]:
    """
    Accept faces one at a time against the directed edges already taken.

    A face whose directed edge ``(a, b)`` is already used by an accepted face
    would either put a third face on that edge or flip its orientation, so it
    is rejected and the rest of the file still loads.
    """
    used: set[tuple[int, int]] = set()
    keep: list[bool] = []
    for fi, face in enumerate(faces):
        n = len(face)
        directed = [(face[i], face[(i + 1) % n]) for i in range(n)]
        if any(d in used for d in directed):
            logger.debug(f"{label}: face {fi} {tuple(face)} rejected, complex edge")
            keep.append(False)
            continue
        used.update(directed)
        keep.append(True)

    rejected = keep.count(False)
    if rejected:
        logger.warning(
            f"{label}: skipped {rejected} faces with non-manifold or inconsistently oriented edges"
        )
    return keep


def _load_via_trimesh(filepath: Path) -> Mesh:
    import trimesh

    try:
        tm = trimesh.load(str(filepath), process=False, force="mesh")
    except Exception as e:
        raise ParseError(f"trimesh failed to read file: {e}", path=str(filepath)) from e

    raw_faces = np.asarray(getattr(tm, "faces", np.zeros((0, 3))), dtype=np.int64)
    faces = []
    degenerate = 0
    for face in raw_faces.tolist():
        corners = _collapse_repeats([(vi, -1) for vi in face])
        if _is_degenerate(corners):
            degenerate += 1
            continue
        faces.append([vi for vi, _ in corners])

    if degenerate:
        logger.info(f"{filepath.name}: skipped {degenerate} degenerate faces")
    if not faces:
        raise ParseError("no faces found", path=str(filepath))

    keep = _manifold_face_mask(faces, filepath.name)
    faces = [face for face, ok in zip(faces, keep) if ok]

    try:
        return Mesh(
            vertices=np.asarray(tm.vertices),
            faces=faces,
            name=filepath.stem,
            metadata={"source_file": str(filepath), "loader": "trimesh"},
        )
    except (TopologyError, ValueError) as e:
        raise ParseError(str(e), path=str(filepath)) from e


def save_obj(mesh: Mesh, filepath: Union[str, Path]) -> None:
    """Write a mesh as OBJ, including texture coordinates when present."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w") as f:
        f.write(f"# meshscope export: {mesh.name}\n")
        f.write(f"# Vertices: {mesh.num_vertices}, Faces: {mesh.num_faces}\n\n")

        for v in mesh.vertices:
            f.write(f"v {v[0]:.9g} {v[1]:.9g} {v[2]:.9g}\n")

        if mesh.has_uv:
            for t in mesh.texcoords:
                f.write(f"vt {t[0]:.9g} {t[1]:.9g}\n")

        f.write("\n")
        for fi, face in enumerate(mesh.faces):
            if mesh.has_uv:
                corners = " ".join(
                    f"{v + 1}/{t + 1}" for v, t in zip(face, mesh.face_texcoords[fi])
                )
            else:
                corners = " ".join(str(v + 1) for v in face)
            f.write(f"f {corners}\n")
