"""Boolean operations on solids, backed by trimesh's manifold engine.

Solids are converted to ``trimesh.Trimesh`` with shared vertices merged,
combined via :mod:`trimesh.boolean` and converted back into a triangle
boundary. Engine failures surface as :class:`~morphos.errors.KernelError`.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
import trimesh

from ..errors import KernelError
from .geometry import Outline, Solid
from . import options as opt

logger = logging.getLogger(__name__)

ENGINE_NAME = "manifold"


def _solid_to_mesh(solid: Solid) -> trimesh.Trimesh:
    vertex_map: dict[tuple[float, float, float], int] = {}
    verts = []
    faces = []
    for tri in solid.triangles():
        face_inds = []
        for pt in tri:
            key = (round(pt[0], 9), round(pt[1], 9), round(pt[2], 9))
            idx = vertex_map.get(key)
            if idx is None:
                idx = len(verts)
                vertex_map[key] = idx
                verts.append([pt[0], pt[1], pt[2]])
            face_inds.append(idx)
        if len(set(face_inds)) == 3:
            faces.append(face_inds)

    if not faces:
        return trimesh.Trimesh(vertices=np.zeros((0, 3)), faces=np.zeros((0, 3), dtype=np.int64), process=False)

    mesh = trimesh.Trimesh(
        vertices=np.asarray(verts, dtype=float),
        faces=np.asarray(faces, dtype=np.int64),
        process=False,
    )
    mesh.remove_unreferenced_vertices()
    if not mesh.is_watertight:
        mesh.merge_vertices()
        mesh.update_faces(mesh.unique_faces())
        mesh.update_faces(mesh.nondegenerate_faces())
    return mesh


def _mesh_to_solid(mesh: trimesh.Trimesh) -> Solid:
    triangles = np.asarray(mesh.triangles)
    polygons = tuple(
        tuple((float(x), float(y), float(z)) for x, y, z in tri)
        for tri in triangles
    )
    return Solid(polygons)


def _boolean(operation: str, solids: Sequence[Solid]) -> Solid:
    meshes = [_solid_to_mesh(s) for s in solids]
    for index, mesh in enumerate(meshes):
        # the engine silently returns an empty mesh for open or inside-out input
        if not mesh.is_volume:
            raise KernelError(f"{operation} failed: input {index + 1} is not a closed volume")
    logger.debug("%s of %d solids via %s", operation, len(meshes), ENGINE_NAME)
    try:
        if operation == "union":
            result = trimesh.boolean.union(meshes, engine=ENGINE_NAME, check_volume=False)
        elif operation == "intersect":
            result = trimesh.boolean.intersection(meshes, engine=ENGINE_NAME, check_volume=False)
        elif operation == "subtract":
            result = trimesh.boolean.difference(meshes, engine=ENGINE_NAME, check_volume=False)
        else:
            raise KernelError(f"unsupported boolean operation '{operation}'")
    except KernelError:
        raise
    except Exception as exc:
        raise KernelError(f"{operation} failed: {exc}") from exc

    if result is None or result.faces.size == 0:
        if operation == "union":
            raise KernelError("union failed: the engine returned no geometry")
        return Solid(())
    return _mesh_to_solid(result)


def _solids(function: str, objects: Sequence[Any]) -> list[Solid]:
    items = opt.geometries(objects, function)
    for item in items:
        if isinstance(item, Outline):
            raise KernelError(f"{function}: 2D outlines are not supported, extrude them first")
    return items


def union(*objects: Any) -> Solid:
    """union(...solids): the volume covered by any input."""
    solids = [s for s in _solids("union", objects) if not s.is_empty]
    if not solids:
        return Solid(())
    if len(solids) == 1:
        return solids[0]
    return _boolean("union", solids)


def subtract(*objects: Any) -> Solid:
    """subtract(base, ...tools): the base with every tool removed."""
    solids = _solids("subtract", objects)
    base, tools = solids[0], [s for s in solids[1:] if not s.is_empty]
    if base.is_empty or not tools:
        return base
    return _boolean("subtract", [base] + tools)


def intersect(*objects: Any) -> Solid:
    """intersect(...solids): the volume common to every input."""
    solids = _solids("intersect", objects)
    if any(s.is_empty for s in solids):
        return Solid(())
    if len(solids) == 1:
        return solids[0]
    return _boolean("intersect", solids)


__all__ = ["ENGINE_NAME", "union", "subtract", "intersect"]
