"""Convex hulls of solids and outlines."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import trimesh
from scipy.spatial import ConvexHull, QhullError

from ..errors import KernelError
from .geometry import Outline, Solid, make_outline
from . import options as opt
from .booleans import union


def hull_points(points) -> Solid:
    """Convex hull of a 3D point cloud as a triangle boundary."""
    pts = np.unique(np.round(np.asarray(points, dtype=float), 12), axis=0)
    if len(pts) < 4:
        raise KernelError("hull: at least 4 distinct points are required")
    try:
        mesh = trimesh.convex.convex_hull(pts)
    except QhullError as exc:
        raise KernelError(f"hull: points are degenerate ({exc})") from exc
    polygons = tuple(
        tuple((float(x), float(y), float(z)) for x, y, z in tri)
        for tri in np.asarray(mesh.triangles)
    )
    return Solid(polygons)


def hull_outline_points(points) -> Outline:
    pts = np.unique(np.asarray(points, dtype=float), axis=0)
    if len(pts) < 3:
        raise KernelError("hull: at least 3 distinct points are required")
    try:
        hull = ConvexHull(pts)
    except QhullError as exc:
        raise KernelError(f"hull: points are degenerate ({exc})") from exc
    # 2D hull vertices come back in counter-clockwise order
    return make_outline([tuple(pts[i]) for i in hull.vertices])


def _hull(items: Sequence[Solid | Outline]) -> Solid | Outline:
    outlines = [i for i in items if isinstance(i, Outline)]
    if outlines and len(outlines) != len(items):
        raise KernelError("hull: cannot mix 2D and 3D geometry")
    if outlines:
        return hull_outline_points([pt for o in outlines for pt in o.points])
    return hull_points(np.concatenate([s.points() for s in items]))


def hull(*objects: Any) -> Solid | Outline:
    """hull(...geometries): the convex hull of all inputs together."""
    return _hull(opt.geometries(objects, "hull"))


def hull_chain(*objects: Any) -> Solid | Outline:
    """hullChain(...geometries): union of the hulls of consecutive pairs."""
    items = opt.geometries(objects, "hullChain")
    if len(items) < 2:
        raise KernelError("hullChain: at least 2 geometries are required")
    pieces = [_hull([a, b]) for a, b in zip(items, items[1:])]
    if isinstance(pieces[0], Outline):
        # 2D chains are approximated by the hull of every point
        return _hull(items)
    return union(*pieces)


__all__ = ["hull_points", "hull_outline_points", "hull", "hull_chain"]
