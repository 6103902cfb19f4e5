"""Cap triangulation for extrusions.

We delegate to ``mapbox-earcut`` (the fast ear clipping implementation
used by Mapbox GL). The helper here normalises an outline into the
format expected by earcut and converts the resulting indices back into
triangle vertex tuples.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import mapbox_earcut as _earcut

from .geometry import signed_area

Point2D = Tuple[float, float]

_EPSILON = 1e-12


def triangulate_outline(points: Sequence[Sequence[float]]) -> List[Tuple[Point2D, Point2D, Point2D]]:
    """Return counter-clockwise triangles covering the loop ``points``.

    Degenerate loops (fewer than three distinct points) give no triangles.
    Callers lift the coordinates into 3D and flip the winding where a cap
    must face the other way.
    """
    loop = _prepare_loop(points)
    if len(loop) < 3:
        return []

    vertices = np.asarray(loop, dtype=np.float64)
    ring_array = np.asarray([len(loop)], dtype=np.uint32)
    indices = _earcut.triangulate_float64(vertices, ring_array)
    triangles = []
    for i in range(0, len(indices), 3):
        a, b, c = loop[indices[i]], loop[indices[i + 1]], loop[indices[i + 2]]
        # earcut emits one fixed winding; normalise to counter-clockwise
        if signed_area((a, b, c)) < 0:
            b, c = c, b
        triangles.append((a, b, c))
    return triangles


def _prepare_loop(points: Sequence[Sequence[float]]) -> List[Point2D]:
    loop: List[Point2D] = []
    for pt in points:
        x, y = float(pt[0]), float(pt[1])
        if loop and _near(loop[-1], (x, y)):
            continue
        loop.append((x, y))
    if loop and _near(loop[0], loop[-1]):
        loop.pop()
    if len(loop) >= 3 and signed_area(loop) < 0:
        loop.reverse()
    return loop


def _near(p1: Point2D, p2: Point2D) -> bool:
    return abs(p1[0] - p2[0]) <= _EPSILON and abs(p1[1] - p2[1]) <= _EPSILON


__all__ = ["triangulate_outline"]
