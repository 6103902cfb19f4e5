"""Geometry value types produced by the kernel.

A :class:`Solid` is a closed boundary made of planar polygons; each polygon
is a tuple of XYZ triples wound counter-clockwise when seen from outside. An
:class:`Outline` is a closed 2D loop, counter-clockwise, used as an extrusion
profile. Both are immutable so a program cannot alter a solid after a kernel
call returned it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

import numpy as np

Point3 = Tuple[float, float, float]
Point2 = Tuple[float, float]
Polygon = Tuple[Point3, ...]


@dataclass(frozen=True, eq=False)
class Solid:
    """Boundary representation: an ordered tuple of planar polygons."""
    polygons: Tuple[Polygon, ...] = ()

    def __repr__(self) -> str:
        return f"Solid({len(self.polygons)} polygons)"

    @property
    def is_empty(self) -> bool:
        return not self.polygons

    def points(self) -> np.ndarray:
        """All polygon vertices as an (N, 3) array, duplicates included."""
        pts = [pt for poly in self.polygons for pt in poly]
        if not pts:
            return np.zeros((0, 3))
        return np.asarray(pts, dtype=float)

    def triangles(self) -> Iterator[Tuple[Point3, Point3, Point3]]:
        """Fan-triangulate every polygon from its first vertex."""
        for poly in self.polygons:
            anchor = poly[0]
            for i in range(1, len(poly) - 1):
                yield anchor, poly[i], poly[i + 1]

    def bounds(self) -> Tuple[Point3, Point3]:
        pts = self.points()
        if len(pts) == 0:
            return (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return tuple(float(v) for v in lo), tuple(float(v) for v in hi)


@dataclass(frozen=True, eq=False)
class Outline:
    """Closed counter-clockwise 2D point loop."""
    points: Tuple[Point2, ...] = ()

    def __repr__(self) -> str:
        return f"Outline({len(self.points)} points)"

    def bounds(self) -> Tuple[Point3, Point3]:
        if not self.points:
            return (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)
        pts = np.asarray(self.points, dtype=float)
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return (float(lo[0]), float(lo[1]), 0.0), (float(hi[0]), float(hi[1]), 0.0)


def signed_area(points: Sequence[Sequence[float]]) -> float:
    total = 0.0
    for i, (x0, y0) in enumerate(points):
        x1, y1 = points[(i + 1) % len(points)]
        total += x0 * y1 - x1 * y0
    return total / 2.0


def make_outline(points: Sequence[Sequence[float]]) -> Outline:
    """Build an Outline, dropping repeated points and enforcing CCW order."""
    loop: list[Point2] = []
    for pt in points:
        p = (float(pt[0]), float(pt[1]))
        if loop and loop[-1] == p:
            continue
        loop.append(p)
    if len(loop) > 1 and loop[0] == loop[-1]:
        loop.pop()
    if len(loop) >= 3 and signed_area(loop) < 0:
        loop.reverse()
    return Outline(tuple(loop))


def clean_polygon(points: Sequence[Sequence[float]]) -> Polygon | None:
    """Drop consecutive duplicate vertices; None when fewer than 3 remain."""
    poly: list[Point3] = []
    for pt in points:
        p = (float(pt[0]), float(pt[1]), float(pt[2]))
        if poly and poly[-1] == p:
            continue
        poly.append(p)
    if len(poly) > 1 and poly[0] == poly[-1]:
        poly.pop()
    if len(poly) < 3:
        return None
    return tuple(poly)


def make_solid(polygons) -> Solid:
    """Build a Solid from raw point lists, skipping degenerate polygons."""
    cleaned = []
    for poly in polygons:
        p = clean_polygon(poly)
        if p is not None:
            cleaned.append(p)
    return Solid(tuple(cleaned))


__all__ = [
    "Point2",
    "Point3",
    "Polygon",
    "Solid",
    "Outline",
    "signed_area",
    "make_outline",
    "clean_polygon",
    "make_solid",
]
