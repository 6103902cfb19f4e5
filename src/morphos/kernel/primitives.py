"""Primitive solids and outlines with JSCAD-style options and defaults.

Every constructor computes each shared vertex exactly once and reuses it, so
adjacent faces meet at bit-identical points and the boundary stays closed.
"""

from __future__ import annotations

import math
from typing import Any, List, Sequence

from ..errors import KernelError
from .geometry import Outline, Solid, make_outline, make_solid
from . import options as opt

# Vertex order of a box corner: bit 0 -> x, bit 1 -> y, bit 2 -> z
_CUBOID_FACES = (
    (0, 4, 6, 2),  # -x
    (1, 3, 7, 5),  # +x
    (0, 1, 5, 4),  # -y
    (2, 6, 7, 3),  # +y
    (0, 2, 3, 1),  # -z
    (4, 5, 7, 6),  # +z
)


def _box(center: Sequence[float], size: Sequence[float]) -> Solid:
    corners = []
    for i in range(8):
        corners.append((
            center[0] + size[0] / 2 * (1 if i & 1 else -1),
            center[1] + size[1] / 2 * (1 if i & 2 else -1),
            center[2] + size[2] / 2 * (1 if i & 4 else -1),
        ))
    return Solid(tuple(tuple(corners[i] for i in face) for face in _CUBOID_FACES))


def cuboid(options: Any = None) -> Solid:
    """cuboid({ size = [2, 2, 2], center = [0, 0, 0] })"""
    opts = opt.options(options, "cuboid")
    size = opt.vector(opt.option(opts, "size", [2, 2, 2]), "size", 3)
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    if any(s <= 0 for s in size):
        raise KernelError("cuboid: size must be positive")
    return _box(center, size)


def cube(options: Any = None) -> Solid:
    """cube({ size = 2, center = [0, 0, 0] })"""
    opts = opt.options(options, "cube")
    size = opt.positive(opt.option(opts, "size", 2), "size")
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    return _box(center, [size, size, size])


def _ring(rx: float, ry: float, z: float, n: int, center: Sequence[float]) -> List[tuple]:
    ring = []
    for i in range(n):
        theta = 2 * math.pi * i / n
        ring.append((center[0] + rx * math.cos(theta), center[1] + ry * math.sin(theta), center[2] + z))
    return ring


def _frustum(height: float, start: Sequence[float], end: Sequence[float], n: int,
             center: Sequence[float]) -> Solid:
    """Elliptic frustum along Z; a zero radius collapses that end to an apex."""
    zb, zt = -height / 2, height / 2
    start_apex = start[0] == 0 and start[1] == 0
    end_apex = end[0] == 0 and end[1] == 0
    if start_apex and end_apex:
        raise KernelError("cylinder: at least one radius must be positive")

    bottom = [(center[0], center[1], center[2] + zb)] * n if start_apex \
        else _ring(start[0], start[1], zb, n, center)
    top = [(center[0], center[1], center[2] + zt)] * n if end_apex \
        else _ring(end[0], end[1], zt, n, center)

    polygons = []
    for i in range(n):
        j = (i + 1) % n
        polygons.append([bottom[i], bottom[j], top[j], top[i]])
    if not end_apex:
        polygons.append(list(top))
    if not start_apex:
        polygons.append(list(reversed(bottom)))
    return make_solid(polygons)


def cylinder(options: Any = None) -> Solid:
    """cylinder({ height = 2, radius = 1, segments = 32, center = [0, 0, 0] })"""
    opts = opt.options(options, "cylinder")
    height = opt.positive(opt.option(opts, "height", 2), "height")
    radius = opt.positive(opt.option(opts, "radius", 1), "radius")
    n = opt.segments(opt.option(opts, "segments", 32))
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    return _frustum(height, [radius, radius], [radius, radius], n, center)


def cylinder_elliptic(options: Any = None) -> Solid:
    """cylinderElliptic({ height = 2, startRadius = [1, 1], endRadius = [1, 1], segments = 32 })"""
    opts = opt.options(options, "cylinderElliptic")
    height = opt.positive(opt.option(opts, "height", 2), "height")
    start = opt.vector(opt.option(opts, "startRadius", [1, 1]), "startRadius", 2)
    end = opt.vector(opt.option(opts, "endRadius", [1, 1]), "endRadius", 2)
    n = opt.segments(opt.option(opts, "segments", 32))
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    if any(r < 0 for r in start + end):
        raise KernelError("cylinderElliptic: radii must not be negative")
    if (start[0] == 0) != (start[1] == 0) or (end[0] == 0) != (end[1] == 0):
        raise KernelError("cylinderElliptic: both components of a radius must be zero or positive")
    return _frustum(height, start, end, n, center)


def _uv_sphere(radii: Sequence[float], n: int, center: Sequence[float]) -> Solid:
    rings = max(2, n // 2)
    top = (center[0], center[1], center[2] + radii[2])
    bottom = (center[0], center[1], center[2] - radii[2])
    latitudes = []
    for j in range(1, rings):
        phi = math.pi * j / rings
        z = math.cos(phi)
        rho = math.sin(phi)
        latitudes.append(_ring(radii[0] * rho, radii[1] * rho, radii[2] * z, n, center))

    polygons = []
    first, last = latitudes[0], latitudes[-1]
    for i in range(n):
        k = (i + 1) % n
        polygons.append([top, first[i], first[k]])
        for upper, lower in zip(latitudes, latitudes[1:]):
            polygons.append([upper[i], lower[i], lower[k], upper[k]])
        polygons.append([last[i], bottom, last[k]])
    return make_solid(polygons)


def sphere(options: Any = None) -> Solid:
    """sphere({ radius = 1, segments = 32, center = [0, 0, 0] })"""
    opts = opt.options(options, "sphere")
    radius = opt.positive(opt.option(opts, "radius", 1), "radius")
    n = opt.segments(opt.option(opts, "segments", 32), minimum=4)
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    return _uv_sphere([radius] * 3, n, center)


def ellipsoid(options: Any = None) -> Solid:
    """ellipsoid({ radius = [1, 1, 1], segments = 32, center = [0, 0, 0] })"""
    opts = opt.options(options, "ellipsoid")
    radii = opt.vector(opt.option(opts, "radius", [1, 1, 1]), "radius", 3)
    if any(r <= 0 for r in radii):
        raise KernelError("ellipsoid: radius must be positive")
    n = opt.segments(opt.option(opts, "segments", 32), minimum=4)
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    return _uv_sphere(radii, n, center)


def torus(options: Any = None) -> Solid:
    """torus({ innerRadius = 1, outerRadius = 4, innerSegments = 32, outerSegments = 32 })

    ``innerRadius`` is the tube radius and ``outerRadius`` the distance from
    the axis to the tube centre, as in JSCAD.
    """
    from .extrusions import revolve

    opts = opt.options(options, "torus")
    inner = opt.positive(opt.option(opts, "innerRadius", 1), "innerRadius")
    outer = opt.positive(opt.option(opts, "outerRadius", 4), "outerRadius")
    inner_n = opt.segments(opt.option(opts, "innerSegments", 32), "innerSegments")
    outer_n = opt.segments(opt.option(opts, "outerSegments", 32), "outerSegments")
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    if inner >= outer:
        raise KernelError("torus: innerRadius must be smaller than outerRadius")
    profile = _circle_points(inner, inner, inner_n, (outer, 0.0))
    solid = revolve(profile, outer_n, 0.0, 2 * math.pi)
    if any(center):
        from .transforms import translate_geometry
        solid = translate_geometry(solid, center)
    return solid


def rounded_cuboid(options: Any = None) -> Solid:
    """roundedCuboid({ size = [2, 2, 2], roundRadius = 0.2, segments = 32 })"""
    from .hulls import hull_points

    opts = opt.options(options, "roundedCuboid")
    size = opt.vector(opt.option(opts, "size", [2, 2, 2]), "size", 3)
    rr = opt.positive(opt.option(opts, "roundRadius", 0.2), "roundRadius")
    n = opt.segments(opt.option(opts, "segments", 32), minimum=4)
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    if any(s <= 0 for s in size):
        raise KernelError("roundedCuboid: size must be positive")
    if any(rr >= s / 2 for s in size):
        raise KernelError("roundedCuboid: roundRadius must be smaller than half of each size")

    inset = [s / 2 - rr for s in size]
    points = []
    for i in range(8):
        corner = (
            center[0] + inset[0] * (1 if i & 1 else -1),
            center[1] + inset[1] * (1 if i & 2 else -1),
            center[2] + inset[2] * (1 if i & 4 else -1),
        )
        points.extend(_uv_sphere([rr] * 3, n, corner).points())
    return hull_points(points)


def rounded_cylinder(options: Any = None) -> Solid:
    """roundedCylinder({ height = 2, radius = 1, roundRadius = 0.2, segments = 32 })"""
    from .extrusions import revolve
    from .hulls import hull_points

    opts = opt.options(options, "roundedCylinder")
    height = opt.positive(opt.option(opts, "height", 2), "height")
    radius = opt.positive(opt.option(opts, "radius", 1), "radius")
    rr = opt.positive(opt.option(opts, "roundRadius", 0.2), "roundRadius")
    n = opt.segments(opt.option(opts, "segments", 32), minimum=4)
    center = opt.vector(opt.option(opts, "center", [0, 0, 0]), "center", 3)
    if rr >= radius or 2 * rr >= height:
        raise KernelError("roundedCylinder: roundRadius must be smaller than radius and half the height")

    # Hull of two rings of tubes (a torus at each end)
    profile = _circle_points(rr, rr, max(4, n // 2), (radius - rr, 0.0))
    ring = revolve(profile, n, 0.0, 2 * math.pi).points()
    offset = height / 2 - rr
    points = []
    for z in (-offset, offset):
        for x, y, zz in ring:
            points.append((center[0] + x, center[1] + y, center[2] + zz + z))
    return hull_points(points)


def polyhedron(options: Any = None) -> Solid:
    """polyhedron({ points, faces, orientation = 'outward' })"""
    opts = opt.options(options, "polyhedron")
    raw_points = opt.option(opts, "points", None)
    faces = opt.option(opts, "faces", None)
    orientation = opt.option(opts, "orientation", "outward")
    if not isinstance(raw_points, list) or not isinstance(faces, list):
        raise KernelError("polyhedron: points and faces are required")
    if orientation not in ("outward", "inward"):
        raise KernelError("polyhedron: orientation must be 'outward' or 'inward'")
    points = [tuple(opt.vector(p, "point", 3)) for p in raw_points]
    polygons = []
    for face in faces:
        if not isinstance(face, list) or len(face) < 3:
            raise KernelError("polyhedron: each face needs at least 3 point indices")
        loop = []
        for index in face:
            i = int(opt.number(index, "face index"))
            if not 0 <= i < len(points):
                raise KernelError(f"polyhedron: face index {i} out of range")
            loop.append(points[i])
        if orientation == "inward":
            loop.reverse()
        polygons.append(loop)
    return make_solid(polygons)


# ---------------------------------------------------------------------------
# 2D outlines
# ---------------------------------------------------------------------------

def _circle_points(rx: float, ry: float, n: int, center: Sequence[float]) -> List[tuple]:
    return [(center[0] + rx * math.cos(2 * math.pi * i / n),
             center[1] + ry * math.sin(2 * math.pi * i / n)) for i in range(n)]


def rectangle(options: Any = None) -> Outline:
    """rectangle({ size = [2, 2], center = [0, 0] })"""
    opts = opt.options(options, "rectangle")
    size = opt.vector(opt.option(opts, "size", [2, 2]), "size", 2)
    center = opt.vector(opt.option(opts, "center", [0, 0]), "center", 2)
    if any(s <= 0 for s in size):
        raise KernelError("rectangle: size must be positive")
    hx, hy = size[0] / 2, size[1] / 2
    cx, cy = center
    return make_outline([(cx - hx, cy - hy), (cx + hx, cy - hy), (cx + hx, cy + hy), (cx - hx, cy + hy)])


def square(options: Any = None) -> Outline:
    """square({ size = 2, center = [0, 0] })"""
    opts = opt.options(options, "square")
    size = opt.positive(opt.option(opts, "size", 2), "size")
    center = opt.option(opts, "center", [0, 0])
    return rectangle({"size": [size, size], "center": center})


def circle(options: Any = None) -> Outline:
    """circle({ radius = 1, segments = 32, center = [0, 0] })"""
    opts = opt.options(options, "circle")
    radius = opt.positive(opt.option(opts, "radius", 1), "radius")
    n = opt.segments(opt.option(opts, "segments", 32))
    center = opt.vector(opt.option(opts, "center", [0, 0]), "center", 2)
    return make_outline(_circle_points(radius, radius, n, center))


def ellipse(options: Any = None) -> Outline:
    """ellipse({ radius = [1, 1], segments = 32, center = [0, 0] })"""
    opts = opt.options(options, "ellipse")
    radii = opt.vector(opt.option(opts, "radius", [1, 1]), "radius", 2)
    if any(r <= 0 for r in radii):
        raise KernelError("ellipse: radius must be positive")
    n = opt.segments(opt.option(opts, "segments", 32))
    center = opt.vector(opt.option(opts, "center", [0, 0]), "center", 2)
    return make_outline(_circle_points(radii[0], radii[1], n, center))


def polygon(options: Any = None) -> Outline:
    """polygon({ points })

    Only a single path is supported; nested paths (holes) are rejected.
    """
    opts = opt.options(options, "polygon")
    points = opt.option(opts, "points", None)
    if not isinstance(points, list) or not points:
        raise KernelError("polygon: points must be a non-empty array")
    if isinstance(points[0], list) and points[0] and isinstance(points[0][0], list):
        if len(points) != 1:
            raise KernelError("polygon: multiple paths (holes) are not supported")
        points = points[0]
    outline = make_outline([opt.vector(p, "point", 2) for p in points])
    if len(outline.points) < 3:
        raise KernelError("polygon: at least 3 distinct points are required")
    return outline


__all__ = [
    "cuboid",
    "cube",
    "rounded_cuboid",
    "cylinder",
    "cylinder_elliptic",
    "rounded_cylinder",
    "sphere",
    "ellipsoid",
    "torus",
    "polyhedron",
    "rectangle",
    "square",
    "circle",
    "ellipse",
    "polygon",
]
