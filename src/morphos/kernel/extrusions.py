"""Linear and rotational extrusion of outlines into solids."""

from __future__ import annotations

import math
from typing import Any, Sequence

from ..errors import KernelError
from .geometry import Outline, Solid, make_solid
from .triangulator import triangulate_outline
from . import options as opt

_FULL_TURN = 2 * math.pi


def _outlines(function: str, objects: Sequence[Any]) -> list[Outline]:
    items = opt.geometries(objects, function)
    for item in items:
        if not isinstance(item, Outline):
            raise KernelError(f"{function}: expected a 2D outline, got a solid")
        if len(item.points) < 3:
            raise KernelError(f"{function}: outline needs at least 3 points")
    return items


def _rotated(points: Sequence[tuple], angle: float) -> list[tuple]:
    c, s = math.cos(angle), math.sin(angle)
    return [(x * c - y * s, x * s + y * c) for x, y in points]


def extrude_outline(outline: Outline, height: float, twist: float = 0.0, steps: int = 1) -> Solid:
    """Sweep ``outline`` from z=0 to z=height, twisting by ``twist`` radians."""
    base = list(outline.points)
    n = len(base)
    rings = []
    for step in range(steps + 1):
        z = height * step / steps
        loop = _rotated(base, twist * step / steps) if twist else base
        rings.append([(x, y, z) for x, y in loop])

    polygons = []
    for lower, upper in zip(rings, rings[1:]):
        for k in range(n):
            j = (k + 1) % n
            if twist:
                polygons.append([lower[k], lower[j], upper[j]])
                polygons.append([lower[k], upper[j], upper[k]])
            else:
                polygons.append([lower[k], lower[j], upper[j], upper[k]])

    index = {pt: i for i, pt in enumerate(base)}
    bottom, top = rings[0], rings[-1]
    for tri in triangulate_outline(base):
        ids = [index[pt] for pt in tri]
        polygons.append([top[i] for i in ids])
        polygons.append([bottom[i] for i in reversed(ids)])
    return make_solid(polygons)


def extrude_linear(options: Any, *objects: Any) -> Any:
    """extrudeLinear({ height = 1, twistAngle = 0, twistSteps = 1 }, ...outlines)"""
    opts = opt.options(options, "extrudeLinear")
    height = opt.positive(opt.option(opts, "height", 1), "height")
    twist = opt.number(opt.option(opts, "twistAngle", 0), "twistAngle")
    steps = opt.segments(opt.option(opts, "twistSteps", 1), "twistSteps", minimum=1)
    results = [extrude_outline(o, height, twist, steps if twist else 1)
               for o in _outlines("extrudeLinear", objects)]
    return opt.single_or_list(results)


def revolve(profile: Sequence[Sequence[float]], segments: int, start: float, angle: float) -> Solid:
    """Revolve a counter-clockwise (x, y) profile about the Z axis.

    Profile X becomes the radius and profile Y becomes height. A sweep short
    of a full turn is closed with flat caps at both ends.
    """
    points = [(float(p[0]), float(p[1])) for p in profile]
    if any(x < 0 for x, _ in points):
        raise KernelError("extrudeRotate: outline must not cross the rotation axis (x < 0)")
    full = angle >= _FULL_TURN - 1e-9
    slices = segments if full else max(1, math.ceil(segments * angle / _FULL_TURN))
    count = slices if full else slices + 1

    rings = []
    for k in range(count):
        theta = start + angle * k / slices
        c, s = math.cos(theta), math.sin(theta)
        rings.append([(x * c, x * s, y) for x, y in points])
    if full:
        rings.append(rings[0])

    n = len(points)
    polygons = []
    for here, there in zip(rings, rings[1:]):
        for i in range(n):
            j = (i + 1) % n
            polygons.append([here[i], there[i], there[j], here[j]])

    if not full:
        index = {pt: i for i, pt in enumerate(points)}
        first, last = rings[0], rings[-1]
        for tri in triangulate_outline(points):
            ids = [index[pt] for pt in tri]
            polygons.append([first[i] for i in ids])
            polygons.append([last[i] for i in reversed(ids)])
    return make_solid(polygons)


def extrude_rotate(options: Any, *objects: Any) -> Any:
    """extrudeRotate({ segments = 12, startAngle = 0, angle = 2 * PI }, outline)"""
    opts = opt.options(options, "extrudeRotate")
    n = opt.segments(opt.option(opts, "segments", 12))
    start = opt.number(opt.option(opts, "startAngle", 0), "startAngle")
    angle = opt.number(opt.option(opts, "angle", _FULL_TURN), "angle")
    if angle == 0:
        raise KernelError("extrudeRotate: angle must not be zero")
    if angle < 0:
        start, angle = start + angle, -angle
    angle = min(angle, _FULL_TURN)
    results = [revolve(o.points, n, start, angle) for o in _outlines("extrudeRotate", objects)]
    return opt.single_or_list(results)


__all__ = ["extrude_outline", "extrude_linear", "revolve", "extrude_rotate"]
