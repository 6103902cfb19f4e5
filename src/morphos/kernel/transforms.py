"""Affine transforms for solids and outlines.

Every transform builds a 4x4 homogeneous matrix and maps each vertex through
it. Matrices with a negative determinant (mirrors, negative scales) reverse
polygon winding so outward faces stay outward. Outlines are transformed in
the z=0 plane and keep only X and Y.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from ..errors import KernelError
from .geometry import Outline, Solid, make_outline
from . import options as opt


def translation_matrix(offset: Sequence[float]) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = offset
    return m


def scale_matrix(factors: Sequence[float]) -> np.ndarray:
    return np.diag([factors[0], factors[1], factors[2], 1.0])


def rotation_matrix(angles: Sequence[float]) -> np.ndarray:
    """Rotation about X, then Y, then Z (radians)."""
    ax, ay, az = angles
    cx, sx = math.cos(ax), math.sin(ax)
    cy, sy = math.cos(ay), math.sin(ay)
    cz, sz = math.cos(az), math.sin(az)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    m = np.eye(4)
    m[:3, :3] = rz @ ry @ rx
    return m


def mirror_matrix(origin: Sequence[float], normal: Sequence[float]) -> np.ndarray:
    n = np.asarray(normal, dtype=float)
    length = np.linalg.norm(n)
    if length <= 1e-12:
        raise KernelError("mirror: normal must not be zero")
    n = n / length
    reflect = np.eye(3) - 2.0 * np.outer(n, n)
    o = np.asarray(origin, dtype=float)
    m = np.eye(4)
    m[:3, :3] = reflect
    m[:3, 3] = o - reflect @ o
    return m


def _apply(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def transform_geometry(geometry: Solid | Outline, matrix: np.ndarray) -> Solid | Outline:
    """Map ``geometry`` through ``matrix``; the input is left unchanged."""
    flip = np.linalg.det(matrix[:3, :3]) < 0
    if isinstance(geometry, Outline):
        if not geometry.points:
            return geometry
        pts = np.column_stack([np.asarray(geometry.points, dtype=float),
                               np.zeros(len(geometry.points))])
        mapped = _apply(matrix, pts)
        # make_outline restores counter-clockwise order
        return make_outline([(float(x), float(y)) for x, y, _ in mapped])

    polygons = []
    for poly in geometry.polygons:
        mapped = _apply(matrix, np.asarray(poly, dtype=float))
        loop = tuple((float(x), float(y), float(z)) for x, y, z in mapped)
        polygons.append(loop[::-1] if flip else loop)
    return Solid(tuple(polygons))


def translate_geometry(geometry: Solid | Outline, offset: Sequence[float]) -> Solid | Outline:
    return transform_geometry(geometry, translation_matrix(offset))


def _each(function: str, objects: Sequence[Any], matrix: np.ndarray) -> Any:
    items = opt.geometries(objects, function)
    return opt.single_or_list([transform_geometry(item, matrix) for item in items])


def translate(offset: Any, *objects: Any) -> Any:
    """translate([x, y, z], ...objects)"""
    vec = opt.vector(offset, "translate offset", 3, fill=0.0)
    return _each("translate", objects, translation_matrix(vec))


def _axis_translate(axis: int, name: str):
    def function(offset: Any, *objects: Any) -> Any:
        vec = [0.0, 0.0, 0.0]
        vec[axis] = opt.number(offset, f"{name} offset")
        return _each(name, objects, translation_matrix(vec))
    function.__name__ = name
    return function


translate_x = _axis_translate(0, "translateX")
translate_y = _axis_translate(1, "translateY")
translate_z = _axis_translate(2, "translateZ")


def rotate(angles: Any, *objects: Any) -> Any:
    """rotate([ax, ay, az], ...objects), angles in radians."""
    vec = opt.vector(angles, "rotate angles", 3, fill=0.0)
    return _each("rotate", objects, rotation_matrix(vec))


def _axis_rotate(axis: int, name: str):
    def function(angle: Any, *objects: Any) -> Any:
        vec = [0.0, 0.0, 0.0]
        vec[axis] = opt.number(angle, f"{name} angle")
        return _each(name, objects, rotation_matrix(vec))
    function.__name__ = name
    return function


rotate_x = _axis_rotate(0, "rotateX")
rotate_y = _axis_rotate(1, "rotateY")
rotate_z = _axis_rotate(2, "rotateZ")


def _check_factors(function: str, factors: Sequence[float]) -> None:
    if any(f == 0 for f in factors):
        raise KernelError(f"{function}: scale factors must not be zero")


def scale(factors: Any, *objects: Any) -> Any:
    """scale([sx, sy, sz], ...objects)"""
    vec = opt.vector(factors, "scale factors", 3, fill=1.0)
    _check_factors("scale", vec)
    return _each("scale", objects, scale_matrix(vec))


def _axis_scale(axis: int, name: str):
    def function(factor: Any, *objects: Any) -> Any:
        vec = [1.0, 1.0, 1.0]
        vec[axis] = opt.number(factor, f"{name} factor")
        _check_factors(name, vec)
        return _each(name, objects, scale_matrix(vec))
    function.__name__ = name
    return function


scale_x = _axis_scale(0, "scaleX")
scale_y = _axis_scale(1, "scaleY")
scale_z = _axis_scale(2, "scaleZ")


def mirror(options: Any, *objects: Any) -> Any:
    """mirror({ origin = [0, 0, 0], normal = [0, 0, 1] }, ...objects)"""
    opts = opt.options(options, "mirror")
    origin = opt.vector(opt.option(opts, "origin", [0, 0, 0]), "origin", 3, fill=0.0)
    normal = opt.vector(opt.option(opts, "normal", [0, 0, 1]), "normal", 3, fill=0.0)
    return _each("mirror", objects, mirror_matrix(origin, normal))


def _axis_mirror(normal: Sequence[float], name: str):
    def function(*objects: Any) -> Any:
        return _each(name, objects, mirror_matrix([0, 0, 0], normal))
    function.__name__ = name
    return function


mirror_x = _axis_mirror([1, 0, 0], "mirrorX")
mirror_y = _axis_mirror([0, 1, 0], "mirrorY")
mirror_z = _axis_mirror([0, 0, 1], "mirrorZ")


def center(options: Any, *objects: Any) -> Any:
    """center({ axes = [true, true, true], relativeTo = [0, 0, 0] }, ...objects)

    Moves each object so the centre of its bounding box lands on
    ``relativeTo`` along the selected axes.
    """
    opts = opt.options(options, "center")
    axes = opt.option(opts, "axes", [True, True, True])
    if not isinstance(axes, list) or len(axes) != 3:
        raise KernelError("center: axes must be an array of 3 booleans")
    target = opt.vector(opt.option(opts, "relativeTo", [0, 0, 0]), "relativeTo", 3, fill=0.0)
    results = []
    for item in opt.geometries(objects, "center"):
        lo, hi = item.bounds()
        offset = [(target[i] - (lo[i] + hi[i]) / 2) if axes[i] else 0.0 for i in range(3)]
        results.append(translate_geometry(item, offset))
    return opt.single_or_list(results)


__all__ = [
    "translation_matrix",
    "scale_matrix",
    "rotation_matrix",
    "mirror_matrix",
    "transform_geometry",
    "translate_geometry",
    "translate",
    "translate_x",
    "translate_y",
    "translate_z",
    "rotate",
    "rotate_x",
    "rotate_y",
    "rotate_z",
    "scale",
    "scale_x",
    "scale_y",
    "scale_z",
    "mirror",
    "mirror_x",
    "mirror_y",
    "mirror_z",
    "center",
]
