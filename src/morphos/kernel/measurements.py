"""Measurements and colour tagging.

Colour has no effect on the exported mesh (binary STL carries no colour),
so ``colorize`` validates its arguments and returns the geometry unchanged.
"""

from __future__ import annotations

from typing import Any

from ..errors import KernelError
from .geometry import Solid
from . import options as opt
from .booleans import _solid_to_mesh


def _bounds(item) -> list[list[float]]:
    lo, hi = item.bounds()
    return [list(lo), list(hi)]


def measure_bounding_box(*objects: Any) -> Any:
    """measureBoundingBox(...geometries) -> [[minX, minY, minZ], [maxX, maxY, maxZ]]"""
    return opt.single_or_list([_bounds(i) for i in opt.geometries(objects, "measureBoundingBox")])


def measure_center(*objects: Any) -> Any:
    results = []
    for item in opt.geometries(objects, "measureCenter"):
        lo, hi = item.bounds()
        results.append([(a + b) / 2 for a, b in zip(lo, hi)])
    return opt.single_or_list(results)


def measure_dimensions(*objects: Any) -> Any:
    results = []
    for item in opt.geometries(objects, "measureDimensions"):
        lo, hi = item.bounds()
        results.append([b - a for a, b in zip(lo, hi)])
    return opt.single_or_list(results)


def measure_volume(*objects: Any) -> Any:
    results = []
    for item in opt.geometries(objects, "measureVolume"):
        if not isinstance(item, Solid) or item.is_empty:
            results.append(0)
            continue
        results.append(float(_solid_to_mesh(item).volume))
    return opt.single_or_list(results)


def colorize(color: Any, *objects: Any) -> Any:
    """colorize([r, g, b, a?], ...geometries)"""
    if not isinstance(color, list) or len(color) not in (3, 4):
        raise KernelError("colorize: color must be an array of 3 or 4 numbers")
    for channel in color:
        opt.number(channel, "color component")
    return opt.single_or_list(opt.geometries(objects, "colorize"))


__all__ = [
    "measure_bounding_box",
    "measure_center",
    "measure_dimensions",
    "measure_volume",
    "colorize",
]
