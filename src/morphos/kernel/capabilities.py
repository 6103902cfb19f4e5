"""The capability table: everything a program can name.

A :class:`CapabilitySet` maps JSCAD group names (``primitives``,
``booleans`` ...) to read-only namespaces of kernel functions, adds ``Math``
and a ``require`` that only knows ``'@jscad/modeling'``, and turns the
result into the closed root scope a program runs in. Nothing else from the
Python process is reachable from a script.

Example::

    caps = default_capabilities()
    sorted(caps.names())
    # ['Math', 'booleans', 'colors', 'extrusions', 'hulls', ...]
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from ..dsl.errors import error_module_not_found
from ..dsl.runtime.builtins import standard_globals
from ..dsl.runtime.context import Scope
from ..dsl.runtime.values import NativeFunction, Namespace, to_display
from . import booleans, extrusions, hulls, measurements, primitives, transforms
from . import options as opt

MODULE_NAME = "@jscad/modeling"

GROUPS: dict[str, dict[str, Callable[..., Any]]] = {
    "primitives": {
        "cuboid": primitives.cuboid,
        "cube": primitives.cube,
        "roundedCuboid": primitives.rounded_cuboid,
        "cylinder": primitives.cylinder,
        "cylinderElliptic": primitives.cylinder_elliptic,
        "roundedCylinder": primitives.rounded_cylinder,
        "sphere": primitives.sphere,
        "ellipsoid": primitives.ellipsoid,
        "torus": primitives.torus,
        "polyhedron": primitives.polyhedron,
        "rectangle": primitives.rectangle,
        "square": primitives.square,
        "circle": primitives.circle,
        "ellipse": primitives.ellipse,
        "polygon": primitives.polygon,
    },
    "booleans": {
        "union": booleans.union,
        "subtract": booleans.subtract,
        "intersect": booleans.intersect,
    },
    "transforms": {
        "translate": transforms.translate,
        "translateX": transforms.translate_x,
        "translateY": transforms.translate_y,
        "translateZ": transforms.translate_z,
        "rotate": transforms.rotate,
        "rotateX": transforms.rotate_x,
        "rotateY": transforms.rotate_y,
        "rotateZ": transforms.rotate_z,
        "scale": transforms.scale,
        "scaleX": transforms.scale_x,
        "scaleY": transforms.scale_y,
        "scaleZ": transforms.scale_z,
        "mirror": transforms.mirror,
        "mirrorX": transforms.mirror_x,
        "mirrorY": transforms.mirror_y,
        "mirrorZ": transforms.mirror_z,
        "center": transforms.center,
    },
    "extrusions": {
        "extrudeLinear": extrusions.extrude_linear,
        "extrudeRotate": extrusions.extrude_rotate,
    },
    "hulls": {
        "hull": hulls.hull,
        "hullChain": hulls.hull_chain,
    },
    "colors": {
        "colorize": measurements.colorize,
    },
    "measurements": {
        "measureBoundingBox": measurements.measure_bounding_box,
        "measureCenter": measurements.measure_center,
        "measureDimensions": measurements.measure_dimensions,
        "measureVolume": measurements.measure_volume,
    },
    "utils": {
        "degToRad": lambda degrees: opt.number(degrees, "degrees") * math.pi / 180,
        "radToDeg": lambda radians: opt.number(radians, "radians") * 180 / math.pi,
    },
}


def _namespace(name: str, functions: Mapping[str, Callable[..., Any]]) -> Namespace:
    return Namespace(name, {key: NativeFunction(key, fn) for key, fn in functions.items()})


@dataclass(frozen=True)
class CapabilitySet:
    """Fixed, read-only table of the names visible inside the sandbox."""
    entries: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def names(self) -> list[str]:
        return list(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> Any:
        return self.entries[name]

    def root_scope(self) -> Scope:
        """A closed root scope: language globals plus the capability entries."""
        bindings = standard_globals()
        bindings.update(self.entries)
        return Scope.from_bindings(bindings)


def build_capabilities(groups: Mapping[str, Mapping[str, Callable[..., Any]]] | None = None) -> CapabilitySet:
    groups = GROUPS if groups is None else groups
    namespaces = {name: _namespace(name, fns) for name, fns in groups.items()}
    modeling = Namespace(MODULE_NAME, namespaces)

    def require(module: Any = None) -> Namespace:
        if module != MODULE_NAME:
            raise error_module_not_found(to_display(module))
        return modeling

    entries: dict[str, Any] = dict(namespaces)
    entries["Math"] = standard_globals()["Math"]
    entries["require"] = NativeFunction("require", require)
    return CapabilitySet(entries)


_default: CapabilitySet | None = None


def default_capabilities() -> CapabilitySet:
    """The standard capability set, built once per process."""
    global _default
    if _default is None:
        _default = build_capabilities()
    return _default


__all__ = [
    "MODULE_NAME",
    "GROUPS",
    "CapabilitySet",
    "build_capabilities",
    "default_capabilities",
]
