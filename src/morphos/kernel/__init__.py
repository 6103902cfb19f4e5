"""Geometry kernel exposed to programs through the capability table."""

from .geometry import Outline, Solid, make_outline, make_solid
from .capabilities import CapabilitySet, build_capabilities, default_capabilities

__all__ = [
    "Solid",
    "Outline",
    "make_solid",
    "make_outline",
    "CapabilitySet",
    "build_capabilities",
    "default_capabilities",
]
