"""Argument helpers shared by the kernel functions.

Kernel functions receive script values directly: option objects are ``dict``,
vectors are ``list`` and numbers are ``int``/``float``. A missing option,
``null`` and ``undefined`` all select the default.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Sequence

from ..dsl.runtime.values import is_nullish, is_number, type_of
from ..errors import KernelError
from .geometry import Outline, Solid

MAX_SEGMENTS = 1024


def options(value: Any, function: str) -> dict:
    """Return ``value`` as an options object; missing options give ``{}``."""
    if is_nullish(value):
        return {}
    if not isinstance(value, dict):
        raise KernelError(f"{function} expects an options object, got {type_of(value)}")
    return value


def option(opts: dict, key: str, default: Any) -> Any:
    value = opts.get(key, default)
    return default if is_nullish(value) else value


def number(value: Any, name: str) -> float:
    if not is_number(value) or not math.isfinite(value):
        raise KernelError(f"{name} must be a finite number")
    return float(value)


def positive(value: Any, name: str) -> float:
    result = number(value, name)
    if result <= 0:
        raise KernelError(f"{name} must be greater than zero")
    return result


def vector(value: Any, name: str, length: int, fill: float | None = None) -> List[float]:
    """Read a numeric vector; short vectors are padded with ``fill`` when given."""
    if is_number(value) and fill is None:
        return [number(value, name)] * length
    if not isinstance(value, (list, tuple)):
        raise KernelError(f"{name} must be an array of {length} numbers")
    items = [number(v, name) for v in value]
    if fill is not None and len(items) < length:
        items += [fill] * (length - len(items))
    if len(items) != length:
        raise KernelError(f"{name} must be an array of {length} numbers")
    return items


def segments(value: Any, name: str = "segments", minimum: int = 3) -> int:
    result = number(value, name)
    if not float(result).is_integer():
        raise KernelError(f"{name} must be an integer")
    result = int(result)
    if result < minimum:
        raise KernelError(f"{name} must be at least {minimum}")
    if result > MAX_SEGMENTS:
        raise KernelError(f"{name} must be at most {MAX_SEGMENTS}")
    return result


def flatten(values: Iterable[Any]) -> List[Any]:
    """Flatten nested arrays of geometry arguments."""
    result: List[Any] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            result.extend(flatten(value))
        else:
            result.append(value)
    return result


def geometries(values: Sequence[Any], function: str, allow_outline: bool = True) -> List[Any]:
    """Flatten and type-check geometry arguments."""
    items = flatten(values)
    if not items:
        raise KernelError(f"{function}: wrong number of arguments")
    for item in items:
        if isinstance(item, Solid):
            continue
        if allow_outline and isinstance(item, Outline):
            continue
        raise KernelError(f"{function}: expected geometry, got {type_of(item)}")
    return items


def single_or_list(results: List[Any]) -> Any:
    """Return one result unwrapped, several as an array."""
    return results[0] if len(results) == 1 else results


__all__ = [
    "MAX_SEGMENTS",
    "options",
    "option",
    "number",
    "positive",
    "vector",
    "segments",
    "flatten",
    "geometries",
    "single_or_list",
]
