"""
Built-in methods and standard globals for the script interpreter.

Maps JavaScript method names on arrays, strings and numbers to Python
implementations, and builds the small standard library (``Math``,
``console``, ``Array``, ``Object``, ``Number`` and friends) that design
programs commonly rely on. Geometry functions are not registered here; they
come from the CapabilitySet in ``morphos.kernel.capabilities``.
"""

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import math
import random

from .values import (
    UNDEFINED, NativeFunction, Namespace,
    is_number, is_nullish, is_callable, is_truthy,
    to_number, to_integer, to_string, to_display, format_number,
    strict_equals, power,
)
from ..errors import error_type, error_range


script_logger = logging.getLogger("morphos.script")

# Largest array a program may build
MAX_ARRAY_LENGTH = 10_000_000


@dataclass
class BuiltinFunction:
    """
    A built-in method with its implementation.

    Implementations receive ``(interpreter, receiver, *args)``.
    """
    name: str
    implementation: Callable[..., Any]
    doc: str = ""


def value_type_name(value: Any) -> Optional[str]:
    """The method table a value dispatches to, or None."""
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if is_number(value):
        return "number"
    return None


def check_length(length: int) -> int:
    if length < 0 or length > MAX_ARRAY_LENGTH:
        raise error_range("Invalid array length")
    return length


def _require_callable(fn: Any, what: str) -> None:
    if not is_callable(fn):
        raise error_type(f"{to_display(fn)} is not a function ({what})")


def _relative_index(value: Any, length: int, default: int) -> int:
    """Resolve a possibly negative start/end argument the way slice() does."""
    if value is UNDEFINED:
        return default
    index = to_integer(value)
    if index < 0:
        return max(length + index, 0)
    return min(index, length)


def _math_result(value: float) -> Any:
    """Return integral finite results as int so they print without '.0'."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 2 ** 53:
        return int(value)
    return value


class BuiltinRegistry:
    """
    Registry of built-in methods and standard globals.

    Methods are registered by ``(type_name, method_name)``.
    """

    def __init__(self):
        self._methods: Dict[Tuple[str, str], BuiltinFunction] = {}
        self._globals: Dict[str, Any] = {}
        self._register_all()

    def get_method(self, type_name: str, method_name: str) -> Optional[BuiltinFunction]:
        """Look up a method by type and method name."""
        return self._methods.get((type_name, method_name))

    def register_method(self, type_name: str, func: BuiltinFunction) -> None:
        """Register a method for a specific type."""
        self._methods[(type_name, func.name)] = func

    def globals(self) -> Dict[str, Any]:
        """The standard global bindings, as a fresh dict."""
        return dict(self._globals)

    def _register_all(self) -> None:
        self._register_array_methods()
        self._register_string_methods()
        self._register_number_methods()
        self._register_math()
        self._register_globals()

    # --- Array methods ---

    def _register_array_methods(self) -> None:
        """Register Array.prototype methods."""

        def _push(interp, arr, *items):
            check_length(len(arr) + len(items))
            arr.extend(items)
            return len(arr)

        def _pop(interp, arr):
            return arr.pop() if arr else UNDEFINED

        def _shift(interp, arr):
            return arr.pop(0) if arr else UNDEFINED

        def _unshift(interp, arr, *items):
            check_length(len(arr) + len(items))
            arr[0:0] = items
            return len(arr)

        def _map(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "map")
            return [interp.call_function(fn, [item, i, arr]) for i, item in enumerate(list(arr))]

        def _filter(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "filter")
            return [item for i, item in enumerate(list(arr))
                    if is_truthy(interp.call_function(fn, [item, i, arr]))]

        def _for_each(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "forEach")
            for i, item in enumerate(list(arr)):
                interp.call_function(fn, [item, i, arr])
            return UNDEFINED

        def _reduce(interp, arr, fn=UNDEFINED, *initial):
            _require_callable(fn, "reduce")
            items = list(arr)
            start = 0
            if initial:
                acc = initial[0]
            elif items:
                acc = items[0]
                start = 1
            else:
                raise error_type("Reduce of empty array with no initial value")
            for i in range(start, len(items)):
                acc = interp.call_function(fn, [acc, items[i], i, arr])
            return acc

        def _concat(interp, arr, *others):
            result = list(arr)
            for other in others:
                if isinstance(other, list):
                    result.extend(other)
                else:
                    result.append(other)
            return result

        def _slice(interp, arr, start=UNDEFINED, end=UNDEFINED):
            length = len(arr)
            return arr[_relative_index(start, length, 0):_relative_index(end, length, length)]

        def _flatten(items: List[Any], depth: float) -> List[Any]:
            result = []
            for item in items:
                if isinstance(item, list) and depth >= 1:
                    result.extend(_flatten(item, depth - 1))
                else:
                    result.append(item)
            return result

        def _flat(interp, arr, depth=UNDEFINED):
            level = 1 if depth is UNDEFINED else to_number(depth)
            return _flatten(arr, level)

        def _flat_map(interp, arr, fn=UNDEFINED):
            return _flatten(_map(interp, arr, fn), 1)

        def _index_of(interp, arr, target=UNDEFINED, start=UNDEFINED):
            for i in range(_relative_index(start, len(arr), 0), len(arr)):
                if strict_equals(arr[i], target):
                    return i
            return -1

        def _includes(interp, arr, target=UNDEFINED):
            for item in arr:
                if strict_equals(item, target):
                    return True
                if is_number(item) and is_number(target) and math.isnan(item) and math.isnan(target):
                    return True
            return False

        def _join(interp, arr, separator=UNDEFINED):
            sep = "," if separator is UNDEFINED else to_string(separator)
            return sep.join("" if is_nullish(item) else to_string(item) for item in arr)

        def _reverse(interp, arr):
            arr.reverse()
            return arr

        def _some(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "some")
            return any(is_truthy(interp.call_function(fn, [item, i, arr]))
                       for i, item in enumerate(list(arr)))

        def _every(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "every")
            return all(is_truthy(interp.call_function(fn, [item, i, arr]))
                       for i, item in enumerate(list(arr)))

        def _find(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "find")
            for i, item in enumerate(list(arr)):
                if is_truthy(interp.call_function(fn, [item, i, arr])):
                    return item
            return UNDEFINED

        def _find_index(interp, arr, fn=UNDEFINED):
            _require_callable(fn, "findIndex")
            for i, item in enumerate(list(arr)):
                if is_truthy(interp.call_function(fn, [item, i, arr])):
                    return i
            return -1

        def _fill(interp, arr, value=UNDEFINED, start=UNDEFINED, end=UNDEFINED):
            length = len(arr)
            for i in range(_relative_index(start, length, 0), _relative_index(end, length, length)):
                arr[i] = value
            return arr

        def _sort(interp, arr, fn=UNDEFINED):
            if fn is UNDEFINED:
                defined = [item for item in arr if item is not UNDEFINED]
                missing = len(arr) - len(defined)
                defined.sort(key=to_string)
                arr[:] = defined + [UNDEFINED] * missing
                return arr
            _require_callable(fn, "sort")

            def _cmp(a, b):
                result = to_number(interp.call_function(fn, [a, b]))
                if math.isnan(result) or result == 0:
                    return 0
                return -1 if result < 0 else 1

            arr.sort(key=cmp_to_key(_cmp))
            return arr

        for name, impl in [
            ("push", _push), ("pop", _pop), ("shift", _shift), ("unshift", _unshift),
            ("map", _map), ("filter", _filter), ("forEach", _for_each),
            ("reduce", _reduce), ("concat", _concat), ("slice", _slice),
            ("flat", _flat), ("flatMap", _flat_map), ("includes", _includes),
            ("indexOf", _index_of), ("join", _join), ("reverse", _reverse),
            ("some", _some), ("every", _every), ("find", _find),
            ("findIndex", _find_index), ("fill", _fill), ("sort", _sort),
        ]:
            self.register_method("array", BuiltinFunction(name, impl))

    # --- String methods ---

    def _register_string_methods(self) -> None:
        """Register String.prototype methods."""

        def _slice(interp, s, start=UNDEFINED, end=UNDEFINED):
            length = len(s)
            return s[_relative_index(start, length, 0):_relative_index(end, length, length)]

        def _split(interp, s, separator=UNDEFINED):
            if separator is UNDEFINED:
                return [s]
            sep = to_string(separator)
            if sep == "":
                return list(s)
            return s.split(sep)

        def _index_of(interp, s, target=UNDEFINED):
            return s.find(to_string(target))

        def _pad(left: bool):
            def _impl(interp, s, width=UNDEFINED, fill=UNDEFINED):
                target = to_integer(width)
                pad = " " if fill is UNDEFINED else to_string(fill)
                if target <= len(s) or not pad:
                    return s
                check_length(target)
                padding = (pad * (target - len(s)))[:target - len(s)]
                return padding + s if left else s + padding
            return _impl

        def _repeat(interp, s, count=UNDEFINED):
            n = to_integer(count)
            if n < 0:
                raise error_range("Invalid count value")
            check_length(len(s) * n)
            return s * n

        def _char_at(interp, s, index=UNDEFINED):
            i = to_integer(index)
            return s[i] if 0 <= i < len(s) else ""

        for name, impl in [
            ("slice", _slice),
            ("substring", _slice),
            ("split", _split),
            ("indexOf", _index_of),
            ("includes", lambda interp, s, t=UNDEFINED: to_string(t) in s),
            ("startsWith", lambda interp, s, t=UNDEFINED: s.startswith(to_string(t))),
            ("endsWith", lambda interp, s, t=UNDEFINED: s.endswith(to_string(t))),
            ("toUpperCase", lambda interp, s: s.upper()),
            ("toLowerCase", lambda interp, s: s.lower()),
            ("trim", lambda interp, s: s.strip()),
            ("padStart", _pad(True)),
            ("padEnd", _pad(False)),
            ("repeat", _repeat),
            ("charAt", _char_at),
            ("toString", lambda interp, s: s),
        ]:
            self.register_method("string", BuiltinFunction(name, impl))

    # --- Number methods ---

    def _register_number_methods(self) -> None:
        """Register Number.prototype methods."""

        def _to_fixed(interp, n, digits=UNDEFINED):
            places = 0 if digits is UNDEFINED else to_integer(digits)
            if places < 0 or places > 100:
                raise error_range("toFixed() digits argument must be between 0 and 100")
            if math.isnan(n) or math.isinf(n):
                return format_number(n)
            return f"{n:.{places}f}"

        self.register_method("number", BuiltinFunction("toFixed", _to_fixed))
        self.register_method("number", BuiltinFunction(
            "toString", lambda interp, n: format_number(n)))

    # --- Math ---

    def _register_math(self) -> None:
        """Register the Math namespace."""

        def _unary(fn: Callable[[float], float]) -> NativeFunction:
            def _impl(x=UNDEFINED):
                value = to_number(x)
                try:
                    return _math_result(fn(value))
                except ValueError:
                    return math.nan
                except OverflowError:
                    return math.inf
            return NativeFunction(fn.__name__, _impl)

        def _round(x: float) -> float:
            if math.isnan(x) or math.isinf(x):
                return x
            return math.floor(x + 0.5)

        def _sign(x: float) -> float:
            if math.isnan(x) or x == 0:
                return x
            return 1 if x > 0 else -1

        def _log(x: float) -> float:
            if x == 0:
                return -math.inf
            if x == math.inf:
                return math.inf
            return math.log(x)

        def _sqrt(x: float) -> float:
            if x == math.inf:
                return math.inf
            return math.sqrt(x)

        def _cbrt(x: float) -> float:
            if math.isnan(x) or math.isinf(x):
                return x
            return math.copysign(abs(x) ** (1.0 / 3.0), x)

        def _floor(x: float) -> float:
            return x if math.isnan(x) or math.isinf(x) else math.floor(x)

        def _ceil(x: float) -> float:
            return x if math.isnan(x) or math.isinf(x) else math.ceil(x)

        def _trunc(x: float) -> float:
            return x if math.isnan(x) or math.isinf(x) else math.trunc(x)

        def _extreme(pick, empty):
            def _impl(*args):
                values = [to_number(a) for a in args]
                if any(math.isnan(v) for v in values):
                    return math.nan
                return pick(values) if values else empty
            return _impl

        def _pow(x=UNDEFINED, y=UNDEFINED):
            return power(x, y)

        def _atan2(y=UNDEFINED, x=UNDEFINED):
            return _math_result(math.atan2(to_number(y), to_number(x)))

        def _hypot(*args):
            values = [to_number(a) for a in args]
            if any(math.isinf(v) for v in values):
                return math.inf
            return _math_result(math.hypot(*values))

        entries = {
            "PI": math.pi,
            "E": math.e,
            "LN2": math.log(2),
            "LN10": math.log(10),
            "SQRT2": math.sqrt(2),
            "SQRT1_2": math.sqrt(0.5),
            "abs": _unary(abs),
            "floor": _unary(_floor),
            "ceil": _unary(_ceil),
            "round": _unary(_round),
            "trunc": _unary(_trunc),
            "sign": _unary(_sign),
            "sqrt": _unary(_sqrt),
            "cbrt": _unary(_cbrt),
            "sin": _unary(math.sin),
            "cos": _unary(math.cos),
            "tan": _unary(math.tan),
            "asin": _unary(math.asin),
            "acos": _unary(math.acos),
            "atan": _unary(math.atan),
            "log": _unary(_log),
            "exp": _unary(math.exp),
            "atan2": NativeFunction("atan2", _atan2),
            "pow": NativeFunction("pow", _pow),
            "hypot": NativeFunction("hypot", _hypot),
            "min": NativeFunction("min", _extreme(min, math.inf)),
            "max": NativeFunction("max", _extreme(max, -math.inf)),
            "random": NativeFunction("random", lambda *args: random.random()),
        }
        self._globals["Math"] = Namespace("Math", entries)

    # --- Standard globals ---

    def _register_globals(self) -> None:
        """Register console, Array, Object, Number and conversion functions."""

        def _console(level: int):
            def _impl(*args):
                script_logger.log(level, " ".join(to_display(a) for a in args))
                return UNDEFINED
            return _impl

        self._globals["console"] = Namespace("console", {
            "log": NativeFunction("log", _console(logging.INFO)),
            "info": NativeFunction("info", _console(logging.INFO)),
            "warn": NativeFunction("warn", _console(logging.WARNING)),
            "error": NativeFunction("error", _console(logging.WARNING)),
            "debug": NativeFunction("debug", _console(logging.DEBUG)),
        })

        def _array(*args):
            if len(args) == 1 and is_number(args[0]):
                length = args[0]
                if not float(length).is_integer():
                    raise error_range("Invalid array length")
                return [UNDEFINED] * check_length(int(length))
            return list(args)

        def _array_from(interp, source=UNDEFINED, fn=UNDEFINED):
            if isinstance(source, list):
                items = list(source)
            elif isinstance(source, str):
                items = list(source)
            elif isinstance(source, dict):
                length = to_integer(source.get("length", 0))
                items = [source.get(str(i), UNDEFINED) for i in range(check_length(max(length, 0)))]
            else:
                items = []
            if fn is UNDEFINED:
                return items
            _require_callable(fn, "Array.from")
            return [interp.call_function(fn, [item, i]) for i, item in enumerate(items)]

        self._globals["Array"] = NativeFunction("Array", _array, members={
            "isArray": NativeFunction("isArray", lambda value=UNDEFINED: isinstance(value, list)),
            "from": NativeFunction("from", _array_from, needs_interpreter=True),
            "of": NativeFunction("of", lambda *args: list(args)),
        })

        def _keys(obj=UNDEFINED):
            if isinstance(obj, dict):
                return list(obj.keys())
            if isinstance(obj, (list, str)):
                return [str(i) for i in range(len(obj))]
            if is_nullish(obj):
                raise error_type("Cannot convert undefined or null to object")
            return []

        def _values(obj=UNDEFINED):
            if isinstance(obj, dict):
                return list(obj.values())
            if isinstance(obj, list):
                return list(obj)
            return [obj[key] for key in _keys(obj)] if isinstance(obj, str) else []

        def _entries(obj=UNDEFINED):
            if isinstance(obj, dict):
                return [[k, v] for k, v in obj.items()]
            return [[k, v] for k, v in zip(_keys(obj), _values(obj))]

        def _assign(target=UNDEFINED, *sources):
            if not isinstance(target, dict):
                raise error_type("Object.assign target must be an object")
            for source in sources:
                if isinstance(source, dict):
                    target.update(source)
            return target

        def _freeze(obj=UNDEFINED):
            return obj

        self._globals["Object"] = Namespace("Object", {
            "keys": NativeFunction("keys", _keys),
            "values": NativeFunction("values", _values),
            "entries": NativeFunction("entries", _entries),
            "assign": NativeFunction("assign", _assign),
            "freeze": NativeFunction("freeze", _freeze),
        })

        def _is_finite_number(value=UNDEFINED):
            return is_number(value) and math.isfinite(value)

        def _is_integer(value=UNDEFINED):
            return _is_finite_number(value) and float(value).is_integer()

        def _parse_float(value=UNDEFINED):
            text = to_string(value).strip()
            end = len(text)
            while end > 0:
                candidate = text[:end]
                if candidate in ("Infinity", "+Infinity", "-Infinity"):
                    return math.inf if not candidate.startswith("-") else -math.inf
                try:
                    number = float(candidate)
                except ValueError:
                    end -= 1
                    continue
                if candidate.lower().lstrip("+-") in ("inf", "infinity", "nan"):
                    return math.nan
                return _math_result(number)
            return math.nan

        def _parse_int(value=UNDEFINED, radix=UNDEFINED):
            text = to_string(value).strip()
            base = 10 if radix is UNDEFINED else to_integer(radix)
            sign = -1 if text.startswith("-") else 1
            text = text.lstrip("+-")
            if (base in (0, 16) or radix is UNDEFINED) and text.lower().startswith("0x"):
                text = text[2:]
                base = 16
            if base == 0:
                base = 10
            if not 2 <= base <= 36:
                return math.nan
            digits = ""
            for ch in text:
                if ch.isdigit() and int(ch) < base:
                    digits += ch
                elif ch.isalpha() and ch.isascii() and ord(ch.lower()) - 87 < base:
                    digits += ch
                else:
                    break
            if not digits:
                return math.nan
            return sign * int(digits, base)

        def _is_nan(value=UNDEFINED):
            return math.isnan(to_number(value))

        def _is_finite(value=UNDEFINED):
            return math.isfinite(to_number(value))

        self._globals["Number"] = NativeFunction(
            "Number", lambda value=0: to_number(value), members={
                "isFinite": NativeFunction("isFinite", _is_finite_number),
                "isInteger": NativeFunction("isInteger", _is_integer),
                "isNaN": NativeFunction("isNaN", lambda value=UNDEFINED: is_number(value) and math.isnan(value)),
                "parseFloat": NativeFunction("parseFloat", _parse_float),
                "parseInt": NativeFunction("parseInt", _parse_int),
                "EPSILON": 2.0 ** -52,
                "MAX_SAFE_INTEGER": 2 ** 53 - 1,
                "MIN_SAFE_INTEGER": -(2 ** 53 - 1),
                "POSITIVE_INFINITY": math.inf,
                "NEGATIVE_INFINITY": -math.inf,
            })

        def _error_factory(kind: str) -> NativeFunction:
            def _impl(message=UNDEFINED):
                text = "" if message is UNDEFINED else to_string(message)
                return {"name": kind, "message": text}
            return NativeFunction(kind, _impl)

        for kind in ("Error", "TypeError", "RangeError"):
            self._globals[kind] = _error_factory(kind)

        self._globals["String"] = NativeFunction("String", lambda value="": to_string(value))
        self._globals["Boolean"] = NativeFunction("Boolean", lambda value=False: is_truthy(value))
        self._globals["parseFloat"] = NativeFunction("parseFloat", _parse_float)
        self._globals["parseInt"] = NativeFunction("parseInt", _parse_int)
        self._globals["isNaN"] = NativeFunction("isNaN", _is_nan)
        self._globals["isFinite"] = NativeFunction("isFinite", _is_finite)
        self._globals["Infinity"] = math.inf
        self._globals["NaN"] = math.nan


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def standard_globals() -> Dict[str, Any]:
    """The standard global bindings visible to every program."""
    return get_builtin_registry().globals()


__all__ = [
    "BuiltinFunction",
    "BuiltinRegistry",
    "MAX_ARRAY_LENGTH",
    "check_length",
    "value_type_name",
    "get_builtin_registry",
    "standard_globals",
]
