"""
Runtime values for the script interpreter.

Script values are plain Python objects so that kernel functions can consume
them directly:

    JavaScript      Python
    ----------      ------
    number          int / float (bool excluded)
    string          str
    boolean         bool
    null            None
    undefined       UNDEFINED
    array           list
    object          dict with str keys
    function        ScriptFunction / NativeFunction
    namespace       Namespace (read-only capability table)

Anything else (solids, outlines) is opaque: it has no members and prints as
``[object Object]``.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Union
import math


class _Undefined:
    """The JavaScript ``undefined`` value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED = _Undefined()


@dataclass(eq=False)
class ScriptFunction:
    """A function defined by the program, closed over its defining scope."""
    name: Optional[str]
    params: List[Any]           # List[ast.Parameter]
    body: Any                   # ast.Block or ast.Expression
    closure: Any                # context.Scope
    is_arrow: bool = False

    def __repr__(self) -> str:
        return f"ScriptFunction({self.name or '<anonymous>'})"


@dataclass(eq=False)
class NativeFunction:
    """A host-provided function.

    When ``needs_interpreter`` is set the implementation receives the running
    interpreter as its first argument, so it can call back into script
    functions (``Array.prototype.map`` and friends). ``members`` holds static
    properties of callable globals such as ``Number.isFinite``.
    """
    name: str
    implementation: Callable[..., Any]
    needs_interpreter: bool = False
    members: Mapping[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"NativeFunction({self.name})"


@dataclass(eq=False)
class Namespace:
    """A read-only table of named entries, such as ``primitives`` or ``Math``."""
    name: str
    entries: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.entries = MappingProxyType(dict(self.entries))

    def get(self, key: str, default: Any = UNDEFINED) -> Any:
        return self.entries.get(key, default)

    def keys(self) -> List[str]:
        return list(self.entries.keys())

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __repr__(self) -> str:
        return f"Namespace({self.name}: {', '.join(self.entries)})"


# =============================================================================
# Type predicates
# =============================================================================

def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def is_callable(value: Any) -> bool:
    return isinstance(value, (ScriptFunction, NativeFunction))


def is_truthy(value: Any) -> bool:
    """JavaScript truthiness."""
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return len(value) > 0
    # Arrays, objects, functions and geometry are always truthy
    return True


def type_of(value: Any) -> str:
    """The result of the ``typeof`` operator."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_callable(value):
        return "function"
    return "object"


# =============================================================================
# Conversions
# =============================================================================

def format_number(value: Union[int, float]) -> str:
    """Format a number the way JavaScript's ``String(n)`` does."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        sign = "-" if exponent.startswith("-") else "+"
        text = f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"
    return text


def to_string(value: Any) -> str:
    """JavaScript ``String(value)``."""
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return ",".join("" if is_nullish(v) else to_string(v) for v in value)
    if isinstance(value, ScriptFunction):
        return f"function {value.name or ''}() {{ [code] }}"
    if isinstance(value, NativeFunction):
        return f"function {value.name}() {{ [native code] }}"
    return "[object Object]"


def to_display(value: Any) -> str:
    """Render a value for diagnostics and ``console.log``."""
    if isinstance(value, dict):
        message = value.get("message")
        if isinstance(message, str):
            name = value.get("name")
            return f"{name}: {message}" if isinstance(name, str) else message
        items = ", ".join(f"{k}: {to_display(v)}" for k, v in value.items())
        return "{ " + items + " }" if items else "{}"
    if isinstance(value, list):
        return "[" + ", ".join(to_display(v) for v in value) + "]"
    if isinstance(value, str):
        return value
    return to_string(value)


def _parse_numeric_string(text: str) -> float:
    text = text.strip()
    if text == "":
        return 0
    lowered = text.lower()
    try:
        if lowered.startswith(("0x", "+0x", "-0x")):
            return float(int(text, 16))
        if lowered in ("infinity", "+infinity"):
            return math.inf if text.lstrip("+") == "Infinity" else math.nan
        if lowered == "-infinity":
            return -math.inf if text == "-Infinity" else math.nan
        if lowered in ("inf", "+inf", "-inf", "nan", "+nan", "-nan"):
            return math.nan
        return float(text)
    except ValueError:
        return math.nan


def to_number(value: Any) -> Union[int, float]:
    """JavaScript ``Number(value)``."""
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if value is None:
        return 0
    if value is UNDEFINED:
        return math.nan
    if isinstance(value, str):
        return _parse_numeric_string(value)
    if isinstance(value, list):
        return _parse_numeric_string(to_string(value))
    return math.nan


def to_integer(value: Any) -> int:
    """ToIntegerOrInfinity clamped to Python int; NaN becomes 0."""
    number = to_number(value)
    if isinstance(number, int):
        return number
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 2 ** 53 if number > 0 else -(2 ** 53)
    return int(number)


def to_property_key(value: Any) -> str:
    return to_string(value)


def array_index(value: Any) -> Optional[int]:
    """Return ``value`` as a non-negative array index, or None."""
    if is_number(value):
        if isinstance(value, float):
            if not value.is_integer():
                return None
            value = int(value)
        return value if value >= 0 else None
    if isinstance(value, str) and value.isdigit():
        if value != "0" and value.startswith("0"):
            return None
        return int(value)
    return None


def _normalize(result: Union[int, float]) -> Union[int, float]:
    """Keep integer results exact but fall back to floats past 2**53."""
    if isinstance(result, int) and abs(result) > 2 ** 53:
        return float(result)
    return result


# =============================================================================
# Operators
# =============================================================================

def _to_primitive(value: Any) -> Any:
    if isinstance(value, (list, dict, ScriptFunction, NativeFunction, Namespace)):
        return to_string(value)
    if value is not None and value is not UNDEFINED and not isinstance(value, (bool, int, float, str)):
        return to_string(value)
    return value


def add(left: Any, right: Any) -> Any:
    left = _to_primitive(left)
    right = _to_primitive(right)
    if isinstance(left, str) or isinstance(right, str):
        return to_string(left) + to_string(right)
    return _normalize(to_number(left) + to_number(right))


def subtract(left: Any, right: Any) -> Any:
    return _normalize(to_number(left) - to_number(right))


def multiply(left: Any, right: Any) -> Any:
    a, b = to_number(left), to_number(right)
    if (math.isinf(a) and b == 0) or (math.isinf(b) and a == 0):
        return math.nan
    return _normalize(a * b)


def divide(left: Any, right: Any) -> float:
    a, b = to_number(left), to_number(right)
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    try:
        return a / b
    except OverflowError:
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def remainder(left: Any, right: Any) -> Union[int, float]:
    a, b = to_number(left), to_number(right)
    if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
        return math.nan
    if math.isinf(b):
        return a
    result = math.fmod(a, b)
    if isinstance(a, int) and isinstance(b, int):
        return int(result)
    return result


def power(left: Any, right: Any) -> Union[int, float]:
    a, b = to_number(left), to_number(right)
    if isinstance(a, int) and isinstance(b, int) and 0 <= b <= 64:
        return _normalize(a ** b)
    try:
        return math.pow(a, b)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


def compare(op: str, left: Any, right: Any) -> bool:
    """Relational comparison (<, >, <=, >=)."""
    left = _to_primitive(left)
    right = _to_primitive(right)
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


def strict_equals(left: Any, right: Any) -> bool:
    """The ``===`` operator."""
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    """The ``==`` operator."""
    if is_nullish(left) and is_nullish(right):
        return True
    if is_nullish(left) or is_nullish(right):
        return False
    if type_of(left) == type_of(right):
        return strict_equals(left, right)
    primitives = (bool, int, float, str)
    if isinstance(left, primitives) and isinstance(right, primitives):
        a, b = to_number(left), to_number(right)
        return not (math.isnan(a) or math.isnan(b)) and a == b
    if isinstance(left, primitives):
        return loose_equals(left, _to_primitive(right))
    if isinstance(right, primitives):
        return loose_equals(_to_primitive(left), right)
    return left is right


__all__ = [
    "UNDEFINED",
    "ScriptFunction",
    "NativeFunction",
    "Namespace",
    "is_number",
    "is_nullish",
    "is_callable",
    "is_truthy",
    "type_of",
    "format_number",
    "to_string",
    "to_display",
    "to_number",
    "to_integer",
    "to_property_key",
    "array_index",
    "add",
    "subtract",
    "multiply",
    "divide",
    "remainder",
    "power",
    "compare",
    "strict_equals",
    "loose_equals",
]
