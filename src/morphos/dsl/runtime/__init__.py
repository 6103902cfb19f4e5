"""
Script runtime - tree-walking interpreter for design programs.

This module provides:
- Interpreter: Executes a parsed program against a closed root scope
- Scope: Variable bindings with a parent chain
- ExecutionBudget / BudgetMeter: Step, time and call-depth limits
- BuiltinRegistry: Array, string and number methods plus standard globals
"""

from .values import (
    UNDEFINED,
    ScriptFunction,
    NativeFunction,
    Namespace,
    is_nullish,
    is_callable,
    is_truthy,
    type_of,
    to_string,
    to_display,
    to_number,
)

from .context import Scope

from .budget import (
    ExecutionBudget,
    BudgetMeter,
    BudgetExceeded,
    ExecutionCancelled,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    standard_globals,
)

from .interpreter import Interpreter


__all__ = [
    # Values
    "UNDEFINED",
    "ScriptFunction",
    "NativeFunction",
    "Namespace",
    "is_nullish",
    "is_callable",
    "is_truthy",
    "type_of",
    "to_string",
    "to_display",
    "to_number",
    # Scopes
    "Scope",
    # Budget
    "ExecutionBudget",
    "BudgetMeter",
    "BudgetExceeded",
    "ExecutionCancelled",
    # Builtins
    "BuiltinFunction",
    "BuiltinRegistry",
    "get_builtin_registry",
    "standard_globals",
    # Interpreter
    "Interpreter",
]
